"""Recap document rendering.

Rendering is a capability: runtimes that can produce PDFs get a
ReportLabRenderer, every other caller gets an UnavailableRenderer whose
``render`` raises RendererUnavailableError.
"""

import io
import logging
import re
from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol

from accountform.core.config import RECAP_FILENAME_TEMPLATE
from accountform.core.exceptions import RendererUnavailableError
from accountform.submission.compression import decode_base64
from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

_FILENAME_UNSAFE = re.compile(r"[^\w.-]+")


class DocumentRenderer(Protocol):
    available: bool

    def render(self, form_data: Mapping[str, Any]) -> bytes: ...


def recap_filename(company_name: str, day: Optional[date] = None) -> str:
    """``recapitulatif-<company>-<YYYY-MM-DD>.pdf`` with a filesystem-safe name."""
    day = day or date.today()
    company = _FILENAME_UNSAFE.sub("-", company_name.strip()).strip("-") or "entreprise"
    return RECAP_FILENAME_TEMPLATE.format(company=company, date=day.isoformat())


RECAP_SECTIONS: tuple[tuple[str, tuple[tuple[str, str], ...]], ...] = (
    (
        "Entreprise",
        (
            ("Raison sociale", "companyName"),
            ("SIREN", "siren"),
            ("SIRET", "siret"),
            ("Code NAF/APE", "nafApe"),
            ("TVA intracommunautaire", "tvaIntracom"),
        ),
    ),
    (
        "Adresse de facturation",
        (("Adresse", "address"), ("Code postal", "postalCode"), ("Ville", "city")),
    ),
    (
        "Adresse de livraison",
        (
            ("Adresse", "deliveryAddress"),
            ("Code postal", "deliveryPostalCode"),
            ("Ville", "deliveryCity"),
        ),
    ),
    (
        "Responsable achat",
        (("Email", "responsableAchatEmail"), ("Téléphone", "responsableAchatPhone")),
    ),
    (
        "Service comptabilité",
        (("Email", "serviceComptaEmail"), ("Téléphone", "serviceComptaPhone")),
    ),
)


class ReportLabRenderer:
    """A4 recap rendered with the reportlab canvas API."""

    available = True

    MARGIN = 50
    LINE_HEIGHT = 16
    SIGNATURE_SIZE = (200, 80)

    def __init__(self, clock=datetime.now):
        self._clock = clock

    def render(self, form_data: Mapping[str, Any]) -> bytes:
        buffer = io.BytesIO()
        c = canvas.Canvas(buffer, pagesize=A4)
        width, height = A4
        c.setTitle("Récapitulatif de demande de compte professionnel")

        y = height - self.MARGIN
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.MARGIN, y, "Demande de compte professionnel")
        y -= self.LINE_HEIGHT * 1.5
        c.setFont("Helvetica", 10)
        c.drawString(
            self.MARGIN,
            y,
            f"Générée le {self._clock().strftime('%d/%m/%Y à %H:%M')}",
        )
        y -= self.LINE_HEIGHT * 2

        for title, rows in RECAP_SECTIONS:
            y = self._ensure_space(c, y, (len(rows) + 2) * self.LINE_HEIGHT)
            c.setFont("Helvetica-Bold", 12)
            c.drawString(self.MARGIN, y, title)
            y -= self.LINE_HEIGHT
            c.setFont("Helvetica", 10)
            for label, key in rows:
                value = form_data.get(key) or "-"
                c.drawString(self.MARGIN + 10, y, f"{label} : {value}")
                y -= self.LINE_HEIGHT
            y -= self.LINE_HEIGHT / 2

        y = self._ensure_space(c, y, self.LINE_HEIGHT * 3)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.MARGIN, y, "Documents")
        y -= self.LINE_HEIGHT
        c.setFont("Helvetica", 10)
        legal_document = form_data.get("legalDocument") or {}
        if isinstance(legal_document, Mapping) and legal_document.get("filename"):
            c.drawString(
                self.MARGIN + 10, y, f"Justificatif : {legal_document['filename']}"
            )
        else:
            c.drawString(self.MARGIN + 10, y, "Justificatif : -")
        y -= self.LINE_HEIGHT
        cgv = "acceptées" if form_data.get("cgvAccepted") is True else "non acceptées"
        c.drawString(self.MARGIN + 10, y, f"Conditions générales de vente : {cgv}")
        y -= self.LINE_HEIGHT * 2

        y = self._ensure_space(c, y, self.SIGNATURE_SIZE[1] + self.LINE_HEIGHT * 2)
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.MARGIN, y, "Signature")
        y -= self.LINE_HEIGHT
        self._draw_signature(c, form_data.get("signature"), y)

        c.showPage()
        c.save()
        return buffer.getvalue()

    def _ensure_space(self, c: canvas.Canvas, y: float, needed: float) -> float:
        if y - needed < self.MARGIN:
            c.showPage()
            return A4[1] - self.MARGIN
        return y

    def _draw_signature(self, c: canvas.Canvas, signature: Any, y: float) -> None:
        c.setFont("Helvetica", 10)
        if not isinstance(signature, str) or not signature.startswith("data:image"):
            c.drawString(self.MARGIN + 10, y - self.LINE_HEIGHT, "-")
            return

        w, h = self.SIGNATURE_SIZE
        try:
            picture = Image.open(io.BytesIO(decode_base64(signature)))
            picture.load()
            image = ImageReader(picture)
            c.drawImage(
                image,
                self.MARGIN + 10,
                y - h,
                width=w,
                height=h,
                preserveAspectRatio=True,
                mask="auto",
            )
        except (OSError, ValueError) as e:
            logger.warning("Signature image could not be embedded: %s", e)
            c.drawString(self.MARGIN + 10, y - self.LINE_HEIGHT, "(signature illisible)")


class UnavailableRenderer:
    """Stand-in for runtimes that must not render documents."""

    available = False

    def __init__(self, reason: str = "PDF rendering is disabled"):
        self.reason = reason

    def render(self, form_data: Mapping[str, Any]) -> bytes:
        raise RendererUnavailableError(self.reason)


def get_document_renderer(enabled: bool) -> DocumentRenderer:
    if enabled:
        return ReportLabRenderer()
    logger.info("PDF rendering disabled; recap documents cannot be generated")
    return UnavailableRenderer()
