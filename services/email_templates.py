"""HTML bodies of the submission emails."""

from html import escape

from api.schemas import SendRequest

TEAM_SUBJECT = "🎯 Nouvelle demande de compte professionnel - {company}"
CLIENT_SUBJECT = "✅ Votre demande de compte professionnel XEILOM"

SUPPORT_EMAIL = "info.xeilom@xeilom.fr"
SUPPORT_PHONE = "03 65 61 04 20"
SHOP_URL = "https://www.xeilom.fr"

_LAYOUT = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"><title>{title}</title></head>
  <body style="margin:0;padding:0;font-family:Arial,sans-serif;background-color:#f4f4f4;">
    <table role="presentation" width="100%" cellpadding="0" cellspacing="0">
      <tr><td align="center" style="padding:20px 0;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color:#ffffff;">
          <tr><td style="background-color:#2563eb;padding:30px;text-align:center;">
            <h1 style="margin:0;color:#ffffff;font-size:24px;">{title}</h1>
          </td></tr>
          <tr><td style="padding:30px;">{body}</td></tr>
          <tr><td style="background-color:#f3f4f6;padding:30px;text-align:center;color:#6b7280;font-size:12px;">
            <p style="margin:0 0 8px 0;font-weight:bold;color:#333333;">XEILOM - Distributeur &amp; Fabricant Courant Faible</p>
            <p style="margin:0;">{support_email} | {support_phone}</p>
          </td></tr>
        </table>
      </td></tr>
    </table>
  </body>
</html>
"""


def _rows(rows: list[tuple[str, str]]) -> str:
    cells = "".join(
        f'<tr><td style="padding:4px 0;color:#6b7280;width:45%;">{escape(label)}</td>'
        f'<td style="padding:4px 0;color:#111827;">{escape(value or "-")}</td></tr>'
        for label, value in rows
    )
    return f'<table role="presentation" width="100%" cellpadding="0" cellspacing="0">{cells}</table>'


def _section(title: str, rows: list[tuple[str, str]]) -> str:
    return (
        f'<h2 style="margin:20px 0 10px 0;color:#1e40af;font-size:18px;'
        f'border-bottom:2px solid #2563eb;padding-bottom:8px;">{escape(title)}</h2>'
        + _rows(rows)
    )


def _layout(title: str, body: str) -> str:
    return _LAYOUT.format(
        title=escape(title),
        body=body,
        support_email=SUPPORT_EMAIL,
        support_phone=SUPPORT_PHONE,
    )


def render_team_email(request: SendRequest) -> str:
    info = request.companyInfo
    body = (
        _section(
            "Informations de l'entreprise",
            [
                ("Raison sociale", request.companyName),
                ("SIREN", info.siren),
                ("SIRET", info.siret),
                ("Code NAF/APE", info.nafApe),
                ("TVA intracommunautaire", info.tvaIntracom),
                ("Adresse de facturation", f"{info.address}, {info.postalCode} {info.city}"),
                (
                    "Adresse de livraison",
                    f"{info.deliveryAddress}, {info.deliveryPostalCode} {info.deliveryCity}",
                ),
            ],
        )
        + _section(
            "Contacts",
            [
                ("Responsable achat", request.responsableAchatEmail),
                ("Téléphone achat", request.responsableAchatPhone),
                ("Service comptabilité", request.serviceComptaEmail),
                ("Téléphone comptabilité", request.serviceComptaPhone),
            ],
        )
        + _section(
            "Pièces jointes",
            [
                ("Récapitulatif", request.pdfFileName),
                ("KBIS", request.kbisFileName or ""),
            ],
        )
    )
    return _layout("🎯 Nouvelle demande de compte professionnel", body)


def render_client_email(request: SendRequest) -> str:
    company = escape(request.companyName)
    body = (
        '<p style="font-size:16px;color:#333333;line-height:1.6;">Bonjour,<br><br>'
        f"Votre demande de compte professionnel pour <strong>{company}</strong> "
        "a bien été reçue par notre équipe.</p>"
        '<p style="font-weight:bold;color:#1e40af;">📋 Prochaines étapes :</p>'
        "<ul>"
        "<li>Votre demande sera traitée sous <strong>24 heures</strong></li>"
        "<li>Vous recevrez un email de confirmation dès l'activation de votre compte</li>"
        "<li>Vous pourrez alors accéder à nos tarifs professionnels et passer commande</li>"
        "</ul>"
        f'<p style="text-align:center;"><a href="{SHOP_URL}">🛒 Visiter notre boutique en ligne</a></p>'
        '<p style="font-weight:bold;">💬 Une question ?</p>'
        "<p>Notre équipe est disponible du lundi au vendredi, de 9h à 18h</p>"
        f'<p>📧 <a href="mailto:{SUPPORT_EMAIL}">{SUPPORT_EMAIL}</a> '
        f"📞 {SUPPORT_PHONE}</p>"
    )
    return _layout("✅ Demande reçue !", body)
