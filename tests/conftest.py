"""Shared fixtures for the account form test suite."""

import base64
import io

import pytest
from accountform.submission.package import Attachment
from PIL import Image

KBIS_CONTENT = b"%PDF-1.4\n" + b"0" * (2048 - 9)


def make_png(size=(4, 4), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def signature_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(make_png()).decode("ascii")


@pytest.fixture
def step_one_record() -> dict:
    return {
        "companyName": "ACME Industrie",
        "siren": "404833048",
        "siret": "40483304800022",
        "nafApe": "62.01Z",
        "tvaIntracom": "FR83404833048",
    }


@pytest.fixture
def step_two_record() -> dict:
    return {
        "address": "10 rue de la Paix",
        "postalCode": "75002",
        "city": "Paris",
        "responsableAchatEmail": "achats@acme.fr",
        "responsableAchatPhone": "01 23 45 67 89",
        "serviceComptaEmail": "compta@acme.fr",
        "serviceComptaPhone": "01 98 76 54 32",
        "deliveryAddress": "5 avenue des Entrepôts",
        "deliveryPostalCode": "93200",
        "deliveryCity": "Saint-Denis",
    }


@pytest.fixture
def complete_record(step_one_record, step_two_record, signature_data_url) -> dict:
    return {
        **step_one_record,
        **step_two_record,
        "legalDocument": {
            "filename": "kbis.pdf",
            "contentType": "application/pdf",
            "size": len(KBIS_CONTENT),
        },
        "signature": signature_data_url,
        "cgvAccepted": True,
    }


@pytest.fixture
def kbis() -> Attachment:
    return Attachment("kbis.pdf", KBIS_CONTENT, "application/pdf")
