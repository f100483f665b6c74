"""Conversion of Sirene API records into SearchResults and form fields."""

import re
from typing import Any, Optional

from accountform.core.config import ADDRESS_PLACEHOLDER_TOKENS, UNNAMED_COMPANY
from accountform.lookup.models import CompanyAddress, SearchResult

_SIREN = re.compile(r"^\d{9}$")


def compute_vat_number(siren: str) -> str:
    """French intra-community VAT number derived from a SIREN.

    Example:
        >>> compute_vat_number("404833048")
        'FR83404833048'
    """
    if not siren or not _SIREN.match(siren):
        return ""
    key = (12 + 3 * (int(siren) % 97)) % 97
    return f"FR{key:02d}{siren}"


def is_placeholder(value: Optional[str]) -> bool:
    """True when ``value`` carries no usable address information.

    The registry fills unknown parts with markers such as ``ND`` or
    ``[ND]``; a value made only of such markers counts as blank.
    """
    if not value:
        return True
    tokens = (
        token.replace("[", "").replace("]", "").upper()
        for token in value.strip().split()
    )
    return all(token in ADDRESS_PLACEHOLDER_TOKENS for token in tokens)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def map_etablissement(record: dict[str, Any]) -> Optional[SearchResult]:
    """Map one ``etablissements[]`` entry; None when it lacks a SIREN or address."""
    siren = _text(record.get("siren"))
    address = record.get("adresseEtablissement")
    if not siren or not isinstance(address, dict) or not address:
        return None

    unit = record.get("uniteLegale")
    if not isinstance(unit, dict):
        unit = {}

    street = " ".join(
        part
        for part in (
            _text(address.get("numeroVoieEtablissement")),
            _text(address.get("indiceRepetitionEtablissement")),
            _text(address.get("typeVoieEtablissement")),
            _text(address.get("libelleVoieEtablissement")),
        )
        if part
    )

    legal_name = (
        _text(unit.get("denominationUniteLegale"))
        or _text(record.get("denominationUsuelleEtablissement"))
        or _text(unit.get("sigleUniteLegale"))
        or UNNAMED_COMPANY
    )

    naf_ape = _text(record.get("activitePrincipaleEtablissement")) or _text(
        unit.get("activitePrincipaleUniteLegale")
    )

    return SearchResult(
        siren=siren,
        siret=_text(record.get("siret")),
        legal_name=legal_name,
        naf_ape=naf_ape,
        vat_number=compute_vat_number(siren),
        address=CompanyAddress(
            street=street,
            postal_code=_text(address.get("codePostalEtablissement")),
            city=_text(address.get("libelleCommuneEtablissement")),
        ),
    )


def map_search_response(payload: dict[str, Any]) -> list[SearchResult]:
    results = []
    for record in payload.get("etablissements") or []:
        if not isinstance(record, dict):
            continue
        result = map_etablissement(record)
        if result is not None:
            results.append(result)
    return results


def result_to_form_fields(result: SearchResult) -> dict[str, str]:
    """Form fields filled from a selected result.

    Address parts made only of registry placeholders are left empty so the
    user types them in.
    """
    address = result.address
    return {
        "companyName": result.legal_name,
        "siren": result.siren,
        "siret": result.siret,
        "nafApe": result.naf_ape,
        "tvaIntracom": result.vat_number,
        "address": "" if is_placeholder(address.street) else address.street,
        "postalCode": "" if is_placeholder(address.postal_code) else address.postal_code,
        "city": "" if is_placeholder(address.city) else address.city,
    }
