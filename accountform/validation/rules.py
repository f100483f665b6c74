"""Field rules of the professional account form."""

import re
from typing import Any, Mapping, Optional

from accountform.core.config import (
    ADDRESS_MIN_LENGTH,
    CITY_MIN_LENGTH,
    COMPANY_NAME_MAX_LENGTH,
    COMPANY_NAME_MIN_LENGTH,
    MAX_LEGAL_DOCUMENT_SIZE_MB,
    SIGNATURE_MIN_LENGTH,
)
from accountform.validation.validator import FieldRule, FieldValidator, is_blank

LEGAL_DOCUMENT_TYPES = frozenset({"application/pdf", "image/png", "image/jpeg"})
INVALID_DOCUMENT_MESSAGE = "Le fichier joint n'est pas valide"

SIREN_PATTERN = re.compile(r"^\d{9}$")
SIRET_PATTERN = re.compile(r"^\d{14}$")
TVA_PATTERN = re.compile(r"^FR\d{11}$")
POSTAL_CODE_PATTERN = re.compile(r"^\d{5}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]{2,}$")
PHONE_PATTERN = re.compile(r"^(?:(?:\+|00)33|0)\s*[1-9](?:[\s.-]*\d{2}){4}$")


def collapse_whitespace(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return " ".join(value.split())


def strip_text(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def remove_spaces(value: Any) -> Any:
    return re.sub(r"\s+", "", value) if isinstance(value, str) else value


def compact_upper(value: Any) -> Any:
    return remove_spaces(value).upper() if isinstance(value, str) else value


def _non_blank(field_name: str):
    def predicate(record: Mapping[str, Any]) -> bool:
        value = strip_text(record.get(field_name))
        return not is_blank(value)

    return predicate


def check_legal_document(value: Any) -> Optional[str]:
    if not isinstance(value, Mapping):
        return "Un document légal est requis"
    if value.get("contentType") not in LEGAL_DOCUMENT_TYPES:
        return "Format de fichier non supporté (PDF, PNG, JPG uniquement)"
    size = value.get("size")
    if size is None:
        size = 0
    if isinstance(size, bool) or not isinstance(size, (int, float)):
        return INVALID_DOCUMENT_MESSAGE
    if size > MAX_LEGAL_DOCUMENT_SIZE_MB * 1024 * 1024:
        return f"Le fichier ne doit pas dépasser {MAX_LEGAL_DOCUMENT_SIZE_MB}MB"
    return None


def check_signature(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.startswith("data:image"):
        return "La signature doit être une image valide"
    return None


def check_accepted(value: Any) -> Optional[str]:
    if value is not True:
        return "Vous devez accepter les conditions générales de vente"
    return None


def _email_rule(name: str) -> FieldRule:
    return FieldRule(
        name=name,
        required=True,
        normalize=strip_text,
        pattern=EMAIL_PATTERN,
        required_message="L'email est obligatoire",
        pattern_message="L'adresse email n'est pas valide",
    )


def _phone_rule(name: str) -> FieldRule:
    return FieldRule(
        name=name,
        required=True,
        normalize=strip_text,
        pattern=PHONE_PATTERN,
        required_message="Le téléphone est obligatoire",
        pattern_message="Le numéro de téléphone n'est pas valide",
    )


def _address_rules(address: str, postal_code: str, city: str) -> list[FieldRule]:
    return [
        FieldRule(
            name=address,
            required=True,
            normalize=collapse_whitespace,
            min_length=ADDRESS_MIN_LENGTH,
            required_message="L'adresse est obligatoire",
            pattern_message="L'adresse n'est pas valide",
            min_length_message="L'adresse doit contenir au moins 5 caractères",
        ),
        FieldRule(
            name=postal_code,
            required_if=_non_blank(address),
            normalize=remove_spaces,
            pattern=POSTAL_CODE_PATTERN,
            required_message="Le code postal est obligatoire",
            pattern_message="Le code postal doit contenir 5 chiffres",
        ),
        FieldRule(
            name=city,
            required_if=_non_blank(address),
            normalize=collapse_whitespace,
            min_length=CITY_MIN_LENGTH,
            required_message="La ville est obligatoire",
            pattern_message="La ville n'est pas valide",
            min_length_message="La ville doit contenir au moins 2 caractères",
        ),
    ]


ACCOUNT_FORM_RULES: tuple[FieldRule, ...] = (
    FieldRule(
        name="companyName",
        required=True,
        normalize=collapse_whitespace,
        min_length=COMPANY_NAME_MIN_LENGTH,
        max_length=COMPANY_NAME_MAX_LENGTH,
        required_message="Le nom de l'entreprise est obligatoire",
        pattern_message="Le nom de l'entreprise n'est pas valide",
        min_length_message=(
            "Le nom de l'entreprise doit contenir au moins 2 caractères"
        ),
        max_length_message=(
            "Le nom de l'entreprise ne peut pas dépasser 100 caractères"
        ),
    ),
    FieldRule(
        name="siren",
        normalize=remove_spaces,
        pattern=SIREN_PATTERN,
        pattern_message="Le SIREN doit contenir exactement 9 chiffres",
    ),
    FieldRule(
        name="siret",
        required=True,
        normalize=remove_spaces,
        pattern=SIRET_PATTERN,
        required_message="Le SIRET est obligatoire",
        pattern_message="Le SIRET doit contenir exactement 14 chiffres",
    ),
    FieldRule(
        name="nafApe",
        normalize=strip_text,
        text=True,
        pattern_message="Le code NAF/APE n'est pas valide",
    ),
    FieldRule(
        name="tvaIntracom",
        normalize=compact_upper,
        pattern=TVA_PATTERN,
        pattern_message=(
            "Le numéro de TVA doit avoir le format FR suivi de 11 chiffres"
        ),
    ),
    *_address_rules("address", "postalCode", "city"),
    _email_rule("responsableAchatEmail"),
    _phone_rule("responsableAchatPhone"),
    _email_rule("serviceComptaEmail"),
    _phone_rule("serviceComptaPhone"),
    *_address_rules("deliveryAddress", "deliveryPostalCode", "deliveryCity"),
    FieldRule(
        name="legalDocument",
        required=True,
        check=check_legal_document,
        required_message="Un document légal est requis",
    ),
    FieldRule(
        name="signature",
        required=True,
        normalize=strip_text,
        min_length=SIGNATURE_MIN_LENGTH,
        check=check_signature,
        required_message="La signature est obligatoire",
        pattern_message="La signature doit être une image valide",
        min_length_message="La signature est obligatoire",
    ),
    FieldRule(
        name="cgvAccepted",
        required=True,
        check=check_accepted,
        required_message="Vous devez accepter les conditions générales de vente",
    ),
)


def build_account_form_validator() -> FieldValidator:
    return FieldValidator(ACCOUNT_FORM_RULES)
