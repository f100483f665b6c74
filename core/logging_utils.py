"""
PII-safe logging utilities.

Provides minimal sanitization helpers to prevent sensitive data
leakage in logs while keeping them useful for debugging.
"""


def sanitize_email(email: str | None) -> str:
    """
    Sanitize an email address for logs.

    Rules:
    - None / no "@" → fully masked
    - Otherwise → first char of the local part, domain kept
    """
    if not email or "@" not in email:
        return "***"

    local, _, domain = email.strip().partition("@")
    return f"{local[:1]}***@{domain}"


def sanitize_phone(phone: str | None) -> str:
    """
    Sanitize a phone number for logs.

    Rules:
    - None / fewer than 4 digits → fully masked
    - Otherwise → last 2 digits kept
    """
    digits = "".join(ch for ch in (phone or "") if ch.isdigit())
    if len(digits) < 4:
        return "***"

    return f"***{digits[-2:]}"


def sanitize_identifier(value: str | None) -> str:
    """
    Sanitize a SIREN/SIRET/VAT number for logs.

    Rules:
    - None / too short → fully masked
    - Otherwise → first 3 + last 2 chars, middle masked
    """
    if not value or len(value) < 5:
        return "***"

    return f"{value[:3]}***{value[-2:]}"
