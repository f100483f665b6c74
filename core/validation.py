"""Application startup validation checks.

Validates critical settings and configuration before application starts.
Settings classes define data, this module validates behavior.
"""

import logging
import re

logger = logging.getLogger(__name__)

MIN_ENCRYPTION_SECRET_LENGTH = 32


def security_config_errors() -> list[str]:
    """Problems with the security configuration, as user-facing messages.

    Used by startup validation and reported by ``/security/status``.
    """
    from core.settings import security_settings

    errors = []
    secret = security_settings.ENCRYPTION_KEY.get_secret_value()
    if not secret:
        errors.append("ENCRYPTION_KEY non défini (clé éphémère utilisée)")
    elif len(secret) < MIN_ENCRYPTION_SECRET_LENGTH:
        errors.append(
            f"ENCRYPTION_KEY trop courte (minimum {MIN_ENCRYPTION_SECRET_LENGTH} caractères)"
        )
    if security_settings.CSRF_TOKEN_TTL_SECONDS <= 0:
        errors.append("CSRF_TOKEN_TTL_SECONDS doit être positif")
    if security_settings.RATE_LIMIT_MAX_REQUESTS <= 0:
        errors.append("RATE_LIMIT_MAX_REQUESTS doit être positif")
    if security_settings.RATE_LIMIT_WINDOW_SECONDS <= 0:
        errors.append("RATE_LIMIT_WINDOW_SECONDS doit être positif")
    return errors


def validate_all_settings() -> None:
    """Validate all critical settings at application startup.

    Secrets are only mandatory in production; development runs with an
    ephemeral encryption key and fails lookups/emails at request time.

    Raises:
        RuntimeError: If any critical setting is missing or invalid
    """
    from core.settings import (
        app_settings,
        email_settings,
        form_settings,
        insee_settings,
        security_settings,
    )

    if app_settings.is_production:
        critical_checks = [
            (
                insee_settings.INSEE_API_KEY.get_secret_value(),
                "INSEE_API_KEY",
                "Company lookup",
            ),
            (
                email_settings.RESEND_API_KEY.get_secret_value(),
                "RESEND_API_KEY",
                "Email delivery",
            ),
            (
                security_settings.ENCRYPTION_KEY.get_secret_value(),
                "ENCRYPTION_KEY",
                "Field encryption",
            ),
        ]

        missing = []
        for value, name, purpose in critical_checks:
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(f"  - {name} (required for {purpose})")

        if missing:
            error_msg = (
                "❌ Missing critical environment variables:\n"
                + "\n".join(missing)
                + "\n\nPlease check your .env file or environment configuration."
            )
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    url_pattern = re.compile(r"^https?://.+")
    url_checks = [
        (insee_settings.INSEE_API_BASE, "INSEE_API_BASE"),
        (email_settings.RESEND_API_URL, "RESEND_API_URL"),
        (form_settings.SEND_API_BASE.strip(), "SEND_API_BASE"),
    ]

    invalid_urls = []
    for url, name in url_checks:
        if url and not url_pattern.match(url):
            invalid_urls.append(
                f"  - {name}={url} (must start with http:// or https://)"
            )

    if invalid_urls:
        error_msg = "❌ Invalid URL formats:\n" + "\n".join(invalid_urls)
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    positive_checks = [
        (security_settings.RATE_LIMIT_MAX_REQUESTS, "RATE_LIMIT_MAX_REQUESTS"),
        (security_settings.RATE_LIMIT_WINDOW_SECONDS, "RATE_LIMIT_WINDOW_SECONDS"),
        (security_settings.CSRF_TOKEN_TTL_SECONDS, "CSRF_TOKEN_TTL_SECONDS"),
        (form_settings.DRAFT_RETENTION_DAYS, "DRAFT_RETENTION_DAYS"),
        (form_settings.SEARCH_MIN_LENGTH, "SEARCH_MIN_LENGTH"),
        (form_settings.SESSION_IDLE_TTL_SECONDS, "SESSION_IDLE_TTL_SECONDS"),
    ]
    for value, name in positive_checks:
        if value <= 0:
            raise RuntimeError(f"{name} must be positive, got {value}")

    for value, name in (
        (form_settings.DRAFT_DEBOUNCE_SECONDS, "DRAFT_DEBOUNCE_SECONDS"),
        (form_settings.SEARCH_DEBOUNCE_SECONDS, "SEARCH_DEBOUNCE_SECONDS"),
        (form_settings.STEP_TRANSITION_SECONDS, "STEP_TRANSITION_SECONDS"),
    ):
        if value < 0:
            raise RuntimeError(f"{name} cannot be negative, got {value}")

    for problem in security_config_errors():
        logger.warning(f"Security configuration: {problem}")

    logger.info("✅ All critical settings validated successfully")
    logger.info(f"  - Environment: {app_settings.APP_ENV}")
    logger.info(f"  - INSEE: {insee_settings.INSEE_API_BASE}")
    logger.info(f"  - Email: {email_settings.RESEND_API_URL} -> {email_settings.TEAM_EMAIL}")
    logger.info(f"  - PDF rendering: {form_settings.PDF_RENDERING_ENABLED}")
