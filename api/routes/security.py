"""Security status and self-check endpoints."""

import logging
import time
from typing import Any, Optional

from accountform.core.config import MAX_LEGAL_DOCUMENT_SIZE_MB, SANITIZE_MAX_LENGTH
from api.schemas import SecurityCheckRequest
from core.dependencies import enforce_rate_limit
from core.settings import app_settings, security_settings
from core.validation import security_config_errors
from fastapi import APIRouter, Depends, Request, Response

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])
logger = logging.getLogger(__name__)

NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def _features(request: Request) -> dict[str, bool]:
    state = request.app.state
    enabled = security_settings.SECURITY_ENABLED
    return {
        "csrf": enabled and getattr(state, "csrf_manager", None) is not None,
        "encryption": bool(security_settings.ENCRYPTION_KEY.get_secret_value()),
        "rateLimit": enabled and getattr(state, "rate_limit_store", None) is not None,
        "validation": True,
        "securityHeaders": True,
    }


def _rate_limit_info(request: Request) -> Optional[dict[str, Any]]:
    decision = getattr(request.state, "rate_limit", None)
    if decision is None:
        return None
    return {
        "limit": decision.limit,
        "remaining": decision.remaining,
        "resetTime": int(decision.reset_at * 1000),
    }


@router.get("/security/status", tags=["security"])
async def security_status(request: Request, response: Response):
    features = _features(request)
    errors = security_config_errors()

    status = {
        "overall": security_settings.SECURITY_ENABLED and not errors,
        **{name: value for name, value in features.items() if name != "securityHeaders"},
        "headers": features["securityHeaders"],
        "environment": app_settings.APP_ENV,
        "timestamp": int(time.time() * 1000),
    }
    config = {
        "environment": app_settings.APP_ENV,
        "isEnabled": security_settings.SECURITY_ENABLED,
        "validationErrors": errors,
        "rateLimitInfo": _rate_limit_info(request),
        "features": features,
        "limits": {
            "maxFileSize": MAX_LEGAL_DOCUMENT_SIZE_MB * 1024 * 1024,
            "maxStringLength": SANITIZE_MAX_LENGTH,
            "rateLimitMaxRequests": security_settings.RATE_LIMIT_MAX_REQUESTS,
            "rateLimitWindowMs": security_settings.RATE_LIMIT_WINDOW_SECONDS * 1000,
        },
    }

    response.headers.update(NO_CACHE)
    return {
        "success": True,
        "status": status,
        "config": config,
        "message": "Statut de sécurité récupéré avec succès",
    }


@router.post("/security/status", tags=["security"])
async def security_health(request: Request, body: SecurityCheckRequest):
    features = _features(request)
    errors = security_config_errors()

    def check(name: str, ok: bool, on: str, off: str) -> dict[str, Any]:
        return {"name": name, "status": ok, "message": on if ok else off}

    checks = [
        check(
            "Configuration générale",
            security_settings.SECURITY_ENABLED,
            "Sécurité activée",
            "Sécurité désactivée",
        ),
        check(
            "Validation de configuration",
            not errors,
            "Configuration valide",
            f"Erreurs: {', '.join(errors)}",
        ),
        check("Protection CSRF", features["csrf"], "CSRF activé", "CSRF désactivé"),
        check(
            "Chiffrement des données",
            features["encryption"],
            "Chiffrement activé",
            "Chiffrement désactivé",
        ),
        check(
            "Limitation de taux",
            features["rateLimit"],
            "Rate limiting activé",
            "Rate limiting désactivé",
        ),
    ]

    if body.checkType == "full":
        origins = security_settings.allowed_origins
        checks.append(
            check("Headers de sécurité", True, "Headers configurés", "Headers absents")
        )
        checks.append(
            check(
                "Origines autorisées",
                bool(origins),
                f"{len(origins)} origines configurées",
                "Aucune origine configurée",
            )
        )

    overall = all(c["status"] for c in checks)
    logger.info(
        "Security check (%s): %s", body.checkType, "ok" if overall else "degraded"
    )
    return {
        "success": True,
        "health": {"overall": overall, "checks": checks},
        "timestamp": int(time.time() * 1000),
        "message": "Vérification de santé terminée",
    }
