import logging
from contextlib import asynccontextmanager

from accountform.drafts.backends import JsonFileBackend, MemoryBackend
from accountform.lookup.insee_client import create_insee_client_from_env
from accountform.submission.dispatch import HttpSendDispatcher
from accountform.submission.documents import LocalDocumentSink
from accountform.submission.renderer import get_document_renderer
from core.csrf import CsrfManager
from core.encryption import FieldCipher
from core.rate_limit import InMemoryRateLimitStore
from core.settings import app_settings, form_settings, security_settings
from fastapi import FastAPI
from services.company_records import SecureCompanyRepository
from services.email_client import create_email_client_from_env
from services.form_sessions import FormSessionRegistry
from services.submission_mailer import SubmissionMailer

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""

    logger.info("Initializing INSEE client...")
    app.state.insee_client = create_insee_client_from_env()
    if not app.state.insee_client.api_key:
        logger.warning("INSEE_API_KEY not set; company search will fail with auth errors")

    logger.info("Initializing email client...")
    email_client = create_email_client_from_env()
    app.state.email_client = email_client
    app.state.submission_mailer = SubmissionMailer(email_client)

    logger.info("Initializing security components...")
    app.state.rate_limit_store = InMemoryRateLimitStore(
        max_requests=security_settings.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=security_settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.state.csrf_manager = CsrfManager(ttl_seconds=security_settings.CSRF_TOKEN_TTL_SECONDS)
    app.state.field_cipher = FieldCipher.from_secret(
        security_settings.ENCRYPTION_KEY.get_secret_value()
    )
    app.state.company_repository = SecureCompanyRepository(app.state.field_cipher)

    app.state.renderer = get_document_renderer(form_settings.PDF_RENDERING_ENABLED)

    if form_settings.SEND_API_BASE.strip():
        dispatcher = HttpSendDispatcher(form_settings.SEND_API_BASE.strip())
        logger.info(f"Submissions delivered through {dispatcher.url}")
    else:
        dispatcher = app.state.submission_mailer

    if form_settings.DRAFT_STORAGE_DIR.strip():
        backend = JsonFileBackend(form_settings.DRAFT_STORAGE_DIR.strip())
        logger.info(f"Drafts stored in {backend.directory}")
    else:
        backend = MemoryBackend()
        logger.info("Drafts stored in memory")

    app.state.form_sessions = FormSessionRegistry(
        backend=backend,
        directory=app.state.insee_client,
        renderer=app.state.renderer,
        dispatcher=dispatcher,
        settings=form_settings,
        document_sink=LocalDocumentSink(form_settings.documents_dir),
        report_errors=not app_settings.is_production,
    )
    logger.info("Form session registry ready")

    yield

    logger.info("Flushing pending drafts...")
    await app.state.form_sessions.close_all()
    logger.info("Shutdown complete")
