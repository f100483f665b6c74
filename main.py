"""FastAPI application entry point."""

from dotenv import load_dotenv

load_dotenv()

import logging

from accountform.core.exceptions import BaseError
from accountform.core.logging_config import configure_structured_logging
from api.routes import csrf, form, health, search, secure_company, security, send
from core.error_handlers import (
    handle_app_error,
    handle_http_error,
    handle_pydantic_error,
    handle_unknown_error,
    handle_validation_error,
)
from core.lifespan import lifespan
from core.middleware import security_headers_middleware, trace_id_middleware
from core.openapi import custom_openapi
from core.settings import app_settings
from core.validation import validate_all_settings
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic_core import ValidationError as PydanticCoreValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
logger = logging.getLogger(__name__)

# Validate environment before starting application
validate_all_settings()

# Initialize FastAPI app
app = FastAPI(
    title="XEILOM Professional Account API",
    version="1.0.0",
    description="Multi-step professional account form: company lookup, drafts and submission",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Custom OpenAPI
app.openapi = lambda: custom_openapi(app)

# 1. Register Middleware
app.middleware("http")(security_headers_middleware)
app.middleware("http")(trace_id_middleware)

# 2. Register Exception Handlers
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(PydanticCoreValidationError, handle_pydantic_error)
app.add_exception_handler(StarletteHTTPException, handle_http_error)
app.add_exception_handler(BaseError, handle_app_error)
app.add_exception_handler(Exception, handle_unknown_error)

# Routes
app.include_router(health.router)
app.include_router(search.router)
app.include_router(send.router)
app.include_router(csrf.router)
app.include_router(security.router)
app.include_router(secure_company.router)
app.include_router(form.router)
