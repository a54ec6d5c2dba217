"""FastAPI application entry point."""

from dotenv import load_dotenv

load_dotenv()

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from pydantic_core import ValidationError as PydanticCoreValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import health, user, verification
from core.error_handlers import (
    handle_app_error,
    handle_http_error,
    handle_pydantic_error,
    handle_unknown_error,
    handle_validation_error,
)
from core.lifespan import lifespan
from core.middleware import trace_id_middleware
from core.openapi import custom_openapi
from core.settings import app_settings
from docverify.core.exceptions import BaseError
from docverify.core.logging_config import configure_structured_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)

    app = FastAPI(
        title="Document Verification API",
        version="1.0.0",
        description="Verifies Philippine identity documents (PhilSys, PSA, voter certificates)",
        docs_url="/docs",
        redoc_url="/redoc",
        root_path=app_settings.ROOT_PATH,
        lifespan=lifespan,
    )

    app.openapi = lambda: custom_openapi(app)

    # 1. Middleware
    app.middleware("http")(trace_id_middleware)

    # 2. Exception handlers
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(PydanticCoreValidationError, handle_pydantic_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(BaseError, handle_app_error)
    app.add_exception_handler(Exception, handle_unknown_error)

    # 3. Routes
    app.include_router(health.router)
    app.include_router(user.router)
    app.include_router(verification.router)
    return app


app = create_app()
