import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from http.cookiejar import CookieJar, DefaultCookiePolicy
from pathlib import Path
from typing import Optional

import httpx
from fastapi import FastAPI

from core.settings import (
    cache_settings,
    db_settings,
    gemini_settings,
    verifier_settings,
)
from core.validation import validate_all_settings
from docverify.cache.inflight import InFlightDeduplicator
from docverify.cache.ttl_cache import TTLCache, run_periodic_sweep
from docverify.clients.gemini_client import GeminiClient, ImagePart
from docverify.clients.verifier_client import RemoteVerifier
from docverify.database.manager import create_database_manager_from_settings
from docverify.database.memory import InMemoryRepository
from docverify.database.repository import PostgresRepository
from docverify.orchestrator import ExtractionPipeline
from docverify.processors.extractor import DocumentExtractor
from docverify.processors.sex_ensemble import ReferenceImage, SexDisambiguator
from docverify.processors.structured_code import StructuredCodeReader
from docverify.utils.file_detection import mime_type_for
from docverify.utils.image_crop import parse_crop_box
from services.credentials import SettingsApiKeyProvider
from services.user_service import UserService
from services.verification_service import VerificationService

logger = logging.getLogger(__name__)


def load_reference_images() -> list[ReferenceImage]:
    """Reference images for the sex ensemble, from the configured paths."""
    references = []
    for label, path in (
        ("Male", gemini_settings.SEX_REFERENCE_MALE_PATH),
        ("Female", gemini_settings.SEX_REFERENCE_FEMALE_PATH),
    ):
        if not path:
            continue
        data = Path(path).read_bytes()
        references.append(ReferenceImage(label, ImagePart(data, mime_type_for(data))))
    return references


def build_extraction_pipeline(
    http_client: httpx.AsyncClient, ocr_cache: TTLCache
) -> ExtractionPipeline:
    provider = GeminiClient(
        http_client,
        base_url=gemini_settings.GEMINI_BASE_URL,
        timeout=gemini_settings.GEMINI_TIMEOUT_SECONDS,
    )
    models = gemini_settings.models
    disambiguator = (
        SexDisambiguator(provider, models) if gemini_settings.SEX_ENSEMBLE_ENABLED else None
    )
    return ExtractionPipeline(
        qr_reader=StructuredCodeReader(provider, models),
        extractor=DocumentExtractor(provider, models),
        disambiguator=disambiguator,
        cache=ocr_cache,
        inflight=InFlightDeduplicator(name="ocr"),
        api_key_provider=SettingsApiKeyProvider.from_settings(),
        reference_images=load_reference_images(),
        crop_box=parse_crop_box(gemini_settings.SEX_CROP_BOX),
    )


def build_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Shared outbound client whose cookie jar refuses every Set-Cookie.

    Verifier sessions travel only in the explicit ``Cookie`` header.
    """
    jar = CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))
    return httpx.AsyncClient(cookies=jar, transport=transport)


def build_remote_verifier(http_client: httpx.AsyncClient) -> RemoteVerifier:
    return RemoteVerifier(
        http_client,
        cookie_cache=TTLCache(verifier_settings.COOKIE_TTL_SECONDS, name="cookie"),
        verdict_cache=TTLCache(verifier_settings.VERIFY_TTL_SECONDS, name="verdict"),
        verify_url=verifier_settings.PSA_VERIFY_URL,
        cookie_issuer_url=verifier_settings.COOKIE_GRABBER_URL,
        origin=verifier_settings.VERIFIER_ORIGIN,
        timeout=verifier_settings.VERIFIER_FETCH_TIMEOUT_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""
    validate_all_settings()

    db_manager = None
    repository: Optional[object] = None
    if db_settings.uses_memory:
        repository = (
            InMemoryRepository.from_seed_file(db_settings.DB_MEMORY_SEED_PATH)
            if db_settings.DB_MEMORY_SEED_PATH
            else InMemoryRepository()
        )
        logger.info("Using in-memory repository")
    else:
        logger.info("Initializing database connection pool...")
        try:
            db_manager = create_database_manager_from_settings()
            await db_manager.connect()
            repository = PostgresRepository(db_manager)
            logger.info("Database pool ready")
        except Exception as e:
            logger.error(f"Database pool initialization failed: {e}", exc_info=True)
            logger.warning("Application will continue without database connectivity")
            db_manager = None

    http_client = build_http_client()
    ocr_cache = TTLCache(cache_settings.OCR_CACHE_TTL_SECONDS, name="ocr")
    verifier = build_remote_verifier(http_client)

    app.state.db_manager = db_manager
    app.state.repository = repository
    app.state.http_client = http_client
    app.state.ocr_cache = ocr_cache
    app.state.verifier = verifier
    app.state.user_service = UserService(repository) if repository else None
    app.state.verification_service = (
        VerificationService(
            repository, build_extraction_pipeline(http_client, ocr_cache), verifier
        )
        if repository
        else None
    )

    sweep_task = asyncio.create_task(
        run_periodic_sweep(ocr_cache, cache_settings.OCR_CACHE_SWEEP_SECONDS)
    )

    yield

    sweep_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep_task
    await http_client.aclose()
    if db_manager:
        logger.info("Closing database connection pool...")
        await db_manager.disconnect()
