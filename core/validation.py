"""Application startup validation checks.

Validates critical settings and configuration before the application
starts serving, so a misconfigured environment fails fast instead of on the
first verification request.
"""

import logging
import re
from pathlib import Path

from docverify.utils.image_crop import parse_crop_box

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^https?://.+")


def validate_all_settings() -> None:
    """Validate all critical settings at application startup.

    Raises:
        RuntimeError: If any critical setting is missing or invalid
    """
    from core.settings import (
        cache_settings,
        db_settings,
        gemini_settings,
        verifier_settings,
    )

    if db_settings.DB_BACKEND.strip().lower() not in ("postgres", "memory"):
        raise RuntimeError(
            f"DB_BACKEND must be 'postgres' or 'memory', got {db_settings.DB_BACKEND!r}"
        )

    critical_checks = []
    if not db_settings.uses_memory:
        critical_checks += [
            (db_settings.DB_HOST, "DB_HOST", "Database connection"),
            (db_settings.DB_NAME, "DB_NAME", "Database connection"),
            (db_settings.DB_USER, "DB_USER", "Database connection"),
            (
                db_settings.DB_PASSWORD.get_secret_value(),
                "DB_PASSWORD",
                "Database connection",
            ),
        ]
    critical_checks.append((gemini_settings.GEMINI_MODELS, "GEMINI_MODELS", "Extraction"))

    missing = []
    for value, name, purpose in critical_checks:
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(f"  - {name} (required for {purpose})")

    if missing:
        error_msg = (
            "Missing critical environment variables:\n"
            + "\n".join(missing)
            + "\n\nPlease check your .env file or environment configuration."
        )
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if not gemini_settings.GOOGLE_AI_API_KEY.get_secret_value():
        logger.warning("GOOGLE_AI_API_KEY is not set; OCR verification will fail")

    url_checks = [
        (gemini_settings.GEMINI_BASE_URL, "GEMINI_BASE_URL"),
        (verifier_settings.PSA_VERIFY_URL, "PSA_VERIFY_URL"),
        (verifier_settings.COOKIE_GRABBER_URL, "COOKIE_GRABBER_URL"),
        (verifier_settings.VERIFIER_ORIGIN, "VERIFIER_ORIGIN"),
    ]
    invalid_urls = [
        f"  - {name}={url} (must start with http:// or https://)"
        for url, name in url_checks
        if not URL_PATTERN.match(url or "")
    ]
    if invalid_urls:
        error_msg = "Invalid URL formats:\n" + "\n".join(invalid_urls)
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    if not (1 <= db_settings.DB_PORT <= 65535):
        raise RuntimeError(f"DB_PORT must be 1-65535, got {db_settings.DB_PORT}")

    if db_settings.DB_POOL_MIN_SIZE > db_settings.DB_POOL_MAX_SIZE:
        raise RuntimeError(
            f"DB_POOL_MIN_SIZE ({db_settings.DB_POOL_MIN_SIZE}) "
            f"cannot exceed DB_POOL_MAX_SIZE ({db_settings.DB_POOL_MAX_SIZE})"
        )

    for value, name in (
        (verifier_settings.COOKIE_TTL_SECONDS, "COOKIE_TTL_SECONDS"),
        (verifier_settings.VERIFY_TTL_SECONDS, "VERIFY_TTL_SECONDS"),
        (verifier_settings.VERIFIER_FETCH_TIMEOUT_SECONDS, "VERIFIER_FETCH_TIMEOUT_SECONDS"),
        (cache_settings.OCR_CACHE_TTL_SECONDS, "OCR_CACHE_TTL_SECONDS"),
        (cache_settings.OCR_CACHE_SWEEP_SECONDS, "OCR_CACHE_SWEEP_SECONDS"),
        (gemini_settings.GEMINI_TIMEOUT_SECONDS, "GEMINI_TIMEOUT_SECONDS"),
    ):
        if value <= 0:
            raise RuntimeError(f"{name} must be positive, got {value}")

    if verifier_settings.VERIFY_TTL_SECONDS >= verifier_settings.COOKIE_TTL_SECONDS:
        raise RuntimeError(
            f"VERIFY_TTL_SECONDS ({verifier_settings.VERIFY_TTL_SECONDS}) "
            f"must be shorter than COOKIE_TTL_SECONDS ({verifier_settings.COOKIE_TTL_SECONDS})"
        )

    try:
        parse_crop_box(gemini_settings.SEX_CROP_BOX)
    except ValueError as e:
        raise RuntimeError(f"SEX_CROP_BOX is invalid: {e}") from e

    for path, name in (
        (gemini_settings.SEX_REFERENCE_MALE_PATH, "SEX_REFERENCE_MALE_PATH"),
        (gemini_settings.SEX_REFERENCE_FEMALE_PATH, "SEX_REFERENCE_FEMALE_PATH"),
        (db_settings.DB_MEMORY_SEED_PATH, "DB_MEMORY_SEED_PATH"),
    ):
        if path and not Path(path).is_file():
            raise RuntimeError(f"{name} does not point to a file: {path}")

    logger.info("All critical settings validated successfully")
    if db_settings.uses_memory:
        logger.info("  - Database: in-memory backend")
    else:
        logger.info(
            f"  - Database: {db_settings.DB_HOST}:{db_settings.DB_PORT}/{db_settings.DB_NAME}"
        )
    logger.info(f"  - Gemini models: {', '.join(gemini_settings.models)}")
    logger.info(f"  - Verifier: {verifier_settings.PSA_VERIFY_URL}")
