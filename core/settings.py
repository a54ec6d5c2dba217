"""
Centralized application settings using Pydantic.

All environment variables are read once at startup and validated.
Use this instead of scattered os.getenv() calls throughout the codebase.
"""

from pydantic import SecretStr
from pydantic_settings import BaseSettings

from docverify.core import config


class DatabaseSettings(BaseSettings):
    """Database backend, connection and pool configuration."""

    DB_BACKEND: str = "postgres"
    DB_HOST: str = ""
    DB_PORT: int = 5432
    DB_NAME: str = ""
    DB_USER: str = ""
    DB_PASSWORD: SecretStr = SecretStr("")
    DB_SSL: bool = False
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 10.0
    DB_COMMAND_TIMEOUT: float = 10.0
    DB_MEMORY_SEED_PATH: str = ""

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def uses_memory(self) -> bool:
        return self.DB_BACKEND.strip().lower() == "memory"


class GeminiSettings(BaseSettings):
    """Extraction provider configuration."""

    GOOGLE_AI_API_KEY: SecretStr = SecretStr("")
    GEMINI_BASE_URL: str = config.GEMINI_BASE_URL
    GEMINI_MODELS: str = ",".join(config.PREFERRED_MODELS)
    GEMINI_TIMEOUT_SECONDS: float = config.GEMINI_TIMEOUT_SECONDS
    SEX_ENSEMBLE_ENABLED: bool = True
    SEX_REFERENCE_MALE_PATH: str = ""
    SEX_REFERENCE_FEMALE_PATH: str = ""
    SEX_CROP_BOX: str = ""

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}

    @property
    def models(self) -> list[str]:
        """Model identifiers in priority order."""
        return [m.strip() for m in self.GEMINI_MODELS.split(",") if m.strip()]


class VerifierSettings(BaseSettings):
    """PhilSys remote verifier configuration."""

    PSA_VERIFY_URL: str = config.PSA_VERIFY_URL
    COOKIE_GRABBER_URL: str = config.COOKIE_GRABBER_URL
    VERIFIER_ORIGIN: str = config.VERIFIER_ORIGIN
    COOKIE_TTL_SECONDS: float = config.COOKIE_TTL_SECONDS
    VERIFY_TTL_SECONDS: float = config.VERIFY_TTL_SECONDS
    VERIFIER_FETCH_TIMEOUT_SECONDS: float = config.VERIFIER_FETCH_TIMEOUT_SECONDS

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class CacheSettings(BaseSettings):
    """Extraction result cache configuration."""

    OCR_CACHE_TTL_SECONDS: float = config.OCR_CACHE_TTL_SECONDS
    OCR_CACHE_SWEEP_SECONDS: float = config.OCR_CACHE_SWEEP_SECONDS

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


class AppSettings(BaseSettings):
    """General application settings."""

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ROOT_PATH: str = ""

    model_config = {"case_sensitive": True, "env_file": ".env", "extra": "ignore"}


# Singleton instances - loaded once at module import
db_settings = DatabaseSettings()
gemini_settings = GeminiSettings()
verifier_settings = VerifierSettings()
cache_settings = CacheSettings()
app_settings = AppSettings()
