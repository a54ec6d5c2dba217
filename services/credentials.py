"""API key lookup for external providers."""

from __future__ import annotations

import logging
from typing import Protocol

from docverify.core.config import GEMINI_API_KEY_PROVIDER
from docverify.core.exceptions import ExternalServiceError
from docverify.models.dto import ApiKey

logger = logging.getLogger(__name__)


class ApiKeyProvider(Protocol):
    async def get_api_key(self, provider_name: str) -> ApiKey: ...


class SettingsApiKeyProvider:
    """Serves keys from application settings (``GOOGLE_AI_API_KEY``)."""

    def __init__(self, keys: dict[str, str]):
        self._keys = {name: value for name, value in keys.items() if value}

    @classmethod
    def from_settings(cls) -> "SettingsApiKeyProvider":
        from core.settings import gemini_settings

        return cls(
            {GEMINI_API_KEY_PROVIDER: gemini_settings.GOOGLE_AI_API_KEY.get_secret_value()}
        )

    async def get_api_key(self, provider_name: str) -> ApiKey:
        key = self._keys.get(provider_name)
        if not key:
            logger.error("No API key configured for provider %s", provider_name)
            raise ExternalServiceError(
                service_name=provider_name,
                error_type="unavailable",
                message=f"API key for {provider_name} is not configured",
                retryable=False,
            )
        return ApiKey(api_key=key)
