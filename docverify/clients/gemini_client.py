"""Async client for the Gemini ``generateContent`` REST API.

One call sends a prompt plus inline images and expects a single JSON object
back. Every failure is mapped onto the typed provider errors so callers can
classify it without inspecting messages:

- ProviderBlocked: prompt or candidate blocked by safety policy
- ProviderTruncated: no parseable JSON and the output hit the token cap
- ProviderMalformedOutput: no parseable JSON for any other reason
- ModelUnavailable: model not found / unsupported for this key or region
- ExternalServiceError: transport failures, rate limits and other HTTP errors
"""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Optional, Protocol, Sequence

import httpx

from docverify.core.config import (
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    ERROR_BODY_MAX_CHARS,
    GEMINI_BASE_URL,
)
from docverify.core.exceptions import (
    ExternalServiceError,
    ModelUnavailable,
    ProviderBlocked,
    ProviderMalformedOutput,
    ProviderTruncated,
)
from docverify.utils.parsers import Parsed, parse_first_object

logger = logging.getLogger(__name__)

SERVICE_NAME = "GEMINI"

_MODEL_UNAVAILABLE_PATTERN = re.compile(r"not found|unsupported|not supported", re.I)

_BLOCKING_FINISH_REASONS = frozenset(
    {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII", "IMAGE_SAFETY"}
)


@dataclass(frozen=True)
class ImagePart:
    data: bytes
    mime_type: str


@dataclass(frozen=True)
class GenerationRequest:
    """One provider call: prompt, images, optional schema and output cap."""

    model: str
    prompt: str
    images: Sequence[ImagePart]
    max_output_tokens: int
    response_schema: Optional[dict[str, Any]] = None
    temperature: float = DEFAULT_TEMPERATURE
    extra_text: Sequence[str] = field(default_factory=tuple)


class ExtractionProvider(Protocol):
    """Boundary to the vision/LLM provider used by every extraction pass."""

    async def generate_json(
        self, request: GenerationRequest, api_key: str
    ) -> dict[str, Any]: ...


def build_request_body(request: GenerationRequest) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [{"text": request.prompt}]
    for text in request.extra_text:
        parts.append({"text": text})
    for image in request.images:
        parts.append(
            {
                "inline_data": {
                    "mime_type": image.mime_type,
                    "data": base64.b64encode(image.data).decode("ascii"),
                }
            }
        )

    generation_config: dict[str, Any] = {
        "temperature": request.temperature,
        "topK": DEFAULT_TOP_K,
        "topP": DEFAULT_TOP_P,
        "maxOutputTokens": request.max_output_tokens,
        "responseMimeType": "application/json",
    }
    if request.response_schema is not None:
        generation_config["responseSchema"] = request.response_schema

    return {
        "contents": [{"role": "user", "parts": parts}],
        "generationConfig": generation_config,
    }


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:ERROR_BODY_MAX_CHARS]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])[:ERROR_BODY_MAX_CHARS]
    return response.text[:ERROR_BODY_MAX_CHARS]


def interpret_response(model: str, body: dict[str, Any]) -> dict[str, Any]:
    """Turn a ``generateContent`` response body into a JSON object or a typed error."""
    feedback = body.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        ratings = ", ".join(
            f"{r.get('category')}:{r.get('probability')}"
            for r in feedback.get("safetyRatings") or []
        )
        raise ProviderBlocked(
            model,
            f"Output blocked by safety ({feedback['blockReason']}). Ratings: {ratings or 'n/a'}",
        )

    candidates = body.get("candidates") or []
    if not candidates:
        raise ProviderMalformedOutput(model, "response has no candidates")

    candidate = candidates[0]
    finish_reason = candidate.get("finishReason") or "UNKNOWN"
    if finish_reason in _BLOCKING_FINISH_REASONS:
        raise ProviderBlocked(model, f"Output blocked by safety ({finish_reason})")

    texts = [
        part["text"]
        for part in (candidate.get("content") or {}).get("parts") or []
        if isinstance(part.get("text"), str)
    ]
    if len(texts) > 1:
        texts.append("".join(texts))

    outcome = parse_first_object(texts)
    if isinstance(outcome, Parsed):
        return outcome.value

    reason = f"Model did not return valid JSON (finishReason={finish_reason}): {outcome.reason}"
    if finish_reason == "MAX_TOKENS":
        raise ProviderTruncated(model, reason)
    raise ProviderMalformedOutput(model, reason)


class GeminiClient:
    """
    Gemini REST client over a shared ``httpx.AsyncClient``.

    Args:
        http_client: Shared async client (owned by the application lifespan)
        base_url: API root, e.g. https://generativelanguage.googleapis.com/v1beta
        timeout: Per-call timeout in seconds
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = GEMINI_BASE_URL,
        timeout: float = 60.0,
    ):
        self._client = http_client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def generate_json(
        self, request: GenerationRequest, api_key: str
    ) -> dict[str, Any]:
        """
        Run one ``generateContent`` call and return the JSON object it produced.

        Raises:
            ProviderError subclasses, or ExternalServiceError for transport
            and HTTP failures.
        """
        url = f"{self.base_url}/models/{request.model}:generateContent"
        try:
            response = await self._client.post(
                url,
                json=build_request_body(request),
                headers={"x-goog-api-key": api_key},
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ExternalServiceError(
                service_name=SERVICE_NAME,
                error_type="timeout",
                details={"model": request.model, "reason": str(e) or "timed out"},
            ) from e
        except httpx.RequestError as e:
            raise ExternalServiceError(
                service_name=SERVICE_NAME,
                error_type="unavailable",
                details={"model": request.model, "reason": str(e)},
            ) from e

        if response.is_success:
            try:
                body = response.json()
            except ValueError as e:
                raise ProviderMalformedOutput(
                    request.model, "response body is not JSON"
                ) from e
            return interpret_response(request.model, body)

        message = _error_message(response)
        if response.status_code == HTTPStatus.NOT_FOUND or (
            response.status_code == HTTPStatus.BAD_REQUEST
            and _MODEL_UNAVAILABLE_PATTERN.search(message)
        ):
            raise ModelUnavailable(request.model, message or "model not found")

        error_type = (
            "rate_limit"
            if response.status_code == HTTPStatus.TOO_MANY_REQUESTS
            else "error"
        )
        logger.warning(
            "Gemini returned HTTP %s",
            response.status_code,
            extra={"model": request.model, "http_status": response.status_code},
        )
        raise ExternalServiceError(
            service_name=SERVICE_NAME,
            error_type=error_type,
            details={
                "model": request.model,
                "http_code": response.status_code,
                "body": message,
            },
        )
