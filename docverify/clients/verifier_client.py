"""
PhilSys remote verifier proxy.

Keeps one process-wide session cookie (fetched from the cookie issuer and
cached with its own TTL) and memoizes successful verdicts by a canonical,
key-sorted JSON fingerprint of the normalized request. A non-2xx answer
from the verifier is a FAKE verdict, not an infrastructure failure; network
and timeout errors raise VerifierUnavailable.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

import httpx

from docverify.cache.inflight import InFlightDeduplicator
from docverify.cache.ttl_cache import TTLCache
from docverify.core.config import (
    COOKIE_GRABBER_URL,
    PCN_LENGTH,
    PSA_ISSUER,
    PSA_VERIFY_URL,
    VERIFIER_FETCH_TIMEOUT_SECONDS,
    VERIFIER_ORIGIN,
    VERIFY_COOKIE_NAME,
)
from docverify.core.exceptions import ValidationError, VerifierUnavailable
from docverify.models.dto import PsaVerifyRequest, RemoteVerdict, VerificationStatus

logger = logging.getLogger(__name__)

COOKIE_CACHE_KEY = "verify.philsys.gov.ph"

_TOKEN_PATTERN = re.compile(re.escape(VERIFY_COOKIE_NAME) + r"=[^;\s\"',]+", re.I)


def normalize_pcn(pcn: str) -> str:
    return re.sub(r"[^0-9]", "", pcn or "")


def canonical_request_key(request: PsaVerifyRequest) -> str:
    """Key-sorted JSON of the normalized request fields."""
    normalized = request.model_dump()
    normalized["pcn"] = normalize_pcn(request.pcn)
    normalized["sf"] = request.sf or ""
    return json.dumps(normalized, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def build_verify_body(request: PsaVerifyRequest) -> dict[str, Any]:
    return {
        "d": request.d,
        "i": PSA_ISSUER,
        "sb": {
            "BF": "",
            "DOB": request.dob,
            "PCN": normalize_pcn(request.pcn),
            "POB": request.pob,
            "fn": request.fn,
            "ln": request.ln,
            "mn": request.mn,
            "s": request.s,
            "sf": request.sf or "",
        },
    }


def _find_token(value: Any) -> Optional[str]:
    if isinstance(value, str):
        match = _TOKEN_PATTERN.search(value)
        return match.group(0) if match else None
    return None


def parse_verify_cookie(
    headers: httpx.Headers, body_json: Any, body_text: str
) -> Optional[str]:
    """
    Find ``__verify-token=...`` in a cookie-issuer response.

    Priority: set-cookie header, JSON ``cookie`` string, JSON ``cookies``
    array, nested ``headers`` object, then the raw body text.
    """
    for header_value in headers.get_list("set-cookie"):
        token = _find_token(header_value)
        if token:
            return token

    if isinstance(body_json, dict):
        token = _find_token(body_json.get("cookie"))
        if token:
            return token

        cookies = body_json.get("cookies")
        if isinstance(cookies, list):
            for cookie in cookies:
                token = _find_token(cookie)
                if token:
                    return token

        nested = body_json.get("headers") or body_json.get("header") or {}
        if isinstance(nested, dict):
            for key, value in nested.items():
                if key.lower() == "set-cookie":
                    values = value if isinstance(value, list) else [value]
                    for item in values:
                        token = _find_token(item)
                        if token:
                            return token

    return _find_token(body_text)


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class RemoteVerifier:
    """
    Session-cookie management and verdict caching around the PhilSys API.

    Args:
        http_client: Shared async client (owned by the application lifespan)
        cookie_cache: TTL cache for the session cookie
        verdict_cache: TTL cache for successful verdicts (shorter TTL)
        verify_url / cookie_issuer_url / origin: Remote endpoints
        timeout: Bound for every cookie or verify call, in seconds
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cookie_cache: TTLCache[str],
        verdict_cache: TTLCache[Any],
        verify_url: str = PSA_VERIFY_URL,
        cookie_issuer_url: str = COOKIE_GRABBER_URL,
        origin: str = VERIFIER_ORIGIN,
        timeout: float = VERIFIER_FETCH_TIMEOUT_SECONDS,
    ):
        self._client = http_client
        self.cookie_cache = cookie_cache
        self.verdict_cache = verdict_cache
        self.verify_url = verify_url
        self.cookie_issuer_url = cookie_issuer_url
        self.origin = origin.rstrip("/")
        self.timeout = timeout
        self._refresh = InFlightDeduplicator[str](name="cookie_refresh")

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise VerifierUnavailable("timeout", f"{method} {url} timed out") from e
        except httpx.RequestError as e:
            raise VerifierUnavailable("unavailable", f"{method} {url} failed: {e}") from e

    async def get_session_cookie(self) -> str:
        """Cached cookie, or a synchronous refresh shared by concurrent callers."""
        cookie = self.cookie_cache.get(COOKIE_CACHE_KEY)
        if cookie:
            return cookie
        return await self._refresh.run(COOKIE_CACHE_KEY, self._fetch_cookie)

    async def _fetch_cookie(self) -> str:
        response = await self._send("GET", self.cookie_issuer_url)
        body_json = _json_or_none(response)

        if not response.is_success:
            message = (
                body_json.get("message") if isinstance(body_json, dict) else None
            ) or f"Cookie grabber failed with {response.status_code}"
            raise VerifierUnavailable("error", message)

        cookie = parse_verify_cookie(response.headers, body_json, response.text)
        if not cookie:
            raise VerifierUnavailable(
                "error",
                f"Could not extract {VERIFY_COOKIE_NAME} from cookie grabber response",
            )

        self.cookie_cache.set(COOKIE_CACHE_KEY, cookie)
        logger.info("Verifier session cookie refreshed", extra={"service": "VERIFIER"})
        return cookie

    async def verify(self, request: PsaVerifyRequest) -> RemoteVerdict:
        """
        Verify PSA identity fields against PhilSys.

        Raises:
            ValidationError: PCN is not 16 digits after normalization
            VerifierUnavailable: Cookie issuer or verifier unreachable
        """
        if len(normalize_pcn(request.pcn)) != PCN_LENGTH:
            raise ValidationError(
                f"PCN must contain exactly {PCN_LENGTH} digits", field="pcn"
            )

        key = canonical_request_key(request)
        cached = self.verdict_cache.get(key)
        if cached is not None:
            logger.info("Verifier verdict cache hit", extra={"cached": True})
            return RemoteVerdict(
                status=VerificationStatus.AUTHENTIC, payload=cached, cached=True
            )

        cookie = await self.get_session_cookie()
        response = await self._send(
            "POST",
            self.verify_url,
            json=build_verify_body(request),
            headers={
                "Accept": "*/*",
                "Accept-Language": "en-US,en;q=0.9",
                "Cache-Control": "no-cache",
                "Content-Type": "application/json",
                "Origin": self.origin,
                "Referer": f"{self.origin}/",
                "Cookie": cookie,
            },
        )
        body_json = _json_or_none(response)

        if not response.is_success:
            message = None
            if isinstance(body_json, dict):
                message = body_json.get("message") or body_json.get("error")
            message = message or f"Verifier failed with {response.status_code}"
            logger.info(
                "Verifier rejected request",
                extra={"http_status": response.status_code, "service": "VERIFIER"},
            )
            return RemoteVerdict(
                status=VerificationStatus.FAKE, payload=body_json, message=str(message)
            )

        payload = body_json if body_json is not None else {"raw": response.text}
        self.verdict_cache.set(key, payload)
        return RemoteVerdict(status=VerificationStatus.AUTHENTIC, payload=payload)
