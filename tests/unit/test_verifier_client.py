"""Unit tests for the PhilSys remote verifier proxy (httpx.MockTransport)."""

import json

import httpx
import pytest

from core.lifespan import build_http_client
from docverify.cache.ttl_cache import TTLCache
from docverify.clients.verifier_client import (
    RemoteVerifier,
    canonical_request_key,
    normalize_pcn,
    parse_verify_cookie,
)
from docverify.core.exceptions import ValidationError, VerifierUnavailable
from docverify.models.dto import PsaVerifyRequest, VerificationStatus

VERIFY_URL = "https://verifier.test/api/verify"
COOKIE_URL = "https://cookies.test/grab"
TOKEN = "__verify-token=abc123"

REQUEST = PsaVerifyRequest(
    d="2023-06-01",
    dob="1990-01-01",
    pcn="1234-5678-9012-3456",
    pob="Quezon City",
    fn="JUAN",
    ln="DELACRUZ",
    mn="SANTOS",
    s="Male",
)


class FakeRemote:
    """Mock transport routing cookie and verify calls to configurable replies."""

    def __init__(self, cookie_reply=None, verify_reply=None):
        self.cookie_reply = cookie_reply or (lambda: httpx.Response(200, json={"cookie": TOKEN}))
        self.verify_reply = verify_reply or (lambda: httpx.Response(200, json={"verified": True}))
        self.cookie_calls = 0
        self.verify_requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == COOKIE_URL:
            self.cookie_calls += 1
            return self.cookie_reply()
        self.verify_requests.append(request)
        return self.verify_reply()


def make_verifier(remote: FakeRemote, clock) -> RemoteVerifier:
    return RemoteVerifier(
        httpx.AsyncClient(transport=httpx.MockTransport(remote)),
        cookie_cache=TTLCache(300, name="cookie", clock=clock),
        verdict_cache=TTLCache(120, name="verdict", clock=clock),
        verify_url=VERIFY_URL,
        cookie_issuer_url=COOKIE_URL,
        origin="https://verify.philsys.test",
        timeout=5,
    )


class TestHelpers:
    def test_normalize_pcn(self):
        assert normalize_pcn("1234-5678 9012-3456") == "1234567890123456"

    def test_canonical_key_ignores_pcn_formatting(self):
        other = REQUEST.model_copy(update={"pcn": "1234567890123456"})
        assert canonical_request_key(REQUEST) == canonical_request_key(other)
        assert json.loads(canonical_request_key(REQUEST))["pcn"] == "1234567890123456"

    @pytest.mark.parametrize(
        "headers, body_json, body_text",
        [
            (httpx.Headers([("set-cookie", f"{TOKEN}; Path=/; HttpOnly")]), None, ""),
            (httpx.Headers(), {"cookie": f"{TOKEN}; Path=/"}, ""),
            (httpx.Headers(), {"cookies": ["other=1", TOKEN]}, ""),
            (httpx.Headers(), {"headers": {"Set-Cookie": [f"{TOKEN}; Secure"]}}, ""),
            (httpx.Headers(), None, f"token is {TOKEN}"),
        ],
    )
    def test_parse_verify_cookie_sources(self, headers, body_json, body_text):
        assert parse_verify_cookie(headers, body_json, body_text) == TOKEN

    def test_parse_verify_cookie_missing(self):
        assert parse_verify_cookie(httpx.Headers(), {"cookie": "session=1"}, "nothing") is None


class TestRemoteVerifier:
    async def test_authentic_verdict_sends_cookie_and_body(self, clock):
        remote = FakeRemote()
        verdict = await make_verifier(remote, clock).verify(REQUEST)

        assert verdict.status is VerificationStatus.AUTHENTIC
        assert verdict.cached is False
        (request,) = remote.verify_requests
        assert request.headers["cookie"] == TOKEN
        assert request.headers["origin"] == "https://verify.philsys.test"
        body = json.loads(request.content)
        assert body["i"] == "PSA"
        assert body["sb"]["PCN"] == "1234567890123456"
        assert body["sb"]["sf"] == ""

    async def test_cookie_reused_until_expiry(self, clock):
        remote = FakeRemote()
        verifier = make_verifier(remote, clock)

        await verifier.get_session_cookie()
        await verifier.get_session_cookie()
        assert remote.cookie_calls == 1

        clock.advance(301)
        await verifier.get_session_cookie()
        assert remote.cookie_calls == 2

    async def test_verdict_cache_hit(self, clock):
        remote = FakeRemote()
        verifier = make_verifier(remote, clock)

        await verifier.verify(REQUEST)
        cached = await verifier.verify(REQUEST)

        assert cached.status is VerificationStatus.AUTHENTIC
        assert cached.cached is True
        assert cached.payload == {"verified": True}
        assert len(remote.verify_requests) == 1

        clock.advance(121)
        fresh = await verifier.verify(REQUEST)
        assert fresh.cached is False
        assert len(remote.verify_requests) == 2

    async def test_forbidden_is_fake_not_error(self, clock):
        remote = FakeRemote(
            verify_reply=lambda: httpx.Response(403, json={"message": "Record mismatch"})
        )
        verifier = make_verifier(remote, clock)
        verdict = await verifier.verify(REQUEST)

        assert verdict.status is VerificationStatus.FAKE
        assert verdict.message == "Record mismatch"
        assert len(verifier.verdict_cache) == 0

    async def test_fake_message_defaults_to_status(self, clock):
        remote = FakeRemote(verify_reply=lambda: httpx.Response(500, text="oops"))
        verdict = await make_verifier(remote, clock).verify(REQUEST)
        assert verdict.message == "Verifier failed with 500"

    async def test_missing_token_is_unavailable(self, clock):
        remote = FakeRemote(cookie_reply=lambda: httpx.Response(200, json={"ok": True}))
        with pytest.raises(VerifierUnavailable):
            await make_verifier(remote, clock).verify(REQUEST)
        assert remote.verify_requests == []

    async def test_cookie_issuer_error_is_unavailable(self, clock):
        remote = FakeRemote(cookie_reply=lambda: httpx.Response(502, json={"message": "down"}))
        with pytest.raises(VerifierUnavailable) as exc_info:
            await make_verifier(remote, clock).get_session_cookie()
        assert exc_info.value.reason == "down"

    async def test_timeout_is_unavailable(self, clock):
        def handler(request):
            raise httpx.ConnectTimeout("slow", request=request)

        verifier = RemoteVerifier(
            httpx.AsyncClient(transport=httpx.MockTransport(handler)),
            cookie_cache=TTLCache(300, clock=clock),
            verdict_cache=TTLCache(120, clock=clock),
            cookie_issuer_url=COOKIE_URL,
        )
        with pytest.raises(VerifierUnavailable) as exc_info:
            await verifier.verify(REQUEST)
        assert exc_info.value.http_status == 504

    async def test_short_pcn_rejected_before_any_call(self, clock):
        remote = FakeRemote()
        with pytest.raises(ValidationError):
            await make_verifier(remote, clock).verify(REQUEST.model_copy(update={"pcn": "1234"}))
        assert remote.cookie_calls == 0

    async def test_set_cookie_responses_do_not_accumulate(self, clock):
        rotated = "__verify-token=rotated; Path=/"
        remote = FakeRemote(
            cookie_reply=lambda: httpx.Response(
                200, headers={"set-cookie": f"{TOKEN}; Path=/"}, json={"cookie": TOKEN}
            ),
            verify_reply=lambda: httpx.Response(
                200, headers={"set-cookie": rotated}, json={"verified": True}
            ),
        )
        client = build_http_client(transport=httpx.MockTransport(remote))
        verifier = RemoteVerifier(
            client,
            cookie_cache=TTLCache(300, clock=clock),
            verdict_cache=TTLCache(120, clock=clock),
            verify_url=VERIFY_URL,
            cookie_issuer_url=COOKIE_URL,
        )

        await verifier.verify(REQUEST)
        await verifier.verify(REQUEST.model_copy(update={"fn": "MARIA"}))

        assert len(client.cookies.jar) == 0
        assert [r.headers["cookie"] for r in remote.verify_requests] == [TOKEN, TOKEN]
        await client.aclose()
