"""API tests with FastAPI TestClient and dependency overrides."""

import httpx
import pytest
from fastapi.testclient import TestClient

from core.dependencies import get_repository, get_user_service, get_verification_service
from docverify.cache.ttl_cache import TTLCache
from docverify.clients.verifier_client import RemoteVerifier
from fakes import PNG_BYTES, ScriptedProvider, build_pipeline, is_qr_request, no_qr
from main import app
from services.user_service import UserService
from services.verification_service import VerificationService

BIRTH_CERTIFICATE = {
    "documentType": "Certificate of Live Birth",
    "externalId": "2024-001",
    "fullName": "JUAN DELACRUZ",
    "firstName": "JUAN",
    "lastName": "DELACRUZ",
    "sex": "Male",
    "dateOfBirth": "1990-01-01",
}

PSA_BODY = {
    "userId": "u1",
    "d": "2023-06-01",
    "dob": "1990-01-01",
    "pcn": "1234567890123456",
    "pob": "Quezon City",
    "fn": "JUAN",
    "ln": "DELACRUZ",
    "mn": "SANTOS",
    "s": "Male",
}


def verifier_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "cookies.test":
        return httpx.Response(200, json={"cookie": "__verify-token=t1"})
    body = request.read()
    if b'"fn":"FAKE"' in body.replace(b" ", b""):
        return httpx.Response(403, json={"message": "Record mismatch"})
    return httpx.Response(200, json={"ok": True})


def extraction_handler(request):
    if is_qr_request(request):
        return no_qr(request)
    return BIRTH_CERTIFICATE


@pytest.fixture
def client(repository):
    verifier = RemoteVerifier(
        httpx.AsyncClient(transport=httpx.MockTransport(verifier_handler)),
        cookie_cache=TTLCache(300),
        verdict_cache=TTLCache(120),
        verify_url="https://verifier.test/verify",
        cookie_issuer_url="https://cookies.test/grab",
    )
    service = VerificationService(
        repository, build_pipeline(ScriptedProvider(extraction_handler)), verifier
    )
    app.dependency_overrides[get_verification_service] = lambda: service
    app.dependency_overrides[get_user_service] = lambda: UserService(repository)
    app.dependency_overrides[get_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload_ocr(client, user_id="u1", data=PNG_BYTES, content_type="image/png"):
    return client.post(
        "/api/verification/verify/ocr",
        files={"image": ("doc.png", data, content_type)},
        data={"userId": user_id},
    )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_services_missing_is_503(self):
        response = TestClient(app).get("/api/user/u1")
        assert response.status_code == 503
        assert response.json()["code"] == "HTTP_503"


class TestOcrEndpoint:
    def test_authentic_upload(self, client):
        response = upload_ocr(client)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["type"] == "PSA"
        assert body["data"]["status"] == "AUTHENTIC"
        assert body["data"]["userId"] == "u1"
        assert body["data"]["data"]["firstName"] == "JUAN"
        assert "X-Trace-ID" in response.headers

    def test_unknown_user_is_404(self, client, repository):
        response = upload_ocr(client, user_id="ghost")
        assert response.status_code == 404
        assert response.json()["code"] == "RESOURCE_NOT_FOUND"
        assert repository.verifications == {}

    def test_non_image_rejected(self, client):
        response = upload_ocr(client, data=b"%PDF-1.7", content_type="application/pdf")
        assert response.status_code == 422
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_missing_image_rejected(self, client):
        response = client.post("/api/verification/verify/ocr", data={"userId": "u1"})
        assert response.status_code == 422


class TestPsaEndpoint:
    def test_authentic(self, client):
        response = client.post("/api/verification/verify/psa", json=PSA_BODY)
        assert response.status_code == 200
        assert response.json()["data"]["type"] == "PHILSYS"
        assert response.json()["cached"] is False

    def test_forbidden_is_fake_with_success_false(self, client):
        response = client.post("/api/verification/verify/psa", json={**PSA_BODY, "fn": "FAKE"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["data"]["status"] == "FAKE"
        assert body["message"] == "Record mismatch"

    def test_missing_field_returns_error_with_record_id(self, client, repository):
        body = {k: v for k, v in PSA_BODY.items() if k != "pcn"}
        response = client.post(
            "/api/verification/verify/psa", json=body, headers={"X-Trace-ID": "trace-1"}
        )

        assert response.status_code == 422
        problem = response.json()
        assert problem["code"] == "VALIDATION_ERROR"
        assert problem["trace_id"] == "trace-1"
        assert response.headers["X-Trace-ID"] == "trace-1"
        record = repository.verifications[problem["verification_id"]]
        assert record.status.value == "ERROR"


class TestListingAndRecords:
    def test_listing_filter_and_pagination(self, client):
        record_id = upload_ocr(client).json()["data"]["id"]

        response = client.get("/api/verification/list/u1", params={"q": "juan"})
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["results"][0]["id"] == record_id
        assert page["results"][0]["user"]["email"] == "juan@example.com"

        response = client.get("/api/verification/list/u1", params={"q": "zzz-nomatch"})
        assert response.json()["data"] == {"total": 0, "results": []}

    def test_type_filter_accepts_comma_list(self, client):
        upload_ocr(client)
        response = client.get("/api/verification/list/u1", params={"type": "VOTERS,PHILSYS"})
        assert response.json()["data"]["total"] == 0

    def test_page_size_bounds(self, client):
        response = client.get("/api/verification/list/u1", params={"pageSize": 0})
        assert response.status_code == 422

    def test_get_and_delete(self, client):
        record_id = upload_ocr(client).json()["data"]["id"]

        assert client.get(f"/api/verification/{record_id}").json()["data"]["active"] is True
        response = client.delete(f"/api/verification/{record_id}")
        assert response.status_code == 200
        assert client.get(f"/api/verification/{record_id}").json()["data"]["active"] is False

    def test_unknown_record_is_404(self, client):
        assert client.get("/api/verification/missing").status_code == 404


class TestUserEndpoints:
    def test_get_user(self, client):
        response = client.get("/api/user/u1")
        assert response.json()["data"] == {
            "userId": "u1",
            "name": "Juan Dela Cruz",
            "email": "juan@example.com",
            "active": True,
        }

    def test_update_user(self, client):
        response = client.put("/api/user/u1", json={"name": "  Juan   D. ", "email": "jd@example.com"})
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Juan D."

    def test_duplicate_email(self, client):
        response = client.put("/api/user/u1", json={"name": "Juan", "email": "maria@example.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "DUPLICATE_USER"

    def test_invalid_email(self, client):
        response = client.put("/api/user/u1", json={"name": "Juan", "email": "not-an-email"})
        assert response.status_code == 422
