import pytest

from docverify.clients.gemini_client import ImagePart
from docverify.database.memory import InMemoryRepository
from docverify.models.dto import User
from fakes import PNG_BYTES, FakeClock


@pytest.fixture
def image() -> ImagePart:
    return ImagePart(data=PNG_BYTES, mime_type="image/png")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryRepository:
    return InMemoryRepository(
        users=[
            User(user_id="u1", name="Juan Dela Cruz", email="juan@example.com"),
            User(user_id="u2", name="Maria Santos", email="maria@example.com"),
        ],
        psa_records=[
            {
                "firstName": "JUAN",
                "lastName": "DELACRUZ",
                "sex": "Male",
                "dateOfBirth": "1990-01-01",
            }
        ],
        voter_records=[
            {"precinctNumber": "0012A", "firstName": "MARIA", "lastName": "SANTOS"}
        ],
    )
