"""Unit tests for startup settings validation."""

import pytest

from core import settings
from core.validation import validate_all_settings


@pytest.fixture
def memory_backend(monkeypatch):
    monkeypatch.setattr(settings.db_settings, "DB_BACKEND", "memory")
    monkeypatch.setattr(settings.db_settings, "DB_MEMORY_SEED_PATH", "")
    monkeypatch.setattr(settings.gemini_settings, "SEX_CROP_BOX", "")
    monkeypatch.setattr(settings.gemini_settings, "SEX_REFERENCE_MALE_PATH", "")
    monkeypatch.setattr(settings.gemini_settings, "SEX_REFERENCE_FEMALE_PATH", "")
    return monkeypatch


def test_memory_backend_defaults_are_valid(memory_backend):
    validate_all_settings()


def test_unknown_backend(memory_backend):
    memory_backend.setattr(settings.db_settings, "DB_BACKEND", "sqlite")
    with pytest.raises(RuntimeError, match="DB_BACKEND"):
        validate_all_settings()


def test_postgres_requires_connection_settings(memory_backend):
    memory_backend.setattr(settings.db_settings, "DB_BACKEND", "postgres")
    memory_backend.setattr(settings.db_settings, "DB_HOST", "")
    with pytest.raises(RuntimeError, match="DB_HOST"):
        validate_all_settings()


def test_verdict_ttl_must_be_shorter_than_cookie_ttl(memory_backend):
    memory_backend.setattr(settings.verifier_settings, "VERIFY_TTL_SECONDS", 600)
    memory_backend.setattr(settings.verifier_settings, "COOKIE_TTL_SECONDS", 300)
    with pytest.raises(RuntimeError, match="VERIFY_TTL_SECONDS"):
        validate_all_settings()


def test_invalid_crop_box(memory_backend):
    memory_backend.setattr(settings.gemini_settings, "SEX_CROP_BOX", "1,1,0,0")
    with pytest.raises(RuntimeError, match="SEX_CROP_BOX"):
        validate_all_settings()


def test_missing_reference_image(memory_backend, tmp_path):
    memory_backend.setattr(
        settings.gemini_settings, "SEX_REFERENCE_MALE_PATH", str(tmp_path / "missing.png")
    )
    with pytest.raises(RuntimeError, match="SEX_REFERENCE_MALE_PATH"):
        validate_all_settings()
