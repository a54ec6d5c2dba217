"""Persistence interface consumed by the verification and user services."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from docverify.models.dto import (
    User,
    VerificationPage,
    VerificationRecord,
    VerificationStatus,
    VerificationType,
)


class Repository(Protocol):
    """Users, verification records and the reference-record stores.

    Reads return None when the row does not exist.
    """

    async def get_user_by_id(self, user_id: str) -> Optional[User]: ...

    async def update_user(self, user_id: str, name: str, email: str) -> Optional[User]:
        """Raises DuplicateUser when the email belongs to another active user."""
        ...

    async def get_verification_by_id(
        self, verification_id: str
    ) -> Optional[VerificationRecord]: ...

    async def list_verifications_by_user(
        self,
        filter_text: str,
        types: Sequence[str],
        user_id: str,
        page_size: int,
        page_index: int,
    ) -> VerificationPage: ...

    async def create_verification(
        self,
        verification_type: VerificationType,
        user_id: str,
        data: dict[str, Any],
        status: VerificationStatus,
    ) -> VerificationRecord: ...

    async def delete_verification(self, verification_id: str) -> None:
        """Soft delete: sets ``active`` to false."""
        ...

    async def find_psa_record(
        self, first_name: str, last_name: str, sex: str, date_of_birth: str
    ) -> Optional[dict[str, Any]]: ...

    async def find_voter_record(
        self, precinct_number: str, first_name: str, last_name: str
    ) -> Optional[dict[str, Any]]: ...

    async def health_check(self) -> dict[str, Any]: ...
