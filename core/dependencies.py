"""FastAPI dependency injection functions.

Services are built once in the lifespan and read from ``app.state``; tests
swap them through ``app.dependency_overrides``.
"""

from fastapi import HTTPException, Request, status

from services.user_service import UserService
from services.verification_service import VerificationService


def _from_state(request: Request, name: str, label: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} unavailable",
        )
    return value


async def get_verification_service(request: Request) -> VerificationService:
    """Get the verification service from app state.

    Raises:
        HTTPException: 503 if the database (and therefore the service) is unavailable
    """
    return _from_state(request, "verification_service", "Verification service")


async def get_user_service(request: Request) -> UserService:
    return _from_state(request, "user_service", "User service")


async def get_repository(request: Request):
    return _from_state(request, "repository", "Database")
