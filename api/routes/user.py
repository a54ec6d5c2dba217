"""User profile endpoints."""

import logging

from fastapi import APIRouter, Depends, Request

from api.schemas import Envelope, ProblemDetail, UserUpdateBody
from core.dependencies import get_user_service
from docverify.models.dto import User
from services.user_service import UserService

router = APIRouter(prefix="/api/user", tags=["user"])
logger = logging.getLogger(__name__)

USER_UPDATED_MESSAGE = "User updated successfully!"


@router.get(
    "/{user_id}",
    response_model=Envelope[User],
    responses={404: {"model": ProblemDetail}},
)
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    return Envelope(data=await service.get_user(user_id))


@router.put(
    "/{user_id}",
    response_model=Envelope[User],
    responses={400: {"model": ProblemDetail}, 404: {"model": ProblemDetail}},
)
async def update_user(
    request: Request,
    user_id: str,
    body: UserUpdateBody,
    service: UserService = Depends(get_user_service),
):
    logger.info(
        "Updating user",
        extra={"trace_id": getattr(request.state, "trace_id", None), "user_id": user_id},
    )
    user = await service.update_user(user_id, body.name, body.email)
    return Envelope(data=user, message=USER_UPDATED_MESSAGE)
