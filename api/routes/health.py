from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.schemas import HealthResponse
from core.dependencies import get_repository

router = APIRouter()


def _cache_sizes(request: Request) -> dict[str, int]:
    state = request.app.state
    sizes = {}
    ocr_cache = getattr(state, "ocr_cache", None)
    if ocr_cache is not None:
        sizes["ocr"] = len(ocr_cache)
    verifier = getattr(state, "verifier", None)
    if verifier is not None:
        sizes["cookie"] = len(verifier.cookie_cache)
        sizes["verdict"] = len(verifier.verdict_cache)
    return sizes


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(request: Request, repository=Depends(get_repository)):
    db_health = await repository.health_check()
    status_code = 200 if db_health["healthy"] else 503

    return JSONResponse(
        status_code=status_code,
        content={
            "status": "healthy" if db_health["healthy"] else "unhealthy",
            "database": {
                "status": "connected" if db_health["healthy"] else "disconnected",
                "latency_ms": db_health.get("latency_ms"),
                "error": db_health.get("error"),
            },
            "caches": _cache_sizes(request),
        },
    )
