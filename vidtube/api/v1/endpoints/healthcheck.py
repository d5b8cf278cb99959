from fastapi import APIRouter

from vidtube.api.v1.responses import ok
from vidtube.models.common import ApiResponse

router = APIRouter(tags=["Healthcheck"])


@router.get("/healthcheck", response_model=ApiResponse[str], summary="Liveness probe")
async def healthcheck():
    return ok("OK", message="Health check passed")
