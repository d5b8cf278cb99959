"""VidTube FastAPI application.

Assembles every router under ``/api/v1``, installs the exception handlers that
produce the uniform error envelope and wires up observability.
"""

import logging

import httpx
from fastapi import FastAPI, HTTPException, Request, status, APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from httpcore import ConnectError as HttpcoreConnectError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vidtube.core.config import settings
from vidtube.db.astra_client import ensure_collections, init_astra_db
from vidtube.models.common import ApiErrorResponse
from vidtube.api.v1.endpoints import (
    comments,
    dashboard,
    healthcheck,
    likes,
    subscriptions,
    tweets,
    users,
    videos,
)
from vidtube.utils.observability import configure_observability

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.APP_VERSION)

# ---------------------------------------------------------------------------
# CORS middleware
#
# See: https://fastapi.tiangolo.com/tutorial/cors/
# ---------------------------------------------------------------------------

logger.debug(f"CORS origins: {settings.parsed_cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.parsed_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API router for v1
api_router_v1 = APIRouter(prefix=settings.API_V1_STR)
api_router_v1.include_router(healthcheck.router)
api_router_v1.include_router(users.router)
api_router_v1.include_router(videos.router)
api_router_v1.include_router(comments.router)
api_router_v1.include_router(likes.router)
api_router_v1.include_router(tweets.router)
api_router_v1.include_router(subscriptions.router)
api_router_v1.include_router(dashboard.router)

app.include_router(api_router_v1)

configure_observability(app)


@app.on_event("startup")
async def startup_event():
    await init_astra_db()
    if settings.ASTRA_DB_AUTO_CREATE_COLLECTIONS:
        created = await ensure_collections()
        if created:
            logger.info("Created collections: %s", ", ".join(created))


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


def _error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: list | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiErrorResponse(
            statusCode=status_code,
            message=message,
            errors=errors or [],
            instance=str(request.url),
        ).model_dump(),
        headers=headers,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(
        request,
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Request validation failed: %s", exc.errors())
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Invalid request data",
        errors=jsonable_encoder(exc.errors()),
    )


async def _connectivity_error(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("AstraDB connectivity problem: %s", exc)
    logger.debug("Detailed stack trace for connectivity issue:", exc_info=True)
    return _error_response(
        request,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Unable to reach data store. Please try again later.",
    )


@app.exception_handler(httpx.ConnectError)
async def httpx_connect_error_handler(request: Request, exc: httpx.ConnectError):
    if getattr(exc, "_request", None) is not None:
        logger.debug("Failed AstraDB request: %s %s", exc.request.method, exc.request.url)
    return await _connectivity_error(request, exc)


@app.exception_handler(HttpcoreConnectError)
async def httpcore_connect_error_handler(request: Request, exc: HttpcoreConnectError):
    return await _connectivity_error(request, exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected internal server error occurred.",
    )


@app.get("/", summary="Welcome message")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}!"}
