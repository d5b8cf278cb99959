import httpx
import pytest
from fastapi import status, HTTPException
from pydantic import BaseModel

from vidtube.main import app
from vidtube.core.config import settings
from vidtube.models.common import ApiErrorResponse


class _Payload(BaseModel):
    count: int


# Temporary routes for exercising the exception handlers
@app.get("/test_http_exception")
async def route_test_http_exception():
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found here")


@app.get("/test_generic_exception")
async def route_test_generic_exception():
    raise ValueError("A generic value error occurred")


@app.get("/test_connect_error")
async def route_test_connect_error():
    raise httpx.ConnectError("connection refused")


@app.post("/test_validation")
async def route_test_validation(payload: _Payload):
    return payload


@pytest.mark.asyncio
async def test_root_welcome(client):
    response = await client.get("/")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"message": f"Welcome to {settings.PROJECT_NAME}!"}


@pytest.mark.asyncio
async def test_healthcheck(client):
    response = await client.get(f"{settings.API_V1_STR}/healthcheck")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "statusCode": 200,
        "data": "OK",
        "message": "Health check passed",
        "success": True,
    }


@pytest.mark.asyncio
async def test_http_exception_handler(client):
    response = await client.get("/test_http_exception")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    error = ApiErrorResponse(**response.json())
    assert error.statusCode == status.HTTP_404_NOT_FOUND
    assert error.success is False
    assert error.data is None
    assert error.message == "Item not found here"
    assert "/test_http_exception" in error.instance


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/does-not-exist")
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_validation_errors_return_400(client):
    response = await client.post("/test_validation", json={"count": "many"})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["message"] == "Invalid request data"
    assert body["errors"][0]["loc"] == ["body", "count"]


@pytest.mark.asyncio
async def test_generic_exception_handler(client):
    response = await client.get("/test_generic_exception")
    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    error = ApiErrorResponse(**response.json())
    assert error.message == "An unexpected internal server error occurred."


@pytest.mark.asyncio
async def test_connect_error_maps_to_503(client):
    response = await client.get("/test_connect_error")
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
    assert response.json()["message"] == "Unable to reach data store. Please try again later."
