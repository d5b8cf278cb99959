import hashlib
import io
from urllib.parse import parse_qs

import httpx
import pytest

from vidtube.core.config import settings
from vidtube.external_services import media_storage
from vidtube.external_services.media_storage import MediaStorageError


def _patch_transport(monkeypatch, handler):
    monkeypatch.setattr(
        media_storage,
        "_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_sign_params_sorted_and_filtered():
    params = {
        "timestamp": 1315060510,
        "public_id": "sample_image",
        "eager": "w_400,h_300,c_pad|w_260,h_200,c_crop",
        "api_key": "should-not-be-signed",
        "file": "ignored",
        "folder": "",
    }
    expected = hashlib.sha1(
        b"eager=w_400,h_300,c_pad|w_260,h_200,c_crop&public_id=sample_image"
        b"&timestamp=1315060510abcd"
    ).hexdigest()
    assert media_storage.sign_params(params, "abcd") == expected


@pytest.mark.asyncio
async def test_upload_media_success(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(
            200,
            json={
                "secure_url": "https://res.cloudinary.com/test-cloud/video/upload/v1/clip.mp4",
                "public_id": "vidtube/clip",
                "resource_type": "video",
                "duration": 12.5,
            },
        )

    _patch_transport(monkeypatch, handler)

    media = await media_storage.upload_media(
        io.BytesIO(b"fake-bytes"), "clip.mp4", "video/mp4", resource_type="video"
    )

    assert seen["url"] == (
        f"{settings.CLOUDINARY_API_BASE_URL}/{settings.CLOUDINARY_CLOUD_NAME}/video/upload"
    )
    assert b"fake-bytes" in seen["body"]
    assert b'name="signature"' in seen["body"]
    assert media.public_id == "vidtube/clip"
    assert media.duration == 12.5


@pytest.mark.asyncio
async def test_upload_media_http_error_status(monkeypatch):
    def handler(request):
        return httpx.Response(401, json={"error": {"message": "Invalid Signature"}})

    _patch_transport(monkeypatch, handler)

    with pytest.raises(MediaStorageError, match="Invalid Signature"):
        await media_storage.upload_media(io.BytesIO(b"x"), "a.png", "image/png")


@pytest.mark.asyncio
async def test_upload_media_network_error(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    _patch_transport(monkeypatch, handler)

    with pytest.raises(MediaStorageError):
        await media_storage.upload_media(io.BytesIO(b"x"), "a.png", "image/png")


@pytest.mark.asyncio
async def test_upload_media_missing_url(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"public_id": "p"}))

    with pytest.raises(MediaStorageError, match="missing"):
        await media_storage.upload_media(io.BytesIO(b"x"), "a.png", "image/png")


@pytest.mark.asyncio
@pytest.mark.parametrize("result, expected", [("ok", True), ("not found", False)])
async def test_delete_media_results(monkeypatch, result, expected):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"result": result})

    _patch_transport(monkeypatch, handler)

    assert await media_storage.delete_media("vidtube/thumb", resource_type="image") is expected
    assert seen["url"].endswith("/image/destroy")
    assert seen["form"]["public_id"] == ["vidtube/thumb"]
    assert seen["form"]["api_key"] == [settings.CLOUDINARY_API_KEY]


@pytest.mark.asyncio
async def test_delete_media_unexpected_result(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(200, json={"result": "error"}))

    with pytest.raises(MediaStorageError):
        await media_storage.delete_media("vidtube/thumb")
