from __future__ import annotations

import hashlib

import httpx
import pytest

from competition_registration.domain.errors import StorageUploadError
from competition_registration.infrastructure.storage.cloudinary_uploader import (
    CloudinaryUploader,
    sign_upload_params,
    storage_name_for,
)


def build_uploader(handler: httpx.MockTransport) -> CloudinaryUploader:
    return CloudinaryUploader(
        cloud_name="demo",
        api_key="api-key",
        api_secret="api-secret",
        root_folder="iicf/",
        http_client=httpx.Client(transport=handler),
        clock=lambda: 1_700_000_000.9,
    )


def test_sign_upload_params_uses_sorted_pairs_and_secret() -> None:
    signature = sign_upload_params(
        {"timestamp": "1", "folder": "a/b", "public_id": "x"},
        "secret",
    )

    expected = hashlib.sha1(b"folder=a/b&public_id=x&timestamp=1secret").hexdigest()
    assert signature == expected


def test_storage_name_keeps_only_lowercased_extension() -> None:
    first = storage_name_for("../../My Passport.PDF")
    second = storage_name_for("../../My Passport.PDF")

    assert first.endswith(".pdf")
    assert "/" not in first
    assert "Passport" not in first
    assert first != second


@pytest.mark.parametrize(
    ("filename", "resource_type"),
    [("passport.pdf", "raw"), ("passport.jpg", "image"), ("passport.png", "image")],
)
def test_upload_selects_resource_type_from_extension(
    filename: str, resource_type: str
) -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            json={"secure_url": "https://res.example.test/file"},
        )

    url = build_uploader(httpx.MockTransport(handler)).upload(
        b"content",
        filename,
        "Asha_Rao",
    )

    assert url == "https://res.example.test/file"
    request = captured[0]
    assert str(request.url) == (
        f"https://api.cloudinary.com/v1_1/demo/{resource_type}/upload"
    )
    body = request.content
    assert b'name="folder"' in body
    assert b"iicf/Asha_Rao" in body
    assert b'name="timestamp"' in body
    assert b"1700000000" in body
    assert b'name="signature"' in body
    assert b"content" in body


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"public_id": "x"}),
        httpx.Response(200, json=["secure_url"]),
    ],
)
def test_upload_failures_raise_storage_error(response: httpx.Response) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(StorageUploadError):
        build_uploader(httpx.MockTransport(handler)).upload(b"x", "a.pdf", "folder")


def test_upload_transport_error_raises_storage_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(StorageUploadError, match="unreachable"):
        build_uploader(httpx.MockTransport(handler)).upload(b"x", "a.pdf", "folder")
