"""Cloudinary document upload adapter over httpx."""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from uuid import uuid4

import httpx

from competition_registration.domain.documents import (
    document_extension,
    is_raw_document,
)
from competition_registration.domain.errors import StorageUploadError

logger = logging.getLogger(__name__)

CLOUDINARY_API_BASE_URL = "https://api.cloudinary.com/v1_1"


def sign_upload_params(params: Mapping[str, str], api_secret: str) -> str:
    """Cloudinary signature: SHA-1 of sorted ``key=value`` pairs plus secret."""

    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key])
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


def storage_name_for(filename: str) -> str:
    """Collision-resistant stored name keeping only the client extension."""

    return f"{uuid4().hex}{document_extension(filename)}"


class CloudinaryUploader:
    """Pushes in-memory documents to Cloudinary and returns secure URLs."""

    def __init__(
        self,
        *,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        root_folder: str,
        http_client: httpx.Client,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._root_folder = root_folder.strip("/")
        self._http_client = http_client
        self._clock = clock

    def upload(self, content: bytes, desired_filename: str, owner_folder: str) -> str:
        resource_type = "raw" if is_raw_document(desired_filename) else "image"
        stored_name = storage_name_for(desired_filename)
        folder = (
            f"{self._root_folder}/{owner_folder}" if self._root_folder else owner_folder
        )
        # raw resources keep the extension in the public id, images get a format
        public_id = (
            stored_name if resource_type == "raw" else stored_name.rsplit(".", 1)[0]
        )

        params = {
            "folder": folder,
            "public_id": public_id,
            "timestamp": str(int(self._clock())),
        }
        form = {
            **params,
            "api_key": self._api_key,
            "signature": sign_upload_params(params, self._api_secret),
        }
        url = f"{CLOUDINARY_API_BASE_URL}/{self._cloud_name}/{resource_type}/upload"

        try:
            response = self._http_client.post(
                url,
                data=form,
                files={"file": (stored_name, content)},
            )
        except httpx.HTTPError as exc:
            raise StorageUploadError(f"Document storage is unreachable: {exc}") from exc

        if not response.is_success:
            raise StorageUploadError(
                f"Document storage returned status {response.status_code}: "
                f"{response.text.strip()}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise StorageUploadError("Document storage returned invalid JSON.") from exc
        secure_url = payload.get("secure_url") if isinstance(payload, dict) else None
        if not secure_url:
            raise StorageUploadError("Document storage response has no secure_url.")

        logger.info(
            "document_uploaded",
            extra={"resource_type": resource_type, "folder": folder},
        )
        return str(secure_url)
