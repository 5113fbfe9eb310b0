"""
External image store client (Dropbox HTTP API).

Uploads image bytes, creates a public shared link and rewrites it into a
direct download URL. A 401 triggers one OAuth refresh-token exchange and
a single retry of the failed call; nothing else is retried.
"""

import base64
import binascii
import json
import logging
import re
import threading
from dataclasses import dataclass
from typing import Any

from django.apps import apps

import httpx

from apps.web.integrations.exceptions import ImageStoreAuthError, ImageStoreError

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://content.dropboxapi.com/2/files/upload"
SHARED_LINK_URL = "https://api.dropboxapi.com/2/sharing/create_shared_link_with_settings"
TOKEN_URL = "https://api.dropbox.com/oauth2/token"

RESTAURANT_FOLDER = "/Magic Menu"
CONSUMER_FOLDER = "/translate - magic menu"

DATA_URL_PREFIX = re.compile(r"^data:[\w.+-]+/[\w.+-]+;base64,")


def decode_image_data(data: str) -> tuple[str, bytes]:
    """
    Split a base64 payload (optionally a data URL) into text and bytes.

    Returns ``(base64_text, raw_bytes)``. Raises ValueError if the payload
    is not valid base64.
    """
    encoded = DATA_URL_PREFIX.sub("", data.strip(), count=1)
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Image data is not valid base64") from e
    if not raw:
        raise ValueError("Image data is empty")
    return encoded, raw


def direct_download_url(shared_url: str) -> str:
    """Turn a shared-link preview URL into a direct download URL."""
    url = httpx.URL(shared_url.replace("www.dropbox.com", "dl.dropboxusercontent.com"))
    return str(url.copy_set_param("dl", "1"))


def consumer_filename(user_id: int, filename: str) -> str:
    """``photo.jpg`` -> ``user_7_photo.jpg``, keeping consumer uploads apart."""
    return f"user_{user_id}_{filename}"


@dataclass(frozen=True)
class StoredImage:
    path: str
    download_url: str


class ImageStoreClient:
    """
    Minimal Dropbox client for menu photos.

    Usage:
        store = ImageStoreClient(access_token="...", refresh_token="...",
                                 app_key="...", app_secret="...")
        stored = store.upload_restaurant_image(raw_bytes, "pasta.jpg")
        stored.download_url
    """

    TIMEOUT = 30.0

    def __init__(
        self,
        access_token: str,
        refresh_token: str = "",
        app_key: str = "",
        app_secret: str = "",
        http_client: httpx.Client | None = None,
    ) -> None:
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._app_key = app_key
        self._app_secret = app_secret
        self._client = http_client or httpx.Client(timeout=self.TIMEOUT)
        self._token_lock = threading.Lock()

    @property
    def can_refresh(self) -> bool:
        return bool(self._refresh_token and self._app_key and self._app_secret)

    # =========================================================================
    # Authentication
    # =========================================================================

    def refresh_access_token(self) -> str:
        """Exchange the refresh token for a new access token."""
        if not self.can_refresh:
            raise ImageStoreAuthError("Access token expired and no refresh credentials")

        logger.info("Refreshing image store access token")
        try:
            response = self._client.post(
                TOKEN_URL,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self._refresh_token,
                },
                auth=(self._app_key, self._app_secret),
            )
        except httpx.HTTPError as e:
            raise ImageStoreAuthError(f"Token refresh request failed: {e}") from e

        if response.status_code != 200:
            raise ImageStoreAuthError(
                f"Token refresh failed: {response.status_code} {response.text}",
                upstream_status=response.status_code,
            )

        with self._token_lock:
            self._access_token = response.json()["access_token"]
        return self._access_token

    # =========================================================================
    # Requests
    # =========================================================================

    def _send(self, url: str, **kwargs: Any) -> httpx.Response:
        headers = {
            **kwargs.pop("headers", {}),
            "Authorization": f"Bearer {self._access_token}",
        }
        try:
            return self._client.post(url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise ImageStoreError(f"Request to {url} failed: {e}") from e

    def _request(self, url: str, **kwargs: Any) -> dict[str, Any]:
        """POST with bearer auth; on 401 refresh the token and retry once."""
        response = self._send(url, **kwargs)
        if response.status_code == 401:
            logger.info("Image store rejected access token, refreshing")
            self.refresh_access_token()
            response = self._send(url, **kwargs)

        if response.status_code >= 400:
            raise ImageStoreError(
                f"Image store returned {response.status_code}: {response.text}",
                upstream_status=response.status_code,
            )
        return response.json()  # type: ignore[no-any-return]

    # =========================================================================
    # Uploads
    # =========================================================================

    def upload(self, path: str, content: bytes) -> StoredImage:
        """Store ``content`` at ``path`` and return its direct download URL."""
        result = self._request(
            UPLOAD_URL,
            content=content,
            headers={
                "Content-Type": "application/octet-stream",
                "Dropbox-API-Arg": json.dumps(
                    {"path": path, "mode": "add", "autorename": True}
                ),
            },
        )
        stored_path = result.get("path_display") or path
        logger.info("Uploaded image to %s", stored_path)

        link = self._request(
            SHARED_LINK_URL,
            json={
                "path": stored_path,
                "settings": {
                    "requested_visibility": "public",
                    "audience": "public",
                    "access": "viewer",
                },
            },
        )
        return StoredImage(path=stored_path, download_url=direct_download_url(link["url"]))

    def upload_restaurant_image(self, content: bytes, filename: str) -> StoredImage:
        return self.upload(f"{RESTAURANT_FOLDER}/{filename}", content)

    def upload_consumer_image(
        self, content: bytes, filename: str, user_id: int
    ) -> StoredImage:
        return self.upload(f"{CONSUMER_FOLDER}/{consumer_filename(user_id, filename)}", content)


def get_image_store() -> ImageStoreClient | None:
    """The configured store, or None when no access token is set."""
    return apps.get_app_config("integrations").image_store  # type: ignore[attr-defined,no-any-return]
