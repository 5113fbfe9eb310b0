"""Tests for ImageStoreClient - mocked Dropbox HTTP API."""

import json

import httpx
import pytest
import respx

from apps.web.integrations.exceptions import ImageStoreAuthError, ImageStoreError
from apps.web.integrations.image_store import (
    SHARED_LINK_URL,
    TOKEN_URL,
    UPLOAD_URL,
    ImageStoreClient,
    decode_image_data,
    direct_download_url,
)
from apps.web.menu.models import Image

SHARED_URL = "https://www.dropbox.com/scl/fi/abc123/pasta.jpg?rlkey=xyz&dl=0"
DIRECT_URL = "https://dl.dropboxusercontent.com/scl/fi/abc123/pasta.jpg?rlkey=xyz&dl=1"

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def store() -> ImageStoreClient:
    """Client with refresh credentials."""
    return ImageStoreClient(
        access_token="expired-token",
        refresh_token="refresh-token",
        app_key="app-key",
        app_secret="app-secret",
    )


def _mock_shared_link():
    return respx.post(SHARED_LINK_URL).mock(
        return_value=httpx.Response(200, json={"url": SHARED_URL})
    )


# =============================================================================
# Helpers
# =============================================================================


class TestHelpers:
    def test_direct_download_url(self) -> None:
        assert direct_download_url(SHARED_URL) == DIRECT_URL

    @pytest.mark.parametrize(
        ("shared", "direct"),
        [
            (
                "https://www.dropbox.com/s/abc/pasta.jpg?dl=0",
                "https://dl.dropboxusercontent.com/s/abc/pasta.jpg?dl=1",
            ),
            (
                "https://www.dropbox.com/scl/fi/abc/pasta.jpg?rlkey=xyz&dl=0&st=q1",
                "https://dl.dropboxusercontent.com/scl/fi/abc/pasta.jpg?rlkey=xyz&dl=1&st=q1",
            ),
            (
                "https://www.dropbox.com/scl/fi/abc/pasta.jpg?rlkey=xyz",
                "https://dl.dropboxusercontent.com/scl/fi/abc/pasta.jpg?rlkey=xyz&dl=1",
            ),
        ],
    )
    def test_direct_download_url_forces_dl_param(self, shared, direct) -> None:
        """``dl`` ends up as 1 wherever it sits in the query, and is added if absent."""
        assert direct_download_url(shared) == direct

    def test_decode_plain_base64(self) -> None:
        assert decode_image_data("aGVsbG8=") == ("aGVsbG8=", b"hello")

    def test_decode_data_url(self) -> None:
        assert decode_image_data("data:image/png;base64,aGVsbG8=") == ("aGVsbG8=", b"hello")

    @pytest.mark.parametrize("data", ["not base64!", "", "data:image/png;base64,"])
    def test_decode_rejects_garbage(self, data) -> None:
        with pytest.raises(ValueError):
            decode_image_data(data)


# =============================================================================
# Uploads
# =============================================================================


class TestUpload:
    """Tests for upload + shared link creation."""

    @respx.mock
    def test_restaurant_upload(self, store) -> None:
        """Uploads under the restaurant folder and returns a direct URL."""
        upload = respx.post(UPLOAD_URL).mock(
            return_value=httpx.Response(200, json={"path_display": "/Magic Menu/pasta.jpg"})
        )
        link = _mock_shared_link()

        stored = store.upload_restaurant_image(b"hello", "pasta.jpg")

        assert stored.path == "/Magic Menu/pasta.jpg"
        assert stored.download_url == DIRECT_URL

        request = upload.calls.last.request
        assert request.headers["Authorization"] == "Bearer expired-token"
        assert json.loads(request.headers["Dropbox-API-Arg"])["path"] == "/Magic Menu/pasta.jpg"
        assert request.content == b"hello"
        assert json.loads(link.calls.last.request.content)["path"] == "/Magic Menu/pasta.jpg"

    @respx.mock
    def test_consumer_upload_path(self, store) -> None:
        """Consumer photos go to their own folder, prefixed by user id."""
        upload = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(200, json={}))
        _mock_shared_link()

        stored = store.upload_consumer_image(b"hello", "menu.jpg", user_id=7)

        arg = json.loads(upload.calls.last.request.headers["Dropbox-API-Arg"])
        assert arg["path"] == "/translate - magic menu/user_7_menu.jpg"
        assert stored.path == "/translate - magic menu/user_7_menu.jpg"

    @respx.mock
    def test_refresh_and_retry_once_on_401(self, store) -> None:
        """An expired token is refreshed and the call retried once."""
        upload = respx.post(UPLOAD_URL).mock(
            side_effect=[
                httpx.Response(401, json={"error": "expired_access_token"}),
                httpx.Response(200, json={"path_display": "/Magic Menu/pasta.jpg"}),
            ]
        )
        token = respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "fresh-token"})
        )
        link = _mock_shared_link()

        stored = store.upload_restaurant_image(b"hello", "pasta.jpg")

        assert stored.download_url == DIRECT_URL
        assert upload.call_count == 2
        assert token.call_count == 1
        assert b"grant_type=refresh_token" in token.calls.last.request.content
        assert upload.calls.last.request.headers["Authorization"] == "Bearer fresh-token"
        assert link.calls.last.request.headers["Authorization"] == "Bearer fresh-token"

    @respx.mock
    def test_second_401_is_an_error(self, store) -> None:
        """The retry is not repeated."""
        upload = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(401))
        respx.post(TOKEN_URL).mock(
            return_value=httpx.Response(200, json={"access_token": "fresh-token"})
        )

        with pytest.raises(ImageStoreError) as exc_info:
            store.upload_restaurant_image(b"hello", "pasta.jpg")

        assert exc_info.value.upstream_status == 401
        assert upload.call_count == 2

    @respx.mock
    def test_refresh_failure(self, store) -> None:
        respx.post(UPLOAD_URL).mock(return_value=httpx.Response(401))
        respx.post(TOKEN_URL).mock(return_value=httpx.Response(400, text="invalid_grant"))

        with pytest.raises(ImageStoreAuthError):
            store.upload_restaurant_image(b"hello", "pasta.jpg")

    @respx.mock
    def test_no_refresh_credentials(self) -> None:
        store = ImageStoreClient(access_token="expired-token")
        respx.post(UPLOAD_URL).mock(return_value=httpx.Response(401))

        with pytest.raises(ImageStoreAuthError):
            store.upload_restaurant_image(b"hello", "pasta.jpg")

    @respx.mock
    def test_server_error(self, store) -> None:
        """Upstream failures surface as a generic 502."""
        respx.post(UPLOAD_URL).mock(return_value=httpx.Response(500, text="boom"))

        with pytest.raises(ImageStoreError) as exc_info:
            store.upload_restaurant_image(b"hello", "pasta.jpg")

        assert exc_info.value.status_code == 502
        assert "boom" not in exc_info.value.public_message

    @respx.mock
    def test_network_error(self, store) -> None:
        respx.post(UPLOAD_URL).mock(side_effect=httpx.ConnectError("unreachable"))

        with pytest.raises(ImageStoreError):
            store.upload_restaurant_image(b"hello", "pasta.jpg")


@pytest.mark.django_db
class TestUploadView:
    """The upload endpoint with a configured store."""

    @respx.mock
    def test_store_failure_saves_nothing(self, owner_client, restaurant, monkeypatch) -> None:
        """A failed store upload is a 502 and no Image row is written."""
        monkeypatch.setattr(
            "apps.web.menu.uploads.get_image_store",
            lambda: ImageStoreClient(access_token="token"),
        )
        respx.post(UPLOAD_URL).mock(return_value=httpx.Response(503))

        response = owner_client.post(
            "/api/menu-items/upload",
            data=json.dumps(
                {"restaurant_id": restaurant.pk, "filename": "a.jpg", "data": "aGVsbG8="}
            ),
            content_type="application/json",
        )

        assert response.status_code == 502
        assert response.json() == {
            "error": "Image storage is unavailable, please try again later"
        }
        assert not Image.objects.exists()

    @respx.mock
    def test_store_success_fires_webhook(
        self, owner_client, restaurant, monkeypatch, settings
    ) -> None:
        """After a successful upload the webhook gets the download URL."""
        settings.UPLOAD_WEBHOOK_URL = "https://hooks.example.com/uploads"
        monkeypatch.setattr(
            "apps.web.menu.uploads.get_image_store",
            lambda: ImageStoreClient(access_token="token"),
        )
        respx.post(UPLOAD_URL).mock(return_value=httpx.Response(200, json={}))
        _mock_shared_link()
        hook = respx.post("https://hooks.example.com/uploads").mock(
            return_value=httpx.Response(204)
        )

        response = owner_client.post(
            "/api/menu-items/upload",
            data=json.dumps(
                {"restaurant_id": restaurant.pk, "filename": "a.jpg", "data": "aGVsbG8="}
            ),
            content_type="application/json",
        )

        assert response.status_code == 201
        assert response.json()["url"] == DIRECT_URL
        assert json.loads(hook.calls.last.request.content) == {"download_url": DIRECT_URL}
