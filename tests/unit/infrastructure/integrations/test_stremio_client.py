"""Tests for the account provider client."""

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from addonsync.config import Settings, StremioSettings
from addonsync.domain.entities import Addon, AddonManifest, AddonMetadata
from addonsync.domain.exceptions import (
    AuthenticationExpiredError,
    InvalidCredentialsError,
    NetworkError,
    ProviderResponseError,
)
from addonsync.infrastructure.integrations.stremio_client import StremioClient

LOGIN_URL = "https://api.test/api/login"
PROXY_URL = "http://relay.test/api/stremio-proxy"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stremio=StremioSettings(api_base_url="https://api.test", proxy_base_url="http://relay.test/api")
    )


@pytest.fixture
async def stremio_client(settings: Settings):
    async with httpx.AsyncClient() as client:
        yield StremioClient(settings=settings, client=client)


class TestLogin:
    """Test email/password login."""

    async def test_login_success(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=LOGIN_URL,
            method="POST",
            json={"result": {"authKey": "key-123", "user": {"email": "a@test"}}},
        )

        session = await stremio_client.login("a@test", "secret")

        assert session.auth_key == "key-123"
        assert session.user == {"email": "a@test"}
        body = json.loads(httpx_mock.get_request().content)
        assert body == {"type": "Auth", "email": "a@test", "password": "secret"}

    async def test_login_401(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=LOGIN_URL, method="POST", status_code=401)

        with pytest.raises(InvalidCredentialsError):
            await stremio_client.login("a@test", "wrong")

    async def test_login_error_payload(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=LOGIN_URL,
            method="POST",
            json={"error": {"message": "Wrong passphrase", "code": 2}},
        )

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await stremio_client.login("a@test", "wrong")

        assert exc_info.value.message == "Wrong passphrase"
        assert exc_info.value.code == "2"

    async def test_login_network_error(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("offline"))

        with pytest.raises(NetworkError):
            await stremio_client.login("a@test", "secret")

    async def test_login_without_auth_key(
        self, stremio_client: StremioClient, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_response(url=LOGIN_URL, method="POST", json={"result": {}})

        with pytest.raises(ProviderResponseError, match="no auth key"):
            await stremio_client.login("a@test", "secret")


class TestCollection:
    """Test addon collection get/set."""

    async def test_get_sanitizes_manifests(
        self, stremio_client: StremioClient, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_response(
            url=PROXY_URL,
            method="POST",
            json={
                "result": {
                    "addons": [
                        {
                            "transportUrl": "https://addon.test/manifest.json",
                            "manifest": {"id": "a", "name": "A", "version": "1.0.0"},
                            "flags": {"protected": True},
                        }
                    ]
                }
            },
        )

        addons = await stremio_client.get("key-123", context="Account A")

        assert len(addons) == 1
        assert addons[0].manifest.types == []
        assert addons[0].is_protected is True
        request = httpx_mock.get_request()
        assert request.headers["x-account-context"] == "Account A"
        assert json.loads(request.content) == {
            "type": "AddonCollectionGet",
            "authKey": "key-123",
            "update": True,
        }

    async def test_get_empty_collection(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=PROXY_URL, method="POST", json={"result": None})

        assert await stremio_client.get("key-123") == []

    async def test_set_sends_wire_format(
        self, stremio_client: StremioClient, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_response(url=PROXY_URL, method="POST", json={"result": {"success": True}})
        addon = Addon(
            transport_url="https://addon.test/manifest.json",
            manifest=AddonManifest(id="a", name="A", version="1.0.0"),
            metadata=AddonMetadata(custom_name="Mine"),
        )

        await stremio_client.set("key-123", [addon], context="Account A")

        body = json.loads(httpx_mock.get_request().content)
        assert body["type"] == "AddonCollectionSet"
        assert body["addons"][0]["transportUrl"] == "https://addon.test/manifest.json"
        assert body["addons"][0]["manifest"]["types"] == []
        assert body["addons"][0]["metadata"] == {"customName": "Mine"}

    async def test_expired_auth_key(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=PROXY_URL, method="POST", status_code=401)

        with pytest.raises(AuthenticationExpiredError):
            await stremio_client.get("stale-key")

    async def test_error_payload(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=PROXY_URL, method="POST", json={"error": {"message": "Session does not exist"}}
        )

        with pytest.raises(ProviderResponseError, match="Session does not exist"):
            await stremio_client.set("key-123", [])

    async def test_server_error(self, stremio_client: StremioClient, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=PROXY_URL, method="POST", status_code=500, text="oops")

        with pytest.raises(ProviderResponseError, match="HTTP 500"):
            await stremio_client.get("key-123")

    async def test_network_error_is_not_retried(
        self, stremio_client: StremioClient, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_exception(httpx.ConnectError("offline"))

        with pytest.raises(NetworkError):
            await stremio_client.set("key-123", [])

        assert len(httpx_mock.get_requests()) == 1
