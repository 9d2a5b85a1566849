"""Tests for the addon origin health probe."""

import httpx
import pytest
from pytest_httpx import HTTPXMock

from addonsync.config import HealthSettings, ManifestSettings
from addonsync.infrastructure.observability.health import OriginHealthProbe

RELAY = "http://relay.test/api/meta-proxy"
MANIFEST_URL = "https://addon.test/abc/manifest.json"
RELAYED = str(httpx.URL(RELAY, params={"url": MANIFEST_URL}))


@pytest.fixture
async def probe():
    async with httpx.AsyncClient() as client:
        yield OriginHealthProbe(
            settings=HealthSettings(timeout_seconds=2.0),
            manifest_settings=ManifestSettings(relay_url=RELAY),
            client=client,
        )


class TestOriginHealthProbe:
    """Test direct-then-relay probing."""

    async def test_direct_success(self, probe: OriginHealthProbe, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=MANIFEST_URL, json={"id": "a"})

        result = await probe.check("https://addon.test/abc")

        assert result.is_online is True
        assert result.error is None
        assert len(httpx_mock.get_requests()) == 1

    async def test_relay_fallback(self, probe: OriginHealthProbe, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=MANIFEST_URL, status_code=403)
        httpx_mock.add_response(url=RELAYED, json={"id": "a"})

        result = await probe.check(MANIFEST_URL)

        assert result.is_online is True
        relay_request = httpx_mock.get_requests()[1]
        assert relay_request.headers["x-account-context"] == "Health-Check"

    async def test_html_error_page_is_offline(
        self, probe: OriginHealthProbe, httpx_mock: HTTPXMock
    ):
        httpx_mock.add_response(url=MANIFEST_URL, text="<html>Service suspended</html>")
        httpx_mock.add_response(url=RELAYED, text="<html>Service suspended</html>")

        result = await probe.check(MANIFEST_URL)

        assert result.is_online is False
        assert result.error == "response is not JSON"

    async def test_unreachable_is_offline(self, probe: OriginHealthProbe, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("refused"), url=MANIFEST_URL)
        httpx_mock.add_exception(httpx.ConnectTimeout("slow"), url=RELAYED)

        result = await probe.check(MANIFEST_URL)

        assert result.is_online is False
        assert "timed out" in result.error

    async def test_unexpected_error_never_raises(self, mocker):
        client = mocker.MagicMock(spec=httpx.AsyncClient)
        client.get = mocker.AsyncMock(side_effect=RuntimeError("bug"))
        probe = OriginHealthProbe(
            settings=HealthSettings(),
            manifest_settings=ManifestSettings(relay_url=RELAY),
            client=client,
        )

        result = await probe.check(MANIFEST_URL)

        assert result.is_online is False
        assert "bug" in result.error
