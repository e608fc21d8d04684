"""
Unit tests for ReferralApiClient against an in-process httpx transport.
"""
import json

import httpx
import pytest

from app.services.referrals.client import ReferralApiClient
from app.services.referrals.exceptions import SubmissionRejectedError, TransportFailureError


def _client(handler, base_url="http://api.test"):
    return ReferralApiClient(base_url, timeout=1.0, transport=httpx.MockTransport(handler))


class TestEndpoint:

    def test_endpoint_joins_base_url(self):
        assert ReferralApiClient("http://api.test").endpoint == "http://api.test/api/referrals"

    def test_trailing_slash_dropped(self):
        assert ReferralApiClient("http://api.test/").endpoint == "http://api.test/api/referrals"


class TestCreateReferral:
    """Tests for ReferralApiClient.create_referral"""

    @pytest.mark.asyncio
    async def test_posts_json_payload(self, valid_payload):
        """One POST with a JSON body of the five wire fields"""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"id": 1})

        status = await _client(handler).create_referral(valid_payload)

        assert status == 201
        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "http://api.test/api/referrals"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == valid_payload

    @pytest.mark.asyncio
    async def test_any_2xx_is_accepted(self, valid_payload):
        status = await _client(lambda request: httpx.Response(204)).create_referral(valid_payload)
        assert status == 204

    @pytest.mark.asyncio
    async def test_non_json_success_body_is_ignored(self, valid_payload):
        """Response body is never parsed"""
        client = _client(lambda request: httpx.Response(200, text="<html>ok</html>"))
        assert await client.create_referral(valid_payload) == 200

    @pytest.mark.asyncio
    async def test_error_status_raises_rejected(self, valid_payload):
        client = _client(lambda request: httpx.Response(400, text="bad email"))

        with pytest.raises(SubmissionRejectedError) as exc_info:
            await client.create_referral(valid_payload)

        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "bad email"

    @pytest.mark.asyncio
    async def test_server_error_raises_rejected(self, valid_payload):
        client = _client(lambda request: httpx.Response(503))

        with pytest.raises(SubmissionRejectedError) as exc_info:
            await client.create_referral(valid_payload)

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_failure(self, valid_payload):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportFailureError):
            await _client(handler).create_referral(valid_payload)

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_failure(self, valid_payload):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportFailureError):
            await _client(handler).create_referral(valid_payload)

    @pytest.mark.asyncio
    async def test_invalid_url_raises_transport_failure(self, valid_payload):
        """A malformed base URL surfaces as a transport failure, not a raw httpx error"""
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid port: '99999'")

        with pytest.raises(TransportFailureError):
            await _client(handler).create_referral(valid_payload)
