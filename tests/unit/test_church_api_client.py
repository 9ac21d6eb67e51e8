"""Unit tests for ChurchApiClient - forwarding, body decoding, error mapping.

All backend traffic goes through ``httpx.MockTransport`` (see conftest), so
no real network calls are made.
"""

from __future__ import annotations

import httpx
import pytest

from src.providers.backend.church_api_client import (
    ChurchApiClient,
    UpstreamResponse,
    extract_results,
)
from src.utils.errors import BackendError, BackendUnavailableError


# ======================================================================
# Helpers
# ======================================================================


class TestExtractResults:
    def test_plain_list(self) -> None:
        assert extract_results([{"id": 1}]) == [{"id": 1}]

    def test_paginated_envelope(self) -> None:
        assert extract_results({"count": 1, "results": [{"id": 1}]}) == [{"id": 1}]

    @pytest.mark.parametrize("payload", [None, {}, {"results": "nope"}, "text", 3])
    def test_anything_else_is_empty(self, payload) -> None:
        assert extract_results(payload) == []


class TestUpstreamResponse:
    def test_ok_range(self) -> None:
        assert UpstreamResponse(204, None).ok is True
        assert UpstreamResponse(302, None).ok is False
        assert UpstreamResponse(404, None).ok is False

    def test_error_text_prefers_error_then_detail(self) -> None:
        assert UpstreamResponse(400, {"error": "bad", "detail": "x"}).error_text() == "bad"
        assert UpstreamResponse(401, {"detail": "Token expired"}).error_text() == "Token expired"
        assert UpstreamResponse(400, {"name": ["required"]}).error_text() is None
        assert UpstreamResponse(500, ["oops"]).error_text() is None


# ======================================================================
# request()
# ======================================================================


class TestRequest:
    @pytest.mark.asyncio
    async def test_forwards_authorization_and_json(self, api_client, backend) -> None:
        backend.add("POST", "/departments/", 201, {"id": 7, "name": "Choir"})

        upstream = await api_client.request(
            "POST",
            "/departments/",
            authorization="Bearer abc",
            json_body={"name": "Choir"},
        )

        assert upstream == UpstreamResponse(201, {"id": 7, "name": "Choir"})
        sent = backend.calls_to("POST", "/departments/")[0]
        assert sent.headers["Authorization"] == "Bearer abc"
        assert backend.body(sent) == {"name": "Choir"}
        assert str(sent.url) == "http://backend.test/api/departments/"

    @pytest.mark.asyncio
    async def test_no_authorization_header_when_absent(self, api_client, backend) -> None:
        backend.add("GET", "/members/", 200, [])
        await api_client.request("GET", "/members/")
        assert "Authorization" not in backend.calls[0].headers

    @pytest.mark.asyncio
    async def test_query_params_are_appended(self, api_client, backend) -> None:
        backend.add("GET", "/admin-panel/testimonies/", 200, [])
        await api_client.request(
            "GET", "/admin-panel/testimonies/", params=[("status", "pending"), ("page", "3")]
        )
        assert backend.calls[0].url.params["status"] == "pending"
        assert backend.calls[0].url.params["page"] == "3"

    @pytest.mark.asyncio
    async def test_relays_error_status_and_body(self, api_client, backend) -> None:
        backend.add("GET", "/admin-panel/members/", 403, {"detail": "Forbidden"})
        upstream = await api_client.request("GET", "/admin-panel/members/", authorization="Bearer t")
        assert upstream.status_code == 403
        assert upstream.payload == {"detail": "Forbidden"}

    @pytest.mark.asyncio
    async def test_empty_body_decodes_to_none(self, api_client, backend) -> None:
        backend.add("DELETE", "/admin-panel/devotionals/3/", 204)
        upstream = await api_client.request("DELETE", "/admin-panel/devotionals/3/")
        assert upstream == UpstreamResponse(204, None)

    @pytest.mark.asyncio
    async def test_non_json_body_is_replaced(self, api_client, backend) -> None:
        backend.add_handler(
            "GET",
            "/departments/",
            lambda _req: httpx.Response(502, text="<html>Bad gateway</html>"),
        )
        upstream = await api_client.request("GET", "/departments/")
        assert upstream.status_code == 502
        assert upstream.payload == {"error": "Invalid response from external API"}

    @pytest.mark.asyncio
    async def test_multipart_upload(self, api_client, backend) -> None:
        backend.add("POST", "/admin-panel/testimonies/", 201, {"id": 1})

        await api_client.request(
            "POST",
            "/admin-panel/testimonies/",
            data={"text": "Healed"},
            files=[("image", ("photo.jpg", b"\xff\xd8jpeg", "image/jpeg"))],
        )

        sent = backend.calls[0]
        assert sent.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="text"' in sent.content
        assert b'filename="photo.jpg"' in sent.content

    @pytest.mark.asyncio
    async def test_transport_failure_raises_unavailable(self) -> None:
        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(
            base_url="http://backend.test/api", transport=httpx.MockTransport(_refuse)
        ) as http_client:
            client = ChurchApiClient(http_client=http_client)
            with pytest.raises(BackendUnavailableError) as exc_info:
                await client.request("GET", "/departments/")

        assert exc_info.value.provider_name == "church_api"
        assert "connection refused" in exc_info.value.message


# ======================================================================
# fetch_collection()
# ======================================================================


class TestFetchCollection:
    @pytest.mark.asyncio
    async def test_unwraps_paginated_results(self, api_client, backend) -> None:
        backend.add("GET", "/admin-panel/sermons/", 200, {"count": 2, "results": [{"id": 1}, {"id": 2}]})
        items = await api_client.fetch_collection("/admin-panel/sermons/", "Bearer t", label="sermons")
        assert items == [{"id": 1}, {"id": 2}]

    @pytest.mark.asyncio
    async def test_401_reads_authentication_failed(self, api_client, backend) -> None:
        backend.add("GET", "/admin-panel/members/", 401, {"detail": "Token is invalid or expired"})

        with pytest.raises(BackendError) as exc_info:
            await api_client.fetch_collection("/admin-panel/members/", "Bearer old")

        assert exc_info.value.message == "Authentication failed"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_backend_message_is_used(self, api_client, backend) -> None:
        backend.add("GET", "/admin-panel/events/", 403, {"detail": "Admins only"})
        with pytest.raises(BackendError, match="Admins only"):
            await api_client.fetch_collection("/admin-panel/events/", "Bearer t", label="events")

    @pytest.mark.asyncio
    async def test_generic_message_with_label(self, api_client, backend) -> None:
        backend.add("GET", "/admin-panel/events/", 500)
        with pytest.raises(BackendError) as exc_info:
            await api_client.fetch_collection("/admin-panel/events/", "Bearer t", label="events")
        assert exc_info.value.message == "Failed to fetch events (500)"


# ======================================================================
# Named endpoints
# ======================================================================


class TestNamedEndpoints:
    @pytest.mark.asyncio
    async def test_obtain_token(self, api_client, backend) -> None:
        backend.add("POST", "/token/", 200, {"access": "a", "refresh": "r"})

        upstream = await api_client.obtain_token("pastor@example.org", "secret")

        assert upstream.payload == {"access": "a", "refresh": "r"}
        assert backend.body(backend.calls[0]) == {
            "email": "pastor@example.org",
            "password": "secret",
        }

    @pytest.mark.asyncio
    async def test_register_member(self, api_client, backend) -> None:
        backend.add("POST", "/members/", 201, {"id": 12})
        upstream = await api_client.register_member({"first_name": "Ada"})
        assert upstream.status_code == 201
        assert backend.body(backend.calls[0]) == {"first_name": "Ada"}

    @pytest.mark.asyncio
    async def test_moderate_testimony(self, api_client, backend) -> None:
        backend.add("POST", "/admin-panel/testimonies/9/reject/", 200, {"status": "rejected"})

        upstream = await api_client.moderate_testimony("9", "reject", "Bearer t")

        assert upstream.payload == {"status": "rejected"}
        assert backend.calls[0].headers["Authorization"] == "Bearer t"
