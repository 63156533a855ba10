"""
Transport wrapper tests against httpx.MockTransport servers.
"""
import asyncio

import httpx
import pytest

from conftest import make_settings
from kubekorea.client.api_client import CANCELLED, NETWORK_ERROR, TIMEOUT, ApiClient, ApiError
from kubekorea.client.utils import build_url


class Recorder:
    """MockTransport handler that replays a list of responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        response = self.responses[min(len(self.requests), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(response.status_code, headers=response.headers, content=response.content)


def make_client(handler, **kwargs) -> ApiClient:
    kwargs.setdefault("retry_delay", 0)
    return ApiClient("http://api.test", transport=httpx.MockTransport(handler), **kwargs)


class TestApiClientResponses:

    def test_wraps_plain_json_in_api_response(self):
        handler = Recorder(httpx.Response(200, json=[{"id": "1"}]))

        async def scenario():
            async with make_client(handler) as client:
                return await client.get("/api/posts")

        response = asyncio.run(scenario())

        assert response.success is True
        assert response.data == [{"id": "1"}]

    def test_passes_through_api_response_body(self):
        body = {"success": True, "data": {"id": "1"}, "message": "ok"}
        handler = Recorder(httpx.Response(201, json=body))

        response = asyncio.run(make_client(handler).post("/api/posts", {"title": "t"}))

        assert response.data == {"id": "1"}
        assert response.message == "ok"
        assert handler.requests[0].method == "POST"

    def test_non_json_body_is_returned_as_text(self):
        handler = Recorder(httpx.Response(200, text="pong"))

        response = asyncio.run(make_client(handler).get("/ping"))

        assert response.data == "pong"

    def test_client_error_is_not_retried(self):
        handler = Recorder(httpx.Response(404, json={"message": "게시글을 찾을 수 없습니다."}))
        client = make_client(handler, retries=3)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.get("/api/posts/x"))

        assert exc_info.value.status == 404
        assert exc_info.value.message == "게시글을 찾을 수 없습니다."
        assert len(handler.requests) == 1

    def test_server_error_retried_then_raised(self):
        handler = Recorder(httpx.Response(500, json={"message": "down"}))
        client = make_client(handler, retries=2)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.get("/api/posts"))

        assert exc_info.value.status == 500
        assert len(handler.requests) == 3

    def test_recovers_after_transient_server_error(self):
        handler = Recorder(httpx.Response(503), httpx.Response(200, json={"ok": True}))
        client = make_client(handler, retries=1)

        response = asyncio.run(client.get("/api/posts"))

        assert response.data == {"ok": True}
        assert len(handler.requests) == 2

    def test_network_error(self):
        handler = Recorder(httpx.ConnectError("connection refused"))
        client = make_client(handler, retries=1)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.get("/api/posts"))

        assert exc_info.value.code == NETWORK_ERROR
        assert exc_info.value.status == 0
        assert len(handler.requests) == 2

    def test_timeout(self):
        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        client = make_client(slow, retries=0, timeout=0.05)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(client.get("/api/posts"))

        assert exc_info.value.code == TIMEOUT

    def test_cancel_before_send(self):
        handler = Recorder(httpx.Response(200))
        client = make_client(handler)

        async def scenario():
            event = asyncio.Event()
            event.set()
            return await client.get("/api/posts", cancel_event=event)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.code == CANCELLED
        assert handler.requests == []

    def test_cancel_in_flight_is_not_retried(self):
        calls = []

        async def slow(request):
            calls.append(request)
            await asyncio.sleep(1)
            return httpx.Response(200)

        client = make_client(slow, retries=3)

        async def scenario():
            event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.02, event.set)
            return await client.get("/api/posts", cancel_event=event)

        with pytest.raises(ApiError) as exc_info:
            asyncio.run(scenario())

        assert exc_info.value.code == CANCELLED
        assert len(calls) == 1


class TestApiClientRequests:

    def test_query_params(self):
        handler = Recorder(httpx.Response(200, json=[]))

        asyncio.run(make_client(handler).get(
            "/api/posts", {"page": 2, "category": None, "tags": ["k8s", "helm"], "pinned": True}
        ))

        params = handler.requests[0].url.params
        assert params["page"] == "2"
        assert params["tags"] == "k8s,helm"
        assert params["pinned"] == "true"
        assert "category" not in params

    def test_auth_token_header(self):
        handler = Recorder(httpx.Response(200, json={}))
        client = make_client(handler)

        client.set_auth_token("abc")
        asyncio.run(client.get("/api/auth/me"))
        client.remove_auth_token()
        asyncio.run(client.get("/api/auth/me"))

        assert handler.requests[0].headers["Authorization"] == "Bearer abc"
        assert "Authorization" not in handler.requests[1].headers

    def test_from_settings(self):
        handler = Recorder(httpx.Response(200, json={}))
        settings = make_settings(api_base_url="http://api.test", api_retries=4, app_version="2.0.0")
        client = ApiClient.from_settings(settings, transport=httpx.MockTransport(handler))

        asyncio.run(client.get("/api/posts"))

        assert client.retries == 4
        request = handler.requests[0]
        assert str(request.url) == "http://api.test/api/posts"
        assert request.headers["X-Client-Version"] == "2.0.0"
        assert request.headers["Content-Type"] == "application/json"


class TestBuildUrl:

    def test_joins_base_and_endpoint(self):
        assert build_url("http://api.test/", "/api/posts") == "http://api.test/api/posts"
        assert build_url("http://api.test/v1", "api/posts") == "http://api.test/v1/api/posts"

    def test_skips_none_params(self):
        assert build_url("http://api.test", "/api/posts", {"page": 1, "q": None}) == "http://api.test/api/posts?page=1"

    def test_without_base_url(self):
        assert build_url("", "/api/posts") == "/api/posts"
