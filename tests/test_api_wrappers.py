"""
REST wrappers: paths, payloads and token handling.
"""
import asyncio
import json

import httpx

from kubekorea.client.api_client import ApiClient
from kubekorea.client.auth_api import AuthApi
from kubekorea.client.posts_api import PostsApi
from kubekorea.client.users_api import UsersApi


class FakeServer:
    """Answers every request with a fixed body per (method, path)."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        body = self.routes.get((request.method, request.url.path), {"success": True})
        return httpx.Response(200, json=body)


def make_client(server) -> ApiClient:
    return ApiClient("http://api.test", transport=httpx.MockTransport(server), retries=0, retry_delay=0)


class TestPostsApi:

    def test_get_comments(self):
        server = FakeServer({("GET", "/api/posts/p1/comments"): [{"id": "c1"}]})

        comments = asyncio.run(PostsApi(make_client(server)).get_comments("p1"))

        assert comments == [{"id": "c1"}]

    def test_update_comment_sends_content(self):
        server = FakeServer({})

        asyncio.run(PostsApi(make_client(server)).update_comment("p1", "c1", "수정"))

        request = server.requests[0]
        assert request.method == "PATCH"
        assert request.url.path == "/api/posts/p1/comments/c1"
        assert json.loads(request.content) == {"content": "수정"}

    def test_put_shortcut(self):
        server = FakeServer({("PUT", "/api/posts/p1"): {"success": True, "data": {"id": "p1"}}})

        response = asyncio.run(make_client(server).put("/api/posts/p1", {"title": "새 제목"}))

        assert response.data == {"id": "p1"}
        assert json.loads(server.requests[0].content) == {"title": "새 제목"}

    def test_search_forwards_tags_and_author(self):
        server = FakeServer({("GET", "/api/search/posts"): {"items": []}})

        asyncio.run(PostsApi(make_client(server)).search_posts(
            "helm", {"tags": ["helm", "k8s"], "author": "u1", "category": "tip"},
        ))

        params = server.requests[0].url.params
        assert params["q"] == "helm"
        assert params["tags"] == "helm,k8s"
        assert params["author"] == "u1"
        assert params["category"] == "tip"


class TestUsersApi:

    def test_check_follow_status(self):
        server = FakeServer({
            ("GET", "/api/users/u1/follow"): {"userId": "u1", "followers": [], "following": ["u2"]},
        })
        api = UsersApi(make_client(server))

        assert asyncio.run(api.check_follow_status("u1", "u2")) is True
        assert asyncio.run(api.check_follow_status("u1", "u3")) is False

    def test_followers_page_params(self):
        server = FakeServer({("GET", "/api/users/u1/followers"): []})

        asyncio.run(UsersApi(make_client(server)).get_followers("u1", page=2))

        params = server.requests[0].url.params
        assert params["page"] == "2"
        assert "limit" not in params


class TestAuthApi:

    def test_github_auth_url(self):
        server = FakeServer({("GET", "/api/auth/oauth/github/url"): {"url": "https://github.com/login/oauth/authorize"}})

        url = asyncio.run(AuthApi(make_client(server)).get_github_auth_url(state="s1"))

        assert url == "https://github.com/login/oauth/authorize"
        assert server.requests[0].url.params["state"] == "s1"

    def test_callback_sets_token_and_logout_clears_it(self):
        server = FakeServer({
            ("GET", "/api/auth/callback/github"): {"success": True, "data": {"token": "session-token"}},
        })
        client = make_client(server)
        api = AuthApi(client)

        async def scenario():
            session = await api.handle_github_callback("code-1")
            await api.get_current_user()
            await api.logout()
            await api.get_current_user()
            return session

        session = asyncio.run(scenario())

        assert session == {"token": "session-token"}
        assert server.requests[1].headers["Authorization"] == "Bearer session-token"
        assert "Authorization" not in server.requests[3].headers
