"""
REST API client facade.

Callers ask for users and posts; the facade deals with httpx client setup,
authentication headers, retries on transient failures, JSON decoding,
response caching and mapping HTTP errors to catalogue exceptions.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
from cachetools import TTLCache
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ...config import settings
from ...exceptions import ExternalServiceException, ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

MAX_ATTEMPTS = 3


class _ServerError(Exception):
    """Internal marker for retryable responses."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (_ServerError, httpx.TransportError))


def _wait(retry_state) -> float:
    return wait_exponential(multiplier=0.1 * settings.LATENCY_SCALE, max=2)(retry_state)


class ApiClientFacade:
    """
    One object in front of the HTTP plumbing.

    Args:
        base_url: API root
        transport: Optional httpx transport (``httpx.MockTransport`` in demos)
        api_key: Sent as a bearer token
    """

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.BaseTransport] = None,
        api_key: str = "demo-key",
        cache_ttl_seconds: int = 60,
    ):
        self._client = httpx.Client(
            base_url=base_url,
            transport=transport,
            timeout=10.0,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "User-Agent": f"{settings.APP_NAME}/1.0",
            },
        )
        self._cache: TTLCache = TTLCache(maxsize=256, ttl=cache_ttl_seconds)
        self.requests_sent = 0

    def get_user(self, user_id: int) -> Dict[str, Any]:
        return self._get(f"/users/{user_id}")

    def list_posts(self, user_id: int) -> List[Dict[str, Any]]:
        return self._get("/posts", params={"userId": user_id})

    def create_post(self, user_id: int, title: str, body: str) -> Dict[str, Any]:
        payload = {"userId": user_id, "title": title, "body": body}
        created = self._request("POST", "/posts", json=payload)
        self._cache.pop(self._cache_key("/posts", {"userId": user_id}), None)
        return created

    def get_user_dashboard(self, user_id: int) -> Dict[str, Any]:
        user = self.get_user(user_id)
        posts = self.list_posts(user_id)
        return {
            "user": user,
            "post_count": len(posts),
            "latest_titles": [p["title"] for p in posts[-3:]],
        }

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        key = self._cache_key(path, params)
        if key in self._cache:
            logger.debug("Cache hit", path=path)
            return self._cache[key]
        data = self._request("GET", path, params=params)
        self._cache[key] = data
        return data

    @staticmethod
    def _cache_key(path: str, params: Optional[Dict[str, Any]]) -> str:
        return path + ("?" + "&".join(f"{k}={v}" for k, v in sorted(params.items())) if params else "")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._send(method, path, **kwargs)
        except _ServerError as e:
            raise ExternalServiceException("api", f"{method} {path} -> HTTP {e.response.status_code}") from e
        except httpx.TransportError as e:
            raise ExternalServiceException("api", f"{method} {path}: {e}") from e

        if response.status_code == 404:
            raise ResourceNotFoundException("resource", path)
        if response.is_client_error:
            raise ExternalServiceException("api", f"{method} {path} -> HTTP {response.status_code}")
        return response.json()

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(MAX_ATTEMPTS),
        wait=_wait,
        reraise=True,
    )
    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        self.requests_sent += 1
        logger.info("API request", method=method, path=path)
        response = self._client.request(method, path, **kwargs)
        if response.is_server_error:
            raise _ServerError(response)
        return response


def fake_api_transport(fail_first: int = 0) -> httpx.MockTransport:
    """JSONPlaceholder-like API; the first ``fail_first`` calls return 503."""
    state = {"calls": 0, "next_post_id": 4}
    users = {1: {"id": 1, "name": "Leanne Graham", "email": "leanne@example.com"}}
    posts = [
        {"id": 1, "userId": 1, "title": "Hello world"},
        {"id": 2, "userId": 1, "title": "Facades in practice"},
        {"id": 3, "userId": 2, "title": "Someone else"},
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        state["calls"] += 1
        if state["calls"] <= fail_first:
            return httpx.Response(503, json={"error": "unavailable"})
        if not request.headers.get("Authorization", "").startswith("Bearer "):
            return httpx.Response(401)
        path = request.url.path
        if path.startswith("/users/"):
            user = users.get(int(path.rsplit("/", 1)[-1]))
            return httpx.Response(200, json=user) if user else httpx.Response(404, json={})
        if path == "/posts" and request.method == "GET":
            user_id = int(request.url.params.get("userId", 0))
            return httpx.Response(200, json=[p for p in posts if p["userId"] == user_id])
        if path == "/posts" and request.method == "POST":
            post = {"id": state["next_post_id"], **json.loads(request.content)}
            state["next_post_id"] += 1
            posts.append(post)
            return httpx.Response(201, json=post)
        if path == "/forbidden":
            return httpx.Response(403)
        return httpx.Response(404, json={})

    return httpx.MockTransport(handler)


@demo(
    "facade.api-client",
    pattern="Facade",
    category=Category.STRUCTURAL,
    title="Simple calls over auth, retries, caching and error mapping",
)
def run_demo() -> None:
    api = ApiClientFacade("https://api.example.com", transport=fake_api_transport(fail_first=2))

    dashboard = api.get_user_dashboard(1)
    print(f"Dashboard: {dashboard}")
    api.get_user_dashboard(1)
    print(f"Requests sent (2 retries, then cached): {api.requests_sent}")

    created = api.create_post(1, "New post", "Written through the facade")
    print(f"Created post {created['id']}; dashboard now lists {api.get_user_dashboard(1)['post_count']} posts")

    try:
        api.get_user(42)
    except ResourceNotFoundException as e:
        print(e.message)
    api.close()


if __name__ == "__main__":
    run_module(run_demo)
