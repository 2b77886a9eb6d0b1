"""
HTTP request builder.

``HttpRequestBuilder`` accumulates the pieces of a request and produces an
immutable ``HttpRequest``. ``send`` executes it with httpx, retrying
transient failures with tenacity; demos pass an ``httpx.MockTransport`` so
nothing leaves the process.
"""

import base64
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ...config import settings
from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

_METHODS = {"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"}
_BODYLESS = {"GET", "HEAD"}


class HttpRequest(BaseModel):
    """Finished request; cannot be modified after ``build()``."""

    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, str] = Field(default_factory=dict)
    json_body: Optional[Any] = None
    timeout: float = 30.0
    retries: int = 0

    def to_httpx(self) -> httpx.Request:
        return httpx.Request(
            self.method,
            self.url,
            headers=self.headers,
            params=self.params,
            json=self.json_body,
        )


class HttpRequestBuilder:
    def __init__(self) -> None:
        self._method = "GET"
        self._url: Optional[str] = None
        self._headers: Dict[str, str] = {}
        self._params: Dict[str, str] = {}
        self._body: Optional[Any] = None
        self._timeout = 30.0
        self._retries = 0

    def url(self, url: str) -> "HttpRequestBuilder":
        self._url = url
        return self

    def method(self, method: str) -> "HttpRequestBuilder":
        method = method.upper()
        if method not in _METHODS:
            raise ValidationException("method", method, "unknown HTTP method")
        self._method = method
        return self

    def header(self, name: str, value: str) -> "HttpRequestBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "HttpRequestBuilder":
        self._headers.update(headers)
        return self

    def query_param(self, name: str, value: Any) -> "HttpRequestBuilder":
        self._params[name] = str(value)
        return self

    def json_body(self, body: Any) -> "HttpRequestBuilder":
        self._body = body
        return self.header("Content-Type", "application/json")

    def bearer_token(self, token: str) -> "HttpRequestBuilder":
        return self.header("Authorization", f"Bearer {token}")

    def basic_auth(self, username: str, password: str) -> "HttpRequestBuilder":
        encoded = base64.b64encode(f"{username}:{password}".encode()).decode()
        return self.header("Authorization", f"Basic {encoded}")

    def timeout(self, seconds: float) -> "HttpRequestBuilder":
        if seconds <= 0:
            raise ValidationException("timeout", seconds, "must be positive")
        self._timeout = seconds
        return self

    def retries(self, count: int) -> "HttpRequestBuilder":
        if count < 0:
            raise ValidationException("retries", count, "must not be negative")
        self._retries = count
        return self

    def build(self) -> HttpRequest:
        """
        Validate and freeze the request.

        Raises:
            ValidationException: If the URL is missing or a GET/HEAD carries a body
        """
        if not self._url:
            raise ValidationException("url", self._url, "URL is required")
        if self._method in _BODYLESS and self._body is not None:
            raise ValidationException("body", self._method, f"{self._method} requests cannot have a body")
        return HttpRequest(
            method=self._method,
            url=self._url,
            headers=dict(self._headers),
            params=dict(self._params),
            json_body=self._body,
            timeout=self._timeout,
            retries=self._retries,
        )


class HttpRequestDirector:
    """Common request recipes."""

    @staticmethod
    def get_json(url: str) -> HttpRequest:
        return HttpRequestBuilder().url(url).header("Accept", "application/json").build()

    @staticmethod
    def post_json(url: str, body: Any) -> HttpRequest:
        return (
            HttpRequestBuilder()
            .method("POST")
            .url(url)
            .header("Accept", "application/json")
            .json_body(body)
            .retries(2)
            .build()
        )

    @staticmethod
    def authenticated_get(url: str, token: str) -> HttpRequest:
        return (
            HttpRequestBuilder()
            .url(url)
            .header("Accept", "application/json")
            .bearer_token(token)
            .timeout(10)
            .build()
        )


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, httpx.TransportError)


def send(request: HttpRequest, transport: Optional[httpx.BaseTransport] = None) -> httpx.Response:
    """
    Execute ``request``, retrying 5xx and transport errors ``request.retries`` times.

    Raises:
        httpx.HTTPStatusError: When the final attempt still fails
    """
    retrying = Retrying(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(request.retries + 1),
        wait=wait_exponential(multiplier=0.1 * settings.LATENCY_SCALE, max=2),
        reraise=True,
    )
    with httpx.Client(transport=transport, timeout=request.timeout) as client:
        for attempt in retrying:
            with attempt:
                logger.info(
                    "Sending request",
                    method=request.method,
                    url=request.url,
                    attempt=attempt.retry_state.attempt_number,
                )
                response = client.send(request.to_httpx())
                response.raise_for_status()
    return response


def _mock_api() -> httpx.MockTransport:
    calls = {"orders": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/users/me":
            if request.headers.get("Authorization") != "Bearer demo-token":
                return httpx.Response(401, json={"error": "unauthorized"})
            return httpx.Response(200, json={"id": 7, "name": "Ada"})
        if request.url.path == "/orders" and request.method == "POST":
            calls["orders"] += 1
            if calls["orders"] == 1:
                return httpx.Response(503, json={"error": "try again"})
            return httpx.Response(201, json={"order_id": "ord_1", "attempt": calls["orders"]})
        if request.url.path == "/products":
            return httpx.Response(200, json={"page": request.url.params.get("page"), "items": ["lamp", "desk"]})
        return httpx.Response(404, json={"error": "not found"})

    return httpx.MockTransport(handler)


@demo(
    "builder.http-request-builder",
    pattern="Builder",
    category=Category.CREATIONAL,
    title="Immutable HTTP requests with presets and retries",
)
def run_demo() -> None:
    transport = _mock_api()

    request = HttpRequestBuilder().url("https://api.example.com/products").query_param("page", 2).build()
    print(f"{request.method} {request.to_httpx().url}")
    print(f"  -> {send(request, transport).json()}")

    me = HttpRequestDirector.authenticated_get("https://api.example.com/users/me", "demo-token")
    print(f"{me.method} {me.url} headers={me.headers}")
    print(f"  -> {send(me, transport).json()}")

    order = HttpRequestDirector.post_json("https://api.example.com/orders", {"sku": "lamp", "qty": 1})
    print(f"{order.method} {order.url} retries={order.retries}")
    print(f"  -> {send(order, transport).json()}")

    try:
        HttpRequestBuilder().url("https://api.example.com").json_body({"x": 1}).build()
    except ValidationException as e:
        print(f"Rejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
