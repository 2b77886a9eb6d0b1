"""
HTTP middleware as decorators.

Every middleware is an ``HttpHandler`` wrapping another handler, so
cross-cutting concerns (auth, logging, timing, compression) are added by
stacking wrappers around the endpoint.
"""

import gzip
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

COMPRESSION_MIN_BYTES = 1024


@dataclass
class Request:
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    context: Dict[str, object] = field(default_factory=dict)


@dataclass
class Response:
    status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)


class HttpHandler(ABC):
    @abstractmethod
    def handle(self, request: Request) -> Response: ...


class BaseHandler(HttpHandler):
    """Endpoint returning a fixed body (or the result of ``render``)."""

    def __init__(self, render: Optional[Callable[[Request], bytes]] = None):
        self.render = render

    def handle(self, request: Request) -> Response:
        body = self.render(request) if self.render else b'{"status": "ok"}'
        return Response(200, body, {"Content-Type": "application/json"})


class Middleware(HttpHandler):
    def __init__(self, inner: HttpHandler):
        self.inner = inner


class LoggingMiddleware(Middleware):
    def __init__(self, inner: HttpHandler, clock: Callable[[], float] = time.perf_counter):
        super().__init__(inner)
        self.clock = clock
        self.entries = []

    def handle(self, request: Request) -> Response:
        started = self.clock()
        response = self.inner.handle(request)
        duration_ms = round((self.clock() - started) * 1000, 2)
        entry = {"method": request.method, "path": request.path, "status": response.status, "duration_ms": duration_ms}
        self.entries.append(entry)
        logger.info("Request handled", **entry)
        return response


class AuthMiddleware(Middleware):
    def __init__(self, inner: HttpHandler, valid_tokens: Iterable[str]):
        super().__init__(inner)
        self.valid_tokens = set(valid_tokens)

    def handle(self, request: Request) -> Response:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme != "Bearer" or token not in self.valid_tokens:
            logger.warning("Unauthorized request", path=request.path)
            return Response(401, b'{"error": "unauthorized"}', {"WWW-Authenticate": "Bearer"})
        request.context["token"] = token
        return self.inner.handle(request)


class TimingMiddleware(Middleware):
    def __init__(self, inner: HttpHandler, clock: Callable[[], float] = time.perf_counter):
        super().__init__(inner)
        self.clock = clock

    def handle(self, request: Request) -> Response:
        started = self.clock()
        response = self.inner.handle(request)
        response.headers["X-Response-Time"] = f"{(self.clock() - started) * 1000:.2f}ms"
        return response


class CompressionMiddleware(Middleware):
    def handle(self, request: Request) -> Response:
        response = self.inner.handle(request)
        accepts_gzip = "gzip" in request.headers.get("Accept-Encoding", "")
        if accepts_gzip and len(response.body) >= COMPRESSION_MIN_BYTES:
            response.body = gzip.compress(response.body)
            response.headers["Content-Encoding"] = "gzip"
        return response


def build_pipeline(endpoint: HttpHandler, tokens: Iterable[str]) -> HttpHandler:
    """Auth wraps logging wraps the endpoint; timing and compression on the outside."""
    return CompressionMiddleware(TimingMiddleware(AuthMiddleware(LoggingMiddleware(endpoint), tokens)))


@demo(
    "decorator.http-middleware",
    pattern="Decorator",
    category=Category.STRUCTURAL,
    title="Stacked HTTP middleware around an endpoint",
)
def run_demo() -> None:
    def list_products(request: Request) -> bytes:
        items = ",".join(f'{{"id": {i}, "name": "product-{i}"}}' for i in range(60))
        return f"[{items}]".encode()

    pipeline = build_pipeline(BaseHandler(list_products), tokens=["secret-token"])

    requests = [
        Request("GET", "/products"),
        Request("GET", "/products", {"Authorization": "Bearer secret-token"}),
        Request("GET", "/products", {"Authorization": "Bearer secret-token", "Accept-Encoding": "gzip, br"}),
    ]
    for request in requests:
        response = pipeline.handle(request)
        print(
            f"{request.method} {request.path} headers={sorted(request.headers)} -> {response.status}, "
            f"{len(response.body)} bytes, encoding={response.headers.get('Content-Encoding', 'identity')}, "
            f"time={response.headers.get('X-Response-Time')}"
        )


if __name__ == "__main__":
    run_module(run_demo)
