"""
HTTP request validation chain.

Auth, rate limiting, authorization and body validation each either reject
the request with an error response or hand it to the next handler. A
request surviving the whole chain reaches the endpoint and gets a 200.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, EmailStr, Field, ValidationError

from ...exceptions import RateLimitExceededException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...structural.proxy.rate_limit import RateLimiter

logger = get_logger(__name__)

# token -> (user id, roles)
TOKENS: Dict[str, tuple] = {
    "token-alice": ("alice", {"admin", "user"}),
    "token-bob": ("bob", {"user"}),
}


@dataclass
class HttpRequest:
    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    user: Optional[str] = None
    roles: set = field(default_factory=set)


@dataclass
class HttpResponse:
    status: int
    body: Dict[str, Any]


class CreateUserBody(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    age: int = Field(ge=0, le=150)


class RequestHandler(ABC):
    def __init__(self) -> None:
        self._next: Optional["RequestHandler"] = None

    def set_next(self, handler: "RequestHandler") -> "RequestHandler":
        self._next = handler
        return handler

    def handle(self, request: HttpRequest) -> HttpResponse:
        rejection = self.check(request)
        if rejection is not None:
            logger.info("Request rejected", handler=type(self).__name__, status=rejection.status, path=request.path)
            return rejection
        if self._next is None:
            return HttpResponse(200, {"ok": True})
        return self._next.handle(request)

    @abstractmethod
    def check(self, request: HttpRequest) -> Optional[HttpResponse]:
        """Return an error response to stop the chain."""


class AuthHandler(RequestHandler):
    def __init__(self, tokens: Optional[Dict[str, tuple]] = None):
        super().__init__()
        self.tokens = TOKENS if tokens is None else tokens

    def check(self, request: HttpRequest) -> Optional[HttpResponse]:
        header = request.headers.get("Authorization", "")
        token = header[len("Bearer "):] if header.startswith("Bearer ") else None
        if not token or token not in self.tokens:
            return HttpResponse(401, {"error": "missing or invalid token"})
        request.user, roles = self.tokens[token]
        request.roles = set(roles)
        return None


class RateLimitHandler(RequestHandler):
    """Per-user sliding window."""

    def __init__(self, max_requests: int = 10, window_seconds: int = 60, clock: Callable[[], float] = time.time):
        super().__init__()
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._limiters: Dict[str, RateLimiter] = {}

    def check(self, request: HttpRequest) -> Optional[HttpResponse]:
        user = request.user or "anonymous"
        limiter = self._limiters.get(user)
        if limiter is None:
            limiter = RateLimiter(self.max_requests, self.window_seconds, name=user, clock=self.clock)
            self._limiters[user] = limiter
        try:
            limiter.acquire()
        except RateLimitExceededException as e:
            return HttpResponse(429, {"error": e.message, "retry_after": e.details["retry_after"]})
        return None


class AdminPathHandler(RequestHandler):
    def check(self, request: HttpRequest) -> Optional[HttpResponse]:
        if request.path.startswith("/admin") and "admin" not in request.roles:
            return HttpResponse(403, {"error": "admin role required"})
        return None


class BodySchemaHandler(RequestHandler):
    def __init__(self, schemas: Optional[Dict[str, Type[BaseModel]]] = None):
        super().__init__()
        self.schemas = schemas if schemas is not None else {"/users": CreateUserBody}

    def check(self, request: HttpRequest) -> Optional[HttpResponse]:
        schema = self.schemas.get(request.path)
        if schema is None or request.method not in ("POST", "PUT", "PATCH"):
            return None
        try:
            schema.model_validate(request.body or {})
        except ValidationError as e:
            errors = [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()]
            return HttpResponse(400, {"error": "invalid body", "details": errors})
        return None


def build_validation_chain(clock: Callable[[], float] = time.time) -> RequestHandler:
    head = AuthHandler()
    head.set_next(RateLimitHandler(clock=clock)).set_next(AdminPathHandler()).set_next(BodySchemaHandler())
    return head


@demo(
    "chain-of-responsibility.http-validation",
    pattern="Chain of Responsibility",
    category=Category.BEHAVIORAL,
    title="Auth, rate limit, role and schema checks for HTTP requests",
)
def run_demo() -> None:
    chain = build_validation_chain(clock=lambda: 0.0)
    bob = {"Authorization": "Bearer token-bob"}
    alice = {"Authorization": "Bearer token-alice"}
    requests = [
        ("no token", HttpRequest("GET", "/users")),
        ("bob lists users", HttpRequest("GET", "/users", bob)),
        ("bob opens admin", HttpRequest("GET", "/admin/stats", bob)),
        ("alice opens admin", HttpRequest("GET", "/admin/stats", alice)),
        ("bad body", HttpRequest("POST", "/users", alice, {"name": "", "email": "nope", "age": 200})),
        ("good body", HttpRequest("POST", "/users", alice, {"name": "Carol", "email": "carol@example.com", "age": 31})),
    ]
    for label, request in requests:
        response = chain.handle(request)
        print(f"{label:<18} -> {response.status} {response.body}")

    statuses = [chain.handle(HttpRequest("GET", "/users", dict(bob))).status for _ in range(10)]
    print(f"Burst of 10 more from bob: {statuses.count(200)} ok, {statuses.count(429)} throttled")


if __name__ == "__main__":
    run_module(run_demo)
