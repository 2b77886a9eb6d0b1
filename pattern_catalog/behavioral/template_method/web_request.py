"""
HTTP request handling as a template method.

``RequestHandler.__call__`` fixes the pipeline authenticate -> validate ->
before_process -> process -> after_process -> format_response. Handlers
take an ``httpx.Request`` and return an ``httpx.Response``, so any handler
can sit behind ``httpx.MockTransport`` and be called through a client.

A step rejects the request by raising ``RequestRejected`` with a status
code. Anything else that escapes a step becomes a 500.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from ...exceptions import PatternCatalogException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

USER_HEADER = "X-User-Id"
ROLE_HEADER = "X-User-Role"


class RequestRejected(PatternCatalogException):
    """A pipeline step refused the request."""

    def __init__(self, status: int, reason: str):
        super().__init__(message=reason, details={"status": status})
        self.status = status


class RequestHandler(ABC):
    """
    Base handler. Subclasses implement ``authenticate``, ``validate`` and
    ``process``; ``before_process``, ``after_process`` and
    ``format_response`` are optional hooks.
    """

    name = "api"

    def __init__(self) -> None:
        self.trace: List[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        """Run the pipeline. Not meant to be overridden."""
        self.trace = []
        try:
            self._step("authenticate", request)
            self._step("validate", request)
            self._step("before_process", request)
            status, data = self._step("process", request)
            self._step("after_process", request)
        except RequestRejected as e:
            logger.info("Request rejected", handler=self.name, path=request.url.path, status=e.status, reason=e.message)
            return self.format_response(e.status, {"error": e.message})
        except Exception as e:
            logger.error("Request failed", handler=self.name, path=request.url.path, error=str(e))
            return self.format_response(500, {"error": f"Request failed: {e}"})
        return self.format_response(status, data)

    def _step(self, name: str, request: httpx.Request) -> Any:
        self.trace.append(name)
        return getattr(self, name)(request)

    @abstractmethod
    def authenticate(self, request: httpx.Request) -> None: ...

    @abstractmethod
    def validate(self, request: httpx.Request) -> None: ...

    @abstractmethod
    def process(self, request: httpx.Request) -> tuple: ...

    def before_process(self, request: httpx.Request) -> None:
        pass

    def after_process(self, request: httpx.Request) -> None:
        pass

    def format_response(self, status: int, data: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(status, json=data)

    @staticmethod
    def body(request: httpx.Request) -> Dict[str, Any]:
        if not request.content:
            return {}
        try:
            payload = json.loads(request.content)
        except json.JSONDecodeError as e:
            raise RequestRejected(400, f"Malformed JSON body: {e.msg}") from e
        if not isinstance(payload, dict):
            raise RequestRejected(400, "JSON body must be an object")
        return payload

    @staticmethod
    def user(request: httpx.Request) -> Optional[str]:
        return request.headers.get(USER_HEADER)


class UserHandler(RequestHandler):
    """``/users``: every call needs a signed-in user."""

    name = "users"

    def __init__(self) -> None:
        super().__init__()
        self.users: Dict[str, Dict[str, Any]] = {
            "u1": {"id": "u1", "username": "alice", "email": "alice@example.com"}
        }
        self.audit: List[str] = []

    def authenticate(self, request: httpx.Request) -> None:
        if not self.user(request):
            raise RequestRejected(401, "Unauthorized")

    def validate(self, request: httpx.Request) -> None:
        if request.method == "POST" and not self.body(request).get("username"):
            raise RequestRejected(400, "Missing username")

    def process(self, request: httpx.Request) -> tuple:
        if request.method == "POST":
            user_id = f"u{len(self.users) + 1}"
            self.users[user_id] = {"id": user_id, **self.body(request)}
            return 201, self.users[user_id]
        if request.method == "GET":
            return 200, {"users": list(self.users.values())}
        raise RequestRejected(405, "Method not allowed")

    def after_process(self, request: httpx.Request) -> None:
        self.audit.append(f"{self.user(request)} {request.method} {request.url.path}")


class ProductHandler(RequestHandler):
    """``/products``: reads are public, writes need an admin."""

    name = "products"
    WRITE_METHODS = ("POST", "PUT", "DELETE")

    def __init__(self) -> None:
        super().__init__()
        self.products: Dict[str, Dict[str, Any]] = {"p1": {"id": "p1", "name": "Widget", "price": 19.99}}

    def authenticate(self, request: httpx.Request) -> None:
        if request.method not in self.WRITE_METHODS:
            return
        if not self.user(request):
            raise RequestRejected(401, "Unauthorized")
        if request.headers.get(ROLE_HEADER) != "admin":
            raise RequestRejected(403, "Admin role required")

    def validate(self, request: httpx.Request) -> None:
        if request.method != "POST":
            return
        body = self.body(request)
        if not body.get("name"):
            raise RequestRejected(400, "Missing product name")
        price = body.get("price", 0)
        if not isinstance(price, (int, float)) or price < 0:
            raise RequestRejected(400, "Price must be a non-negative number")

    def process(self, request: httpx.Request) -> tuple:
        if request.method == "POST":
            product_id = f"p{len(self.products) + 1}"
            self.products[product_id] = {"id": product_id, **self.body(request)}
            return 201, self.products[product_id]
        if request.method == "GET":
            return 200, {"products": list(self.products.values())}
        raise RequestRejected(405, "Method not allowed")

    def format_response(self, status: int, data: Dict[str, Any]) -> httpx.Response:
        return httpx.Response(status, json=data, headers={"X-API": "products"})


def router(handlers: Dict[str, RequestHandler]):
    """Dispatch on the first path segment; unknown paths get a 404."""

    def dispatch(request: httpx.Request) -> httpx.Response:
        segment = request.url.path.strip("/").split("/")[0]
        handler = handlers.get(segment)
        if handler is None:
            return httpx.Response(404, json={"error": f"No handler for /{segment}"})
        return handler(request)

    return dispatch


@demo(
    "template-method.web-request",
    pattern="Template Method",
    category=Category.BEHAVIORAL,
    title="Request pipeline for user and product endpoints",
)
def run_demo() -> None:
    app = router({"users": UserHandler(), "products": ProductHandler()})
    admin = {USER_HEADER: "admin", ROLE_HEADER: "admin"}
    calls = [
        ("POST", "/users", {"username": "bob", "email": "bob@example.com"}, admin),
        ("POST", "/users", {"username": "eve"}, {}),
        ("GET", "/products", None, {}),
        ("POST", "/products", {"price": 10.0}, admin),
        ("POST", "/products", {"name": "Gadget", "price": 5}, {USER_HEADER: "bob"}),
        ("DELETE", "/users", None, admin),
        ("GET", "/orders", None, {}),
    ]
    with httpx.Client(base_url="http://shop.local", transport=httpx.MockTransport(app)) as client:
        for method, path, body, headers in calls:
            response = client.request(method, path, json=body, headers=headers)
            print(f"{method:<6} {path:<10} -> {response.status_code} {response.json()}")


if __name__ == "__main__":
    run_module(run_demo)
