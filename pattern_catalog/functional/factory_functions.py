"""
Factory functions: objects assembled from closures instead of classes.

``create_http_client`` returns a namespace of functions sharing private
state (the httpx client, interceptors and counters). Nothing outside the
closure can reach that state except through the returned functions.
"""

import json
import re
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from ..config import settings
from ..exceptions import ExternalServiceException, ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)

RequestInterceptor = Callable[[httpx.Request], httpx.Request]
ResponseInterceptor = Callable[[httpx.Response], httpx.Response]


class _RetryableResponse(Exception):
    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, (_RetryableResponse, httpx.TransportError))


def create_http_client(
    base_url: str,
    *,
    timeout: float = 10.0,
    headers: Optional[Mapping[str, str]] = None,
    retries: int = 3,
    transport: Optional[httpx.BaseTransport] = None,
) -> SimpleNamespace:
    """
    Build an HTTP client from closures.

    Args:
        base_url: Root URL for relative paths
        timeout: Request timeout in seconds
        headers: Default headers sent with every request
        retries: Total attempts for 5xx responses and transport errors
        transport: Optional httpx transport (``httpx.MockTransport`` in demos)

    Returns:
        Namespace with ``get``, ``post``, ``add_request_interceptor``,
        ``add_response_interceptor``, ``stats`` and ``close``
    """
    if retries < 1:
        raise ValidationException("retries", retries, "must be at least 1")

    client = httpx.Client(base_url=base_url, timeout=timeout, headers=dict(headers or {}), transport=transport)
    request_interceptors: List[RequestInterceptor] = []
    response_interceptors: List[ResponseInterceptor] = []
    counters = {"requests": 0, "attempts": 0, "retries": 0, "errors": 0}

    def add_request_interceptor(fn: RequestInterceptor) -> None:
        request_interceptors.append(fn)

    def add_response_interceptor(fn: ResponseInterceptor) -> None:
        response_interceptors.append(fn)

    def attempt(request: httpx.Request) -> httpx.Response:
        counters["attempts"] += 1
        response = client.send(request)
        if response.is_server_error:
            raise _RetryableResponse(response)
        return response

    def count_retry(retry_state) -> None:
        counters["retries"] += 1

    def request(method: str, path: str, **kwargs: Any) -> Any:
        counters["requests"] += 1
        outgoing = client.build_request(method, path, **kwargs)
        for interceptor in request_interceptors:
            outgoing = interceptor(outgoing)

        retrying = Retrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(retries),
            wait=wait_exponential(multiplier=0.1 * settings.LATENCY_SCALE, max=2),
            before_sleep=count_retry,
            reraise=True,
        )
        try:
            response = retrying(attempt, outgoing)
        except _RetryableResponse as e:
            counters["errors"] += 1
            raise ExternalServiceException(base_url, f"{method} {path} -> HTTP {e.response.status_code}") from e
        except httpx.TransportError as e:
            counters["errors"] += 1
            raise ExternalServiceException(base_url, f"{method} {path}: {e}") from e

        for interceptor in response_interceptors:
            response = interceptor(response)
        if response.is_client_error:
            counters["errors"] += 1
            raise ExternalServiceException(base_url, f"{method} {path} -> HTTP {response.status_code}")
        logger.debug("HTTP request complete", method=method, path=path, status=response.status_code)
        return response.json()

    def get(path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return request("GET", path, params=params)

    def post(path: str, json: Any = None) -> Any:
        return request("POST", path, json=json)

    def stats() -> Dict[str, int]:
        return dict(counters)

    return SimpleNamespace(
        get=get,
        post=post,
        add_request_interceptor=add_request_interceptor,
        add_response_interceptor=add_response_interceptor,
        stats=stats,
        close=client.close,
    )


def create_counter(start: int = 0) -> SimpleNamespace:
    value = start

    def increment(step: int = 1) -> int:
        nonlocal value
        value += step
        return value

    def decrement(step: int = 1) -> int:
        return increment(-step)

    def reset() -> int:
        nonlocal value
        value = start
        return value

    return SimpleNamespace(increment=increment, decrement=decrement, reset=reset, current=lambda: value)


def create_id_generator(prefix: str) -> Callable[[], str]:
    """Sequential ids like ``ord-0001``; each generator counts on its own."""
    sequence: Iterator[int] = iter(range(1, 10**9))
    return lambda: f"{prefix}-{next(sequence):04d}"


def create_validator(rules: Mapping[str, Mapping[str, Any]]) -> Callable[[Mapping[str, Any]], Dict[str, List[str]]]:
    """
    Build a validator from declarative rules.

    Supported rule keys are ``required``, ``min``, ``max`` (length for
    strings, value for numbers) and ``pattern``.
    """
    compiled = {name: re.compile(rule["pattern"]) for name, rule in rules.items() if "pattern" in rule}

    def validate(data: Mapping[str, Any]) -> Dict[str, List[str]]:
        errors: Dict[str, List[str]] = {}
        for name, rule in rules.items():
            value = data.get(name)
            problems = []
            if value is None or value == "":
                if rule.get("required"):
                    problems.append("is required")
            else:
                size = len(value) if isinstance(value, str) else value
                if "min" in rule and size < rule["min"]:
                    problems.append(f"must be >= {rule['min']}")
                if "max" in rule and size > rule["max"]:
                    problems.append(f"must be <= {rule['max']}")
                if name in compiled and not compiled[name].search(str(value)):
                    problems.append("has an invalid format")
            if problems:
                errors[name] = problems
        return errors

    return validate


def fake_orders_transport(fail_first: int = 0) -> httpx.MockTransport:
    """Orders API; the first ``fail_first`` requests answer 503."""
    state = {"calls": 0, "orders": [{"id": 1, "item": "keyboard"}]}

    def handler(request: httpx.Request) -> httpx.Response:
        state["calls"] += 1
        if state["calls"] <= fail_first:
            return httpx.Response(503, json={"error": "unavailable"})
        if request.url.path == "/orders" and request.method == "GET":
            return httpx.Response(200, json=state["orders"])
        if request.url.path == "/orders" and request.method == "POST":
            order = {"id": len(state["orders"]) + 1, **json.loads(request.content)}
            state["orders"].append(order)
            return httpx.Response(201, json=order)
        return httpx.Response(404, json={"error": "not found"})

    return httpx.MockTransport(handler)


def tag_request(request: httpx.Request) -> httpx.Request:
    request.headers["X-Request-Id"] = "req-demo"
    return request


def print_status(response: httpx.Response) -> httpx.Response:
    print(f"  <- {response.status_code} {response.request.method} {response.request.url.path}")
    return response


@demo(
    "factory-functions.http-client",
    pattern="Factory Functions",
    category=Category.FUNCTIONAL,
    title="Closure-based HTTP client, counters, id generators and validators",
)
def run_demo() -> None:
    api = create_http_client(
        "https://orders.example.com",
        headers={"Accept": "application/json"},
        transport=fake_orders_transport(fail_first=1),
    )
    api.add_request_interceptor(tag_request)
    api.add_response_interceptor(print_status)
    print(f"Orders: {api.get('/orders')}")
    print(f"Created: {api.post('/orders', json={'item': 'mouse'})}")
    print(f"Stats: {api.stats()}")
    api.close()

    counter = create_counter(10)
    counter.increment()
    counter.increment(5)
    print(f"\nCounter: {counter.current()}")
    next_order_id = create_id_generator("ord")
    print(f"Ids: {[next_order_id() for _ in range(3)]}")

    validate = create_validator({"name": {"required": True, "min": 2}, "age": {"min": 18, "max": 130}})
    print(f"Validation: {validate({'name': 'A', 'age': 16})}")


if __name__ == "__main__":
    run_module(run_demo)
