"""
Decorator pattern through function composition.

Two layers:

* function decorators (timing, logging, retry, memoization, validation)
  that work on both plain and ``async`` functions;
* a middleware pipeline where each middleware is
  ``(context, next_handler) -> context`` and ``build_pipeline`` folds
  them around a request handler.
"""

import functools
import inspect
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, Iterable, Optional, Type

from cachetools import LRUCache, TTLCache
from cachetools.keys import hashkey
from prometheus_client import CollectorRegistry, Histogram
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt

from ..config import settings
from ..exceptions import ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)

METRICS_REGISTRY = CollectorRegistry()
FUNCTION_DURATION = Histogram(
    "function_duration_seconds",
    "Time spent in decorated functions",
    ["function"],
    registry=METRICS_REGISTRY,
)


def compose(*fns: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Right-to-left: ``compose(f, g)(x) == f(g(x))``."""
    return pipe(*reversed(fns))


def pipe(*fns: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Left-to-right: ``pipe(f, g)(x) == g(f(x))``."""

    def run(value: Any) -> Any:
        for fn in fns:
            value = fn(value)
        return value

    return run


# ==================== FUNCTION DECORATORS ====================


def with_timing(histogram: Optional[Histogram] = None, clock: Callable[[], float] = time.perf_counter):
    """Observe each call's duration in a histogram labelled by function name."""
    metric = histogram or FUNCTION_DURATION

    def decorator(fn):
        observer = metric.labels(function=fn.__name__)

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                start = clock()
                try:
                    return await fn(*args, **kwargs)
                finally:
                    observer.observe(clock() - start)

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start = clock()
            try:
                return fn(*args, **kwargs)
            finally:
                observer.observe(clock() - start)

        return wrapper

    return decorator


def with_logging(log=None):
    log = log or logger

    def decorator(fn):
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                log.info("Calling function", function=fn.__name__, args=repr(args))
                try:
                    result = await fn(*args, **kwargs)
                except Exception as e:
                    log.error("Function failed", function=fn.__name__, error=str(e))
                    raise
                log.info("Function returned", function=fn.__name__, result=repr(result))
                return result

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            log.info("Calling function", function=fn.__name__, args=repr(args))
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                log.error("Function failed", function=fn.__name__, error=str(e))
                raise
            log.info("Function returned", function=fn.__name__, result=repr(result))
            return result

        return wrapper

    return decorator


def with_retry(attempts: int = 3, wait: float = 0.1, exceptions: Iterable[Type[BaseException]] = (Exception,)):
    """Retry with tenacity; waits are scaled by ``LATENCY_SCALE``."""

    def _wait(retry_state) -> float:
        return wait * settings.LATENCY_SCALE

    def _log_retry(retry_state) -> None:
        logger.warning(
            "Retrying function",
            function=retry_state.fn.__name__ if retry_state.fn else None,
            attempt=retry_state.attempt_number,
        )

    def decorator(fn):
        # tenacity wraps coroutine functions with an async retry loop itself
        return retry(
            retry=retry_if_exception_type(tuple(exceptions)),
            stop=stop_after_attempt(attempts),
            wait=_wait,
            before_sleep=_log_retry,
            reraise=True,
        )(fn)

    return decorator


def with_memoization(maxsize: int = 128):
    """LRU memoization keyed on the call arguments."""

    def decorator(fn):
        cache: LRUCache = LRUCache(maxsize=maxsize)

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                key = hashkey(*args, **kwargs)
                if key in cache:
                    return cache[key]
                result = await fn(*args, **kwargs)
                cache[key] = result
                return result

            async_wrapper.cache = cache
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            key = hashkey(*args, **kwargs)
            if key in cache:
                return cache[key]
            result = fn(*args, **kwargs)
            cache[key] = result
            return result

        wrapper.cache = cache
        return wrapper

    return decorator


def with_validation(validator: Callable[..., Optional[str]]):
    """``validator`` gets the call arguments and returns an error message or ``None``."""

    def check(fn, args, kwargs) -> None:
        error = validator(*args, **kwargs)
        if error:
            raise ValidationException(fn.__name__, args, error)

    def decorator(fn):
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                check(fn, args, kwargs)
                return await fn(*args, **kwargs)

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            check(fn, args, kwargs)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


# ==================== MIDDLEWARE PIPELINE ====================

Context = Dict[str, Any]
Handler = Callable[[Context], Context]
Middleware = Callable[[Context, Handler], Context]


def make_request(method: str, path: str, headers: Optional[Dict[str, str]] = None, body: Any = None, client: str = "127.0.0.1") -> Context:
    return {
        "method": method.upper(),
        "path": path,
        "headers": {k.lower(): v for k, v in (headers or {}).items()},
        "body": body,
        "client": client,
        "state": {},
    }


def respond(ctx: Context, status: int, body: Any = None, headers: Optional[Dict[str, str]] = None) -> Context:
    return {**ctx, "response": {"status": status, "body": body, "headers": dict(headers or {})}}


def with_header(ctx: Context, name: str, value: str) -> Context:
    response = ctx["response"]
    return {**ctx, "response": {**response, "headers": {**response["headers"], name: value}}}


def build_pipeline(*middlewares: Middleware) -> Callable[[Handler], Handler]:
    """The first middleware is the outermost."""

    def wrap(handler: Handler) -> Handler:
        for middleware in reversed(middlewares):
            handler = functools.partial(middleware, next_handler=handler)
        return handler

    return wrap


def logging_middleware(ctx: Context, next_handler: Handler, clock: Callable[[], float] = time.perf_counter) -> Context:
    start = clock()
    result = next_handler(ctx)
    logger.info(
        "Request handled",
        method=ctx["method"],
        path=ctx["path"],
        status=result["response"]["status"],
        duration_ms=round((clock() - start) * 1000, 2),
    )
    return result


def auth_middleware(tokens: Dict[str, str], public_paths: Iterable[str] = ("/health",)) -> Middleware:
    public = set(public_paths)

    def middleware(ctx: Context, next_handler: Handler) -> Context:
        if ctx["path"] in public or ctx["method"] == "OPTIONS":
            return next_handler(ctx)
        scheme, _, token = ctx["headers"].get("authorization", "").partition(" ")
        if scheme.lower() != "bearer" or token not in tokens:
            return respond(ctx, 401, {"error": "unauthorized"})
        return next_handler({**ctx, "user": tokens[token]})

    return middleware


def cors_middleware(allowed_origins: Iterable[str]) -> Middleware:
    allowed = set(allowed_origins)

    def middleware(ctx: Context, next_handler: Handler) -> Context:
        origin = ctx["headers"].get("origin")
        if ctx["method"] == "OPTIONS":
            result = respond(ctx, 204)
        else:
            result = next_handler(ctx)
        if origin and ("*" in allowed or origin in allowed):
            result = with_header(result, "Access-Control-Allow-Origin", origin)
        return result

    return middleware


def rate_limit_middleware(limit: int, window_seconds: float, clock: Callable[[], float] = time.time) -> Middleware:
    """Sliding window per client address."""
    hits: Dict[str, Deque[float]] = {}

    def middleware(ctx: Context, next_handler: Handler) -> Context:
        now = clock()
        window = hits.setdefault(ctx["client"], deque())
        while window and window[0] <= now - window_seconds:
            window.popleft()
        if len(window) >= limit:
            retry_after = int(window[0] + window_seconds - now) + 1
            result = respond(ctx, 429, {"error": "rate limit exceeded"})
            return with_header(result, "Retry-After", str(retry_after))
        window.append(now)
        return next_handler(ctx)

    return middleware


def validation_middleware(schemas: Dict[str, Type[BaseModel]]) -> Middleware:
    """Validate request bodies per ``"METHOD /path"`` with pydantic models."""

    def middleware(ctx: Context, next_handler: Handler) -> Context:
        model = schemas.get(f"{ctx['method']} {ctx['path']}")
        if model is None:
            return next_handler(ctx)
        try:
            body = model.model_validate(ctx["body"] or {})
        except PydanticValidationError as e:
            errors = [{"field": ".".join(map(str, err["loc"])), "message": err["msg"]} for err in e.errors()]
            return respond(ctx, 400, {"error": "invalid body", "details": errors})
        return next_handler({**ctx, "body": body.model_dump()})

    return middleware


def error_handling_middleware(ctx: Context, next_handler: Handler) -> Context:
    try:
        return next_handler(ctx)
    except Exception as e:
        logger.exception("Unhandled error in handler", path=ctx["path"])
        return respond(ctx, 500, {"error": "internal server error", "detail": str(e)})


def caching_middleware(ttl_seconds: float = 30, maxsize: int = 256, timer: Callable[[], float] = time.monotonic) -> Middleware:
    """Cache successful GET responses by path."""
    cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)

    def middleware(ctx: Context, next_handler: Handler) -> Context:
        if ctx["method"] != "GET":
            return next_handler(ctx)
        cached = cache.get(ctx["path"])
        if cached is not None:
            return with_header({**ctx, "response": cached}, "X-Cache", "HIT")
        result = next_handler(ctx)
        if result["response"]["status"] == 200:
            cache[ctx["path"]] = result["response"]
        return with_header(result, "X-Cache", "MISS")

    return middleware


# ==================== USE CASE ====================


class CreateProject(BaseModel):
    name: str
    visibility: str = "private"


PROJECTS = [{"id": 1, "name": "pattern-catalog"}]


def api_handler(ctx: Context) -> Context:
    route = f"{ctx['method']} {ctx['path']}"
    if route == "GET /health":
        return respond(ctx, 200, {"status": "ok"})
    if route == "GET /projects":
        return respond(ctx, 200, list(PROJECTS))
    if route == "POST /projects":
        return respond(ctx, 201, {"id": len(PROJECTS) + 1, **ctx["body"], "owner": ctx.get("user")})
    if route == "GET /crash":
        raise RuntimeError("database connection reset")
    return respond(ctx, 404, {"error": "not found"})


def build_api(rate_limit: int = 20, clock: Callable[[], float] = time.time) -> Handler:
    return build_pipeline(
        error_handling_middleware,
        logging_middleware,
        cors_middleware(["https://app.example.com"]),
        rate_limit_middleware(limit=rate_limit, window_seconds=60, clock=clock),
        auth_middleware({"token-ada": "ada"}),
        validation_middleware({"POST /projects": CreateProject}),
        caching_middleware(ttl_seconds=30),
    )(api_handler)


@with_timing()
@with_memoization(maxsize=64)
def fibonacci(n: int) -> int:
    return n if n < 2 else fibonacci(n - 1) + fibonacci(n - 2)


slugify = compose(lambda s: "-".join(s.split()), str.lower, str.strip)


@demo(
    "composition.middleware-pipeline",
    pattern="Function Composition",
    category=Category.FUNCTIONAL,
    title="Composable decorators and an HTTP-style middleware pipeline",
)
def run_demo() -> None:
    print(f"slugify('  Design Patterns In Python ') = {slugify('  Design Patterns In Python ')!r}")
    print(f"fibonacci(30) = {fibonacci(30)}, cached entries: {len(fibonacci.cache)}")
    calls = METRICS_REGISTRY.get_sample_value("function_duration_seconds_count", {"function": "fibonacci"})
    print(f"timed calls recorded: {int(calls or 0)}")

    api = build_api()
    auth = {"Authorization": "Bearer token-ada", "Origin": "https://app.example.com"}
    requests = [
        make_request("GET", "/health"),
        make_request("GET", "/projects"),
        make_request("GET", "/projects", auth),
        make_request("GET", "/projects", auth),
        make_request("POST", "/projects", auth, {"visibility": "public"}),
        make_request("POST", "/projects", auth, {"name": "lens-demo"}),
        make_request("GET", "/crash", auth),
    ]
    print()
    for request in requests:
        response = api(request)["response"]
        cache = response["headers"].get("X-Cache", "")
        print(f"  {request['method']:<4} {request['path']:<10} -> {response['status']} {cache:<4} {response['body']}")


if __name__ == "__main__":
    run_module(run_demo)
