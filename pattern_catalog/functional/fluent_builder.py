"""
Immutable fluent builders.

Every method returns a new builder holding a frozen dataclass, so a
partially configured builder can be shared and branched safely.
"""

from dataclasses import dataclass, field, replace
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from pydantic import EmailStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationException
from ..logging_config import get_logger
from ..registry import Category, demo, run_module

logger = get_logger(__name__)

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


# ==================== API REQUEST ====================


@dataclass(frozen=True)
class ApiRequest:
    method: str
    url: str
    headers: Tuple[Tuple[str, str], ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()
    body: Any = None
    timeout: float = 30.0
    retries: int = 0

    @property
    def full_url(self) -> str:
        return f"{self.url}?{urlencode(self.params)}" if self.params else self.url


@dataclass(frozen=True)
class _RequestState:
    method: str = "GET"
    base_url: str = ""
    path: str = ""
    headers: Tuple[Tuple[str, str], ...] = ()
    params: Tuple[Tuple[str, str], ...] = ()
    body: Any = None
    timeout: float = 30.0
    retries: int = 0


class ApiRequestBuilder:
    def __init__(self, state: Optional[_RequestState] = None):
        self._state = state or _RequestState()

    def _with(self, **changes: Any) -> "ApiRequestBuilder":
        return ApiRequestBuilder(replace(self._state, **changes))

    def method(self, method: str) -> "ApiRequestBuilder":
        method = method.upper()
        if method not in HTTP_METHODS:
            raise ValidationException("method", method, f"must be one of {', '.join(HTTP_METHODS)}")
        return self._with(method=method)

    def get(self, path: str) -> "ApiRequestBuilder":
        return self.method("GET").path(path)

    def post(self, path: str) -> "ApiRequestBuilder":
        return self.method("POST").path(path)

    def base_url(self, url: str) -> "ApiRequestBuilder":
        return self._with(base_url=url.rstrip("/"))

    def path(self, path: str) -> "ApiRequestBuilder":
        return self._with(path="/" + path.lstrip("/"))

    def header(self, name: str, value: str) -> "ApiRequestBuilder":
        return self._with(headers=self._state.headers + ((name, value),))

    def bearer(self, token: str) -> "ApiRequestBuilder":
        return self.header("Authorization", f"Bearer {token}")

    def query(self, name: str, value: Any) -> "ApiRequestBuilder":
        return self._with(params=self._state.params + ((name, str(value)),))

    def json(self, body: Any) -> "ApiRequestBuilder":
        return self._with(body=body).header("Content-Type", "application/json")

    def timeout(self, seconds: float) -> "ApiRequestBuilder":
        if seconds <= 0:
            raise ValidationException("timeout", seconds, "must be positive")
        return self._with(timeout=seconds)

    def retries(self, count: int) -> "ApiRequestBuilder":
        return self._with(retries=count)

    def build(self) -> ApiRequest:
        state = self._state
        if not state.base_url:
            raise ValidationException("base_url", state.base_url, "is required")
        if state.body is not None and state.method in ("GET", "DELETE"):
            raise ValidationException("body", state.method, "GET and DELETE requests cannot have a body")
        return ApiRequest(
            method=state.method,
            url=state.base_url + state.path,
            headers=state.headers,
            params=state.params,
            body=state.body,
            timeout=state.timeout,
            retries=state.retries,
        )


# ==================== QUERY STRING ====================


@dataclass(frozen=True)
class QueryBuilder:
    filters: Tuple[Tuple[str, str], ...] = ()
    sort: Tuple[str, ...] = ()
    page: int = 1
    page_size: int = 20
    fields: Tuple[str, ...] = ()

    def where(self, name: str, value: Any, op: str = "eq") -> "QueryBuilder":
        key = name if op == "eq" else f"{name}[{op}]"
        return replace(self, filters=self.filters + ((key, str(value)),))

    def order_by(self, name: str, descending: bool = False) -> "QueryBuilder":
        return replace(self, sort=self.sort + (f"-{name}" if descending else name,))

    def paginate(self, page: int, page_size: int = 20) -> "QueryBuilder":
        if page < 1 or page_size < 1:
            raise ValidationException("page", page, "page and page_size must be >= 1")
        return replace(self, page=page, page_size=page_size)

    def select(self, *names: str) -> "QueryBuilder":
        return replace(self, fields=self.fields + names)

    def build(self) -> str:
        params = list(self.filters)
        if self.sort:
            params.append(("sort", ",".join(self.sort)))
        if self.fields:
            params.append(("fields", ",".join(self.fields)))
        params += [("page", str(self.page)), ("page_size", str(self.page_size))]
        return urlencode(params)


# ==================== EMAIL ====================

_email_adapter = TypeAdapter(EmailStr)


def _validated_address(value: str) -> str:
    try:
        return str(_email_adapter.validate_python(value))
    except PydanticValidationError:
        raise ValidationException("email", value, "is not a valid address") from None


@dataclass(frozen=True)
class EmailBuilder:
    sender: Optional[str] = None
    sender_name: Optional[str] = None
    to: Tuple[str, ...] = ()
    cc: Tuple[str, ...] = ()
    subject: str = ""
    text: str = ""
    html: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def from_(self, address: str, name: Optional[str] = None) -> "EmailBuilder":
        return replace(self, sender=_validated_address(address), sender_name=name)

    def add_to(self, *addresses: str) -> "EmailBuilder":
        return replace(self, to=self.to + tuple(_validated_address(a) for a in addresses))

    def add_cc(self, *addresses: str) -> "EmailBuilder":
        return replace(self, cc=self.cc + tuple(_validated_address(a) for a in addresses))

    def with_subject(self, subject: str) -> "EmailBuilder":
        return replace(self, subject=subject)

    def with_text(self, text: str) -> "EmailBuilder":
        return replace(self, text=text)

    def with_html(self, html: str) -> "EmailBuilder":
        return replace(self, html=html)

    def with_header(self, name: str, value: str) -> "EmailBuilder":
        return replace(self, headers={**self.headers, name: value})

    def build(self) -> EmailMessage:
        if not self.sender:
            raise ValidationException("from", None, "sender is required")
        if not self.to:
            raise ValidationException("to", None, "at least one recipient is required")
        if not self.subject:
            raise ValidationException("subject", None, "is required")

        message = EmailMessage()
        message["From"] = formataddr((self.sender_name, self.sender)) if self.sender_name else self.sender
        message["To"] = ", ".join(self.to)
        if self.cc:
            message["Cc"] = ", ".join(self.cc)
        message["Subject"] = self.subject
        for name, value in self.headers.items():
            message[name] = value
        message.set_content(self.text or "")
        if self.html:
            message.add_alternative(self.html, subtype="html")
        logger.debug("Email built", recipients=len(self.to) + len(self.cc), multipart=bool(self.html))
        return message


@demo(
    "fluent-builder.api-builder",
    pattern="Fluent Builder",
    category=Category.FUNCTIONAL,
    title="Immutable builders for API requests, query strings and emails",
)
def run_demo() -> None:
    base = ApiRequestBuilder().base_url("https://api.example.com/").bearer("token-123").timeout(5)
    list_users = base.get("/users").query("role", "admin").build()
    create_user = base.post("users").json({"name": "Ada"}).retries(2).build()
    print(f"{list_users.method} {list_users.full_url} headers={dict(list_users.headers)}")
    print(f"{create_user.method} {create_user.full_url} body={create_user.body} retries={create_user.retries}")

    common = QueryBuilder().where("status", "active").order_by("created_at", descending=True)
    print(f"\nPage 1: {common.paginate(1, 25).build()}")
    print(f"Page 2, adults only: {common.where('age', 18, op='gte').paginate(2, 25).select('id', 'name').build()}")

    email = (
        EmailBuilder()
        .from_("noreply@example.com", "Pattern Catalog")
        .add_to("ada@example.com")
        .with_subject("Your weekly digest")
        .with_text("Three new patterns this week.")
        .with_html("<p>Three <b>new</b> patterns this week.</p>")
        .build()
    )
    print(f"\nEmail to {email['To']} from {email['From']}: {email['Subject']!r} multipart={email.is_multipart()}")

    try:
        EmailBuilder().from_("noreply@example.com").add_to("not-an-email")
    except ValidationException as e:
        print(f"Error: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
