"""
Protection proxy.

``SecureDocumentProxy`` checks the caller's roles before delegating to the
real ``DocumentStore`` and writes an audit entry for every attempt,
allowed or not.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Set

from ...exceptions import AccessDeniedException, ResourceNotFoundException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

ROLE_USER = "ROLE_USER"
ROLE_ADMIN = "ROLE_ADMIN"


@dataclass
class Principal:
    username: str
    roles: Set[str] = field(default_factory=set)


@dataclass
class AuditEntry:
    username: str
    action: str
    document_id: str
    allowed: bool
    timestamp: datetime


class DocumentStore:
    def __init__(self) -> None:
        self._documents: Dict[str, str] = {}

    def read(self, document_id: str) -> str:
        if document_id not in self._documents:
            raise ResourceNotFoundException("document", document_id)
        return self._documents[document_id]

    def write(self, document_id: str, content: str) -> None:
        self._documents[document_id] = content

    def delete(self, document_id: str) -> None:
        self._documents.pop(document_id, None)


class SecureDocumentProxy:
    _REQUIRED = {"read": ROLE_USER, "write": ROLE_ADMIN, "delete": ROLE_ADMIN}

    def __init__(self, store: DocumentStore, user: Principal, audit_log: List[AuditEntry]):
        self._store = store
        self.user = user
        self.audit_log = audit_log

    def read(self, document_id: str) -> str:
        self._authorize("read", document_id)
        return self._store.read(document_id)

    def write(self, document_id: str, content: str) -> None:
        self._authorize("write", document_id)
        self._store.write(document_id, content)

    def delete(self, document_id: str) -> None:
        self._authorize("delete", document_id)
        self._store.delete(document_id)

    def _authorize(self, action: str, document_id: str) -> None:
        required = self._REQUIRED[action]
        # Admins may do everything users may.
        allowed = required in self.user.roles or ROLE_ADMIN in self.user.roles
        self.audit_log.append(
            AuditEntry(self.user.username, action, document_id, allowed, datetime.now(timezone.utc))
        )
        if not allowed:
            logger.warning("Access denied", user=self.user.username, action=action, document_id=document_id)
            raise AccessDeniedException(self.user.username, required_role=required, action=f"{action} {document_id}")


@demo(
    "proxy.security",
    pattern="Proxy",
    category=Category.STRUCTURAL,
    title="Role-based access control with an audit trail",
)
def run_demo() -> None:
    store = DocumentStore()
    audit: List[AuditEntry] = []
    admin = SecureDocumentProxy(store, Principal("alice", {ROLE_ADMIN}), audit)
    viewer = SecureDocumentProxy(store, Principal("bob", {ROLE_USER}), audit)
    guest = SecureDocumentProxy(store, Principal("mallory"), audit)

    admin.write("handbook", "Welcome aboard")
    print(f"bob reads: {viewer.read('handbook')!r}")
    for attempt in (lambda: viewer.write("handbook", "defaced"), lambda: guest.read("handbook"), lambda: viewer.delete("handbook")):
        try:
            attempt()
        except AccessDeniedException as e:
            print(f"Denied: {e.message}")

    print("\nAudit log:")
    for entry in audit:
        print(f"  {entry.username:<8} {entry.action:<6} {entry.document_id:<9} {'ALLOWED' if entry.allowed else 'DENIED'}")


if __name__ == "__main__":
    run_module(run_demo)
