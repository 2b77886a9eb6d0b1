"""
Editorial workflow for documents.

Draft -> Review -> Approved -> Published. Review can also reject the
document, which returns it to Draft with the reviewer's comment. Only
editors may approve or reject, and only the author may edit a draft.
"""

from dataclasses import dataclass, field
from typing import List

from ...exceptions import AccessDeniedException, InvalidStateTransitionException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

ROLE_AUTHOR = "author"
ROLE_EDITOR = "editor"


@dataclass
class User:
    name: str
    role: str


class DocumentState:
    name = "state"

    def edit(self, doc: "Document", user: User, content: str) -> None:
        raise InvalidStateTransitionException(self.name, "edit")

    def submit(self, doc: "Document", user: User) -> None:
        raise InvalidStateTransitionException(self.name, "submit for review")

    def approve(self, doc: "Document", user: User) -> None:
        raise InvalidStateTransitionException(self.name, "approve")

    def reject(self, doc: "Document", user: User, comment: str) -> None:
        raise InvalidStateTransitionException(self.name, "reject")

    def publish(self, doc: "Document", user: User) -> None:
        raise InvalidStateTransitionException(self.name, "publish")


def _require_editor(user: User, action: str) -> None:
    if user.role != ROLE_EDITOR:
        raise AccessDeniedException(user.name, required_role=ROLE_EDITOR, action=action)


class Draft(DocumentState):
    name = "draft"

    def edit(self, doc: "Document", user: User, content: str) -> None:
        if user.name != doc.author.name:
            raise AccessDeniedException(user.name, action="edit someone else's draft")
        doc.content = content
        doc.version += 1

    def submit(self, doc: "Document", user: User) -> None:
        doc.transition(Review(), user, "submitted")


class Review(DocumentState):
    name = "review"

    def approve(self, doc: "Document", user: User) -> None:
        _require_editor(user, "approve")
        doc.transition(Approved(), user, "approved")

    def reject(self, doc: "Document", user: User, comment: str) -> None:
        _require_editor(user, "reject")
        doc.comments.append(f"{user.name}: {comment}")
        doc.transition(Draft(), user, "rejected")


class Approved(DocumentState):
    name = "approved"

    def publish(self, doc: "Document", user: User) -> None:
        _require_editor(user, "publish")
        doc.transition(Published(), user, "published")


class Published(DocumentState):
    name = "published"


@dataclass
class Document:
    title: str
    author: User
    content: str = ""
    version: int = 1
    state: DocumentState = field(default_factory=Draft)
    comments: List[str] = field(default_factory=list)
    history: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return self.state.name

    def transition(self, new_state: DocumentState, user: User, event: str) -> None:
        self.history.append(f"{self.state.name} -> {new_state.name} ({event} by {user.name})")
        logger.info("Document transition", title=self.title, old=self.state.name, new=new_state.name)
        self.state = new_state

    def edit(self, user: User, content: str) -> None:
        self.state.edit(self, user, content)

    def submit(self, user: User) -> None:
        self.state.submit(self, user)

    def approve(self, user: User) -> None:
        self.state.approve(self, user)

    def reject(self, user: User, comment: str) -> None:
        self.state.reject(self, user, comment)

    def publish(self, user: User) -> None:
        self.state.publish(self, user)


@demo(
    "state.document-workflow",
    pattern="State",
    category=Category.BEHAVIORAL,
    title="Draft, review, approval and publishing with role checks",
)
def run_demo() -> None:
    writer = User("wendy", ROLE_AUTHOR)
    editor = User("ed", ROLE_EDITOR)
    doc = Document("Release notes", writer)

    doc.edit(writer, "v1 draft")
    doc.submit(writer)
    try:
        doc.approve(writer)
    except AccessDeniedException as e:
        print(f"Denied: {e.message}")
    doc.reject(editor, "needs a changelog section")
    doc.edit(writer, "v2 with changelog")
    doc.submit(writer)
    doc.approve(editor)
    doc.publish(editor)
    try:
        doc.edit(writer, "sneaky change")
    except InvalidStateTransitionException as e:
        print(f"Blocked: {e.message}")

    print(f"'{doc.title}' is {doc.status} at version {doc.version}")
    for entry in doc.history:
        print(f"  {entry}")
    print(f"Comments: {doc.comments}")


if __name__ == "__main__":
    run_module(run_demo)
