"""
Social network where accounts notify observers of new posts.

Each ``Account`` is a subject. Publishing a post pushes it to every
attached observer: personal feeds that filter by content type, hashtags
and a daily cap, a notification service that tells followers and
mentioned users, and a content moderator that flags posts for review.
An observer that raises is logged and skipped so the rest still run.
"""

import re
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, Field

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

PostType = Literal["text", "image", "video", "link"]


class Post(BaseModel):
    id: str
    author: str
    content: str
    type: PostType = "text"
    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    likes: int = 0
    comments: int = 0
    shares: int = 0


class PostObserver(ABC):
    @abstractmethod
    def update(self, account: "Account", post: Post) -> None: ...


class Account:
    def __init__(self, username: str, display_name: str = ""):
        if not username:
            raise ValidationException("username", username, "is required")
        self.username = username
        self.display_name = display_name or username
        self.followers: Set[str] = set()
        self.following: Set[str] = set()
        self.posts: List[Post] = []
        self._observers: List[PostObserver] = []

    def attach(self, observer: PostObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def detach(self, observer: PostObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self, post: Post) -> None:
        for observer in list(self._observers):
            try:
                observer.update(self, post)
            except Exception as e:
                logger.error(
                    "Post observer failed",
                    observer=type(observer).__name__,
                    post_id=post.id,
                    error=str(e),
                )

    def publish(
        self,
        content: str,
        type: PostType = "text",
        hashtags: Iterable[str] = (),
        mentions: Iterable[str] = (),
        timestamp: Optional[datetime] = None,
    ) -> Post:
        if not content.strip():
            raise ValidationException("content", content, "must not be empty")
        post = Post(
            id=f"{self.username}-post-{len(self.posts) + 1}",
            author=self.username,
            content=content,
            type=type,
            hashtags=list(hashtags),
            mentions=list(mentions),
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        self.posts.append(post)
        logger.debug("Post published", author=self.username, post_id=post.id)
        self.notify(post)
        return post

    def follow(self, other: "Account") -> None:
        if other.username == self.username:
            return
        self.following.add(other.username)
        other.followers.add(self.username)

    def unfollow(self, other: "Account") -> None:
        self.following.discard(other.username)
        other.followers.discard(self.username)


class FeedSubscriber(PostObserver):
    """
    A reader's personal feed, newest first.

    Args:
        name: Reader name
        types: Post types the reader wants
        hashtags: When non-empty, only posts carrying one of these tags
        max_per_day: Feed entries allowed per calendar day
    """

    def __init__(
        self,
        name: str,
        types: Iterable[PostType] = ("text", "image", "video", "link"),
        hashtags: Iterable[str] = (),
        max_per_day: int = 10,
    ):
        if max_per_day < 1:
            raise ValidationException("max_per_day", max_per_day, "must be at least 1")
        self.name = name
        self.types = set(types)
        self.hashtags = set(hashtags)
        self.max_per_day = max_per_day
        self.authors: Set[str] = set()
        self.feed: List[Post] = []
        self.skipped: List[str] = []

    def subscribe_to(self, account: Account) -> None:
        self.authors.add(account.username)
        account.attach(self)

    def unsubscribe_from(self, account: Account) -> None:
        self.authors.discard(account.username)
        account.detach(self)

    def update(self, account: Account, post: Post) -> None:
        if account.username not in self.authors:
            return
        if self.wants(post):
            self.feed.insert(0, post)
        else:
            self.skipped.append(post.id)

    def wants(self, post: Post) -> bool:
        if post.type not in self.types:
            return False
        if self.hashtags and not self.hashtags.intersection(post.hashtags):
            return False
        same_day = sum(1 for p in self.feed if p.timestamp.date() == post.timestamp.date())
        return same_day < self.max_per_day


class PostNotifications(PostObserver):
    """Tells followers about new posts and mentioned users about mentions."""

    PREVIEW_LENGTH = 50

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []  # (recipient, kind, message)

    def update(self, account: Account, post: Post) -> None:
        preview = post.content[: self.PREVIEW_LENGTH]
        if len(post.content) > self.PREVIEW_LENGTH:
            preview += "..."
        for follower in sorted(account.followers):
            self.sent.append((follower, "post", f'New post from {account.username}: "{preview}"'))
        for mention in post.mentions:
            self.sent.append((mention, "mention", f"{account.username} mentioned you in a post"))

    def for_user(self, username: str) -> List[str]:
        return [message for recipient, _, message in self.sent if recipient == username]


class ContentModerator(PostObserver):
    """Flags posts with blocked words, hashtag stuffing or spammy text."""

    MAX_HASHTAGS = 5
    REPEATED_CHARS = re.compile(r"(.)\1{4,}")
    SHOUTING = re.compile(r"[A-Z]{10,}")

    def __init__(self, blocked_words: Iterable[str] = ("spam", "inappropriate", "blocked")):
        self.blocked_words = {word.lower() for word in blocked_words}
        self.flagged: Dict[str, str] = {}
        self.by_author: Dict[str, int] = defaultdict(int)

    def update(self, account: Account, post: Post) -> None:
        reason = self.review(post)
        if reason:
            self.flagged[post.id] = reason
            self.by_author[account.username] += 1
            logger.warning("Post flagged", post_id=post.id, author=account.username, reason=reason)

    def review(self, post: Post) -> Optional[str]:
        words = set(re.findall(r"[a-z']+", post.content.lower()))
        if words & self.blocked_words:
            return "Contains blocked words"
        if len(post.hashtags) > self.MAX_HASHTAGS:
            return "Too many hashtags"
        if self.REPEATED_CHARS.search(post.content) or self.SHOUTING.search(post.content):
            return "Spam detected"
        return None

    def block_word(self, word: str) -> None:
        self.blocked_words.add(word.lower())

    def unblock_word(self, word: str) -> None:
        self.blocked_words.discard(word.lower())


class SocialNetwork:
    """Registers accounts and wires the shared observers onto each one."""

    def __init__(self) -> None:
        self.accounts: Dict[str, Account] = {}
        self.notifications = PostNotifications()
        self.moderator = ContentModerator()

    def register(self, username: str, display_name: str = "") -> Account:
        if username in self.accounts:
            raise ValidationException("username", username, "is already taken")
        account = Account(username, display_name)
        account.attach(self.notifications)
        account.attach(self.moderator)
        self.accounts[username] = account
        return account


@demo(
    "observer.social-media",
    pattern="Observer",
    category=Category.BEHAVIORAL,
    title="Feeds, notifications and moderation reacting to new posts",
)
def run_demo() -> None:
    network = SocialNetwork()
    alice = network.register("alice", "Alice Johnson")
    bob = network.register("bob", "Bob Smith")
    carol = network.register("carol")
    bob.follow(alice)
    carol.follow(alice)

    tech_reader = FeedSubscriber("Bob's tech feed", hashtags=["python", "ai"])
    tech_reader.subscribe_to(alice)

    alice.publish("Shipping a new release of our #python toolkit today", hashtags=["python"], mentions=["carol"])
    alice.publish("Lunch photo", type="image", hashtags=["food"])
    alice.publish("BUY NOW!!!!! AMAZING DEALS", hashtags=["deals"])

    print(f"{tech_reader.name}: {[post.id for post in tech_reader.feed]} (skipped {tech_reader.skipped})")
    print("\nNotifications for carol:")
    for message in network.notifications.for_user("carol"):
        print(f"  {message}")
    print("\nFlagged posts:")
    for post_id, reason in network.moderator.flagged.items():
        print(f"  {post_id}: {reason}")


if __name__ == "__main__":
    run_module(run_demo)
