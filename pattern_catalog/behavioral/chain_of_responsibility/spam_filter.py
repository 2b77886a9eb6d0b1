"""
Email spam filter chain.

Filters run cheapest first. The first one that flags a message stops the
chain and records why; messages passing every filter are ham.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from ...logging_config import get_logger
from ...registry import Category, demo, run_module
from ...simulation import get_random

logger = get_logger(__name__)

_LINK_RE = re.compile(r"https?://", re.IGNORECASE)


@dataclass
class Email:
    sender: str
    subject: str
    body: str


@dataclass
class FilterResult:
    is_spam: bool
    reason: Optional[str] = None
    filter_name: Optional[str] = None


class SpamFilter(ABC):
    name = "filter"

    def __init__(self) -> None:
        self._next: Optional["SpamFilter"] = None

    def set_next(self, spam_filter: "SpamFilter") -> "SpamFilter":
        self._next = spam_filter
        return spam_filter

    def check(self, email: Email) -> FilterResult:
        reason = self.detect(email)
        if reason:
            logger.info("Spam detected", filter=self.name, subject=email.subject)
            return FilterResult(True, reason, self.name)
        if self._next is None:
            return FilterResult(False)
        return self._next.check(email)

    @abstractmethod
    def detect(self, email: Email) -> Optional[str]:
        """Return a reason if the message is spam."""


class KeywordFilter(SpamFilter):
    name = "keywords"

    def __init__(self, keywords: Iterable[str] = ("free money", "lottery winner", "viagra", "click here")):
        super().__init__()
        self.keywords = [k.lower() for k in keywords]

    def detect(self, email: Email) -> Optional[str]:
        content = f"{email.subject} {email.body}".lower()
        for keyword in self.keywords:
            if keyword in content:
                return f"contains '{keyword}'"
        return None


class BlacklistFilter(SpamFilter):
    name = "blacklist"

    def __init__(self, domains: Iterable[str] = ("spammer.com", "suspicious.net")):
        super().__init__()
        self.domains = {d.lower() for d in domains}

    def detect(self, email: Email) -> Optional[str]:
        domain = email.sender.rsplit("@", 1)[-1].lower()
        return f"blacklisted domain {domain}" if domain in self.domains else None


class CapsFilter(SpamFilter):
    name = "caps"
    MIN_LETTERS = 10
    MAX_RATIO = 0.7

    def detect(self, email: Email) -> Optional[str]:
        letters = [c for c in email.subject + email.body if c.isalpha()]
        if len(letters) < self.MIN_LETTERS:
            return None
        ratio = sum(1 for c in letters if c.isupper()) / len(letters)
        return f"{ratio:.0%} capital letters" if ratio > self.MAX_RATIO else None


class LinkFilter(SpamFilter):
    name = "links"
    MAX_LINKS = 3

    def detect(self, email: Email) -> Optional[str]:
        count = len(_LINK_RE.findall(email.body))
        return f"{count} links" if count > self.MAX_LINKS else None


class MLFilter(SpamFilter):
    name = "ml"
    THRESHOLD = 0.8

    def __init__(self, scorer: Optional[Callable[[Email], float]] = None):
        super().__init__()
        self.scorer = scorer or (lambda _email: get_random().random())

    def detect(self, email: Email) -> Optional[str]:
        score = self.scorer(email)
        return f"model score {score:.2f}" if score > self.THRESHOLD else None


def build_filter_chain(scorer: Optional[Callable[[Email], float]] = None) -> SpamFilter:
    filters: List[SpamFilter] = [KeywordFilter(), BlacklistFilter(), CapsFilter(), LinkFilter(), MLFilter(scorer)]
    for current, following in zip(filters, filters[1:]):
        current.set_next(following)
    return filters[0]


@demo(
    "chain-of-responsibility.spam-filter",
    pattern="Chain of Responsibility",
    category=Category.BEHAVIORAL,
    title="Layered email spam filtering",
)
def run_demo() -> None:
    chain = build_filter_chain(scorer=lambda email: 0.9 if "crypto" in email.body else 0.1)
    inbox = [
        Email("friend@example.com", "Lunch tomorrow?", "Want to grab lunch at noon?"),
        Email("promo@shop.com", "You are a LOTTERY WINNER", "Claim now"),
        Email("offers@spammer.com", "Hello", "Just saying hi"),
        Email("news@example.org", "BUY NOW LIMITED OFFER", "ACT FAST TODAY"),
        Email("links@example.net", "Resources", " ".join(f"http://x.io/{i}" for i in range(5))),
        Email("guru@example.io", "Investment tip", "This crypto coin will moon"),
    ]
    for email in inbox:
        result = chain.check(email)
        verdict = f"SPAM ({result.filter_name}: {result.reason})" if result.is_spam else "ham"
        print(f"{email.sender:<20} {email.subject:<26} {verdict}")


if __name__ == "__main__":
    run_module(run_demo)
