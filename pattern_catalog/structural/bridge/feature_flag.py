"""
Feature flag bridge.

Toggle strategies (simple on/off, percentage rollout) are the abstraction;
where flag definitions come from (local map, remote flag service) is the
implementation. Remote lookups go through httpx and are cached with a
cachetools TTL cache.
"""

import zlib
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from cachetools import TTLCache

from ...config import settings
from ...exceptions import ExternalServiceException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class FlagEvaluator(ABC):
    """Fetches the raw definition of a flag."""

    @abstractmethod
    def get_flag(self, flag: str) -> Optional[Dict[str, Any]]: ...


class ClientSideEvaluator(FlagEvaluator):
    def __init__(self, flags: Dict[str, Dict[str, Any]]):
        self.flags = flags

    def get_flag(self, flag: str) -> Optional[Dict[str, Any]]:
        return self.flags.get(flag)


class ServerSideEvaluator(FlagEvaluator):
    """Asks a flag service over HTTP and caches answers."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.BaseTransport] = None,
        ttl_seconds: Optional[int] = None,
    ):
        self.client = httpx.Client(base_url=base_url, transport=transport)
        self._cache: TTLCache = TTLCache(
            maxsize=256, ttl=ttl_seconds if ttl_seconds is not None else settings.CACHE_DEFAULT_TTL_SECONDS
        )
        self.remote_calls = 0

    def get_flag(self, flag: str) -> Optional[Dict[str, Any]]:
        if flag in self._cache:
            return self._cache[flag]
        self.remote_calls += 1
        try:
            response = self.client.get(f"/flags/{flag}")
        except httpx.HTTPError as e:
            raise ExternalServiceException("flag-service", str(e)) from e
        if response.status_code == 404:
            definition = None
        elif response.is_success:
            definition = response.json()
        else:
            raise ExternalServiceException("flag-service", f"HTTP {response.status_code}")
        self._cache[flag] = definition
        logger.debug("Flag fetched", flag=flag, found=definition is not None)
        return definition

    def close(self) -> None:
        self.client.close()


class FeatureToggle:
    """On/off toggle with optional user allow-list."""

    def __init__(self, evaluator: FlagEvaluator):
        self.evaluator = evaluator

    def is_enabled(self, flag: str, user: Optional[str] = None) -> bool:
        definition = self.evaluator.get_flag(flag)
        if not definition:
            return False
        if user and user in definition.get("users", []):
            return True
        return self._evaluate(flag, definition, user)

    def _evaluate(self, flag: str, definition: Dict[str, Any], user: Optional[str]) -> bool:
        return bool(definition.get("enabled", False))


def bucket_for(user_id: str, flag: str) -> int:
    """Stable bucket 0..99 for a user/flag pair."""
    return zlib.crc32(f"{user_id}{flag}".encode("utf-8")) % 100


class PercentageRollout(FeatureToggle):
    """Enables a flag for a stable percentage of users."""

    def _evaluate(self, flag: str, definition: Dict[str, Any], user: Optional[str]) -> bool:
        if not definition.get("enabled", False):
            return False
        percentage = definition.get("percentage", 100)
        if user is None:
            return percentage >= 100
        return bucket_for(user, flag) < percentage


DEMO_FLAGS: Dict[str, Dict[str, Any]] = {
    "dark_mode": {"enabled": True},
    "new_checkout": {"enabled": True, "percentage": 30, "users": ["qa-lead"]},
    "legacy_reports": {"enabled": False},
}


def flag_service_transport(flags: Dict[str, Dict[str, Any]]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        if name not in flags:
            return httpx.Response(404, json={"error": "unknown flag"})
        return httpx.Response(200, json=flags[name])

    return httpx.MockTransport(handler)


@demo(
    "bridge.feature-flag",
    pattern="Bridge",
    category=Category.STRUCTURAL,
    title="Toggle strategies over local and remote flag sources",
)
def run_demo() -> None:
    local = FeatureToggle(ClientSideEvaluator(DEMO_FLAGS))
    print(f"[local]  dark_mode={local.is_enabled('dark_mode')} legacy_reports={local.is_enabled('legacy_reports')}")

    remote = ServerSideEvaluator("https://flags.example.com", transport=flag_service_transport(DEMO_FLAGS))
    rollout = PercentageRollout(remote)
    users = [f"user-{i}" for i in range(20)] + ["qa-lead"]
    enabled = [u for u in users if rollout.is_enabled("new_checkout", u)]
    print(f"[remote] new_checkout enabled for {len(enabled)}/{len(users)} users: {enabled}")
    print(f"[remote] unknown flag -> {rollout.is_enabled('does_not_exist')}")
    print(f"[remote] HTTP calls made: {remote.remote_calls} (rest served from cache)")
    remote.close()


if __name__ == "__main__":
    run_module(run_demo)
