"""
Configuration prototypes: derive environment configs from a base by copying.
"""

import copy
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List

from ...exceptions import ResourceNotFoundException, ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


@dataclass
class ServiceConfig:
    service: str
    environment: str
    replicas: int = 1
    log_level: str = "INFO"
    endpoints: Dict[str, str] = field(default_factory=dict)
    feature_flags: Dict[str, bool] = field(default_factory=dict)
    allowed_origins: List[str] = field(default_factory=list)

    def clone(self) -> "ServiceConfig":
        return copy.deepcopy(self)

    def derive(self, **changes: Any) -> "ServiceConfig":
        """Deep copy with ``changes`` applied; the original is untouched."""
        unknown = set(changes) - set(asdict(self))
        if unknown:
            raise ValidationException("changes", sorted(unknown), "unknown configuration keys")
        return replace(self.clone(), **copy.deepcopy(changes))

    def diff(self, other: "ServiceConfig") -> List[str]:
        """Names of the fields whose values differ from ``other``."""
        mine, theirs = asdict(self), asdict(other)
        return [key for key in mine if mine[key] != theirs[key]]


BASE_CONFIGS: Dict[str, ServiceConfig] = {
    "development": ServiceConfig(
        service="orders",
        environment="development",
        log_level="DEBUG",
        endpoints={"db": "postgresql://localhost/orders", "cache": "redis://localhost:6379"},
        feature_flags={"new_checkout": True},
        allowed_origins=["http://localhost:3000"],
    ),
    "production": ServiceConfig(
        service="orders",
        environment="production",
        replicas=4,
        log_level="WARNING",
        endpoints={"db": "postgresql://prod-db/orders", "cache": "redis://prod-cache:6379"},
        feature_flags={"new_checkout": False},
        allowed_origins=["https://shop.example.com"],
    ),
}


def base_config(environment: str) -> ServiceConfig:
    """Fresh copy of the base prototype for ``environment``."""
    if environment not in BASE_CONFIGS:
        raise ResourceNotFoundException("base configuration", environment)
    return BASE_CONFIGS[environment].clone()


@demo(
    "prototype.configuration-prototype",
    pattern="Prototype",
    category=Category.CREATIONAL,
    title="Deriving environment configs from base prototypes",
)
def run_demo() -> None:
    production = base_config("production")
    canary = production.derive(replicas=1, feature_flags={"new_checkout": True})
    staging = production.derive(environment="staging", replicas=2, log_level="INFO")
    staging.endpoints["db"] = "postgresql://staging-db/orders"

    print(f"production endpoints untouched: {production.endpoints}")
    print(f"canary differs in:  {canary.diff(production)}")
    print(f"staging differs in: {staging.diff(production)}")

    try:
        production.derive(region="eu")
    except ValidationException as e:
        print(f"Rejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
