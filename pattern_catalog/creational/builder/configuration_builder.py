"""
Application configuration builder.

Environment presets give sensible defaults; individual ``with_*`` steps
override them; ``build()`` hands everything to pydantic for validation.
"""

from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, ValidationError

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)

Environment = Literal["development", "testing", "staging", "production"]


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    debug: bool = False


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///:memory:"
    pool_size: int = Field(default=5, ge=1, le=100)


class CacheConfig(BaseModel):
    ttl_seconds: int = Field(default=300, ge=0)


class AppConfig(BaseModel):
    environment: Environment = "development"
    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    features: Dict[str, bool] = Field(default_factory=dict)


_PRESETS: Dict[str, Dict[str, Dict[str, Any]]] = {
    "development": {
        "server": {"host": "127.0.0.1", "port": 8000, "debug": True},
        "database": {"url": "postgresql://localhost/app_dev", "pool_size": 2},
        "cache": {"ttl_seconds": 0},
    },
    "testing": {
        "server": {"host": "127.0.0.1", "port": 8001, "debug": True},
        "database": {"url": "sqlite:///:memory:", "pool_size": 1},
        "cache": {"ttl_seconds": 0},
    },
    "staging": {
        "server": {"host": "0.0.0.0", "port": 8080, "debug": False},
        "database": {"url": "postgresql://staging-db/app", "pool_size": 10},
        "cache": {"ttl_seconds": 300},
    },
    "production": {
        "server": {"host": "0.0.0.0", "port": 443, "debug": False},
        "database": {"url": "postgresql://prod-db/app", "pool_size": 20},
        "cache": {"ttl_seconds": 3600},
    },
}


class AppConfigBuilder:
    def __init__(self) -> None:
        self._data: Dict[str, Any] = {"server": {}, "database": {}, "cache": {}, "features": {}}

    def for_environment(self, env: str) -> "AppConfigBuilder":
        """Apply the preset for ``env``; later ``with_*`` calls still win."""
        preset = _PRESETS.get(env)
        if preset is None:
            raise ValidationException("environment", env, f"must be one of {', '.join(_PRESETS)}")
        self._data["environment"] = env
        for section, values in preset.items():
            self._data[section] = {**values, **self._data[section]}
        return self

    def with_server(self, host: str, port: int) -> "AppConfigBuilder":
        self._data["server"].update(host=host, port=port)
        return self

    def with_database(self, url: str, pool_size: int = 5) -> "AppConfigBuilder":
        self._data["database"].update(url=url, pool_size=pool_size)
        return self

    def with_cache(self, ttl: int) -> "AppConfigBuilder":
        self._data["cache"]["ttl_seconds"] = ttl
        return self

    def with_feature(self, name: str, enabled: bool = True) -> "AppConfigBuilder":
        self._data["features"][name] = enabled
        return self

    def build(self) -> AppConfig:
        """
        Validate the collected values.

        Raises:
            ValidationException: For the first invalid field
        """
        try:
            config = AppConfig.model_validate(self._data)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise ValidationException(field, error.get("input"), error["msg"]) from e
        logger.info("Configuration built", environment=config.environment, features=sorted(config.features))
        return config


@demo(
    "builder.configuration-builder",
    pattern="Builder",
    category=Category.CREATIONAL,
    title="Validated application configuration from presets",
)
def run_demo() -> None:
    dev = AppConfigBuilder().for_environment("development").with_feature("new_checkout").build()
    print(f"Development: {dev.model_dump()}")

    prod = (
        AppConfigBuilder()
        .with_database("postgresql://replica-1/app", pool_size=40)
        .for_environment("production")
        .with_cache(600)
        .with_feature("new_checkout", False)
        .build()
    )
    print(f"Production:  {prod.model_dump()}")

    try:
        AppConfigBuilder().with_server("localhost", 70000).build()
    except ValidationException as e:
        print(f"Rejected: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
