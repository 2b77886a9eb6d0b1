"""
Configuration manager singleton.

Implemented with ``__new__`` so that every ``ConfigurationManager()`` call
returns the same object. Values are validated through pydantic models.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from ...exceptions import ValidationException
from ...logging_config import get_logger
from ...registry import Category, demo, run_module

logger = get_logger(__name__)


class DatabaseSettings(BaseModel):
    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    name: str = "myapp"


class FeatureSettings(BaseModel):
    enable_logging: bool = True
    enable_cache: bool = False
    max_retries: int = Field(default=3, ge=0)


class AppConfig(BaseModel):
    """Full application configuration."""

    api_url: str = "http://localhost:3000"
    api_key: str = ""
    environment: Literal["development", "testing", "staging", "production"] = "development"
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    features: FeatureSettings = Field(default_factory=FeatureSettings)


class ConfigurationManager:
    """Holds the one AppConfig for the process."""

    _instance: Optional["ConfigurationManager"] = None

    def __new__(cls) -> "ConfigurationManager":
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._config = AppConfig()
            instance._initialized = False
            cls._instance = instance
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        cls._instance = None

    def load_config(self, overrides: Dict[str, Any]) -> None:
        """
        Merge ``overrides`` into the current configuration.

        Nested sections (``database``, ``features``) are merged key by key.

        Raises:
            ValidationException: If the merged configuration is invalid
        """
        if self._initialized:
            logger.warning("Configuration already initialized, applying changes anyway")

        merged = self._config.model_dump()
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(key), dict):
                merged[key] = {**merged[key], **value}
            else:
                merged[key] = value

        try:
            self._config = AppConfig.model_validate(merged)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise ValidationException(field, error.get("input"), error["msg"]) from e

        self._initialized = True
        logger.info("Configuration loaded", environment=self._config.environment)

    def get(self, key: str) -> Any:
        return getattr(self._config, key)

    def get_config(self) -> AppConfig:
        """Return a deep copy so callers cannot mutate shared state."""
        return self._config.model_copy(deep=True)

    def is_production(self) -> bool:
        return self._config.environment == "production"

    def is_development(self) -> bool:
        return self._config.environment == "development"

    def is_feature_enabled(self, name: str) -> bool:
        return bool(getattr(self._config.features, name, False))

    def get_database_url(self) -> str:
        db = self._config.database
        return f"postgresql://{db.host}:{db.port}/{db.name}"


@demo(
    "singleton.configuration-manager",
    pattern="Singleton",
    category=Category.CREATIONAL,
    title="Validated process-wide configuration",
)
def run_demo() -> None:
    config = ConfigurationManager()
    config.load_config(
        {
            "api_key": "secret-key-123",
            "environment": "production",
            "database": {"host": "db.internal"},
            "features": {"enable_cache": True, "max_retries": 5},
        }
    )

    print(f"API URL: {config.get('api_url')}")
    print(f"Database URL: {config.get_database_url()}")
    print(f"Is production? {config.is_production()}")
    print(f"Cache enabled? {config.is_feature_enabled('enable_cache')}")

    another = ConfigurationManager()
    print(f"Second ConfigurationManager() is the same object: {another is config}")

    try:
        another.load_config({"database": {"port": 70000}})
    except ValidationException as e:
        print(f"Rejected invalid config: {e.message}")


if __name__ == "__main__":
    run_module(run_demo)
