"""Application configuration via environment variables."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = {"env_prefix": ""}

    # Store
    store_backend: Literal["memory", "redis", "mongodb"] = Field(
        default="memory", description="Document store backend: 'memory', 'redis' or 'mongodb'"
    )
    database_url: str | None = Field(
        default=None, description="Connection string for the redis or mongodb backend"
    )
    test_database_url: str | None = Field(
        default=None, description="Connection string used by the integration suite"
    )
    database_name: str = Field(
        default="blog-posts",
        description="Redis key namespace, or MongoDB database when the URL names none",
    )

    # Server
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=8080, description="Server bind port")
    log_level: str = Field(default="info", description="Log level")

    @model_validator(mode="after")
    def _check_database_url(self) -> "Settings":
        if self.store_backend != "memory" and not (self.database_url or self.test_database_url):
            raise ValueError(
                f"DATABASE_URL is required when STORE_BACKEND={self.store_backend}"
            )
        return self

    def for_tests(self) -> "Settings":
        """Return a copy pointed at TEST_DATABASE_URL, when one is configured."""
        if not self.test_database_url:
            return self
        return self.model_copy(update={"database_url": self.test_database_url})
