from __future__ import annotations

import re
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Keyspace and table names end up in statement text, so they must be plain identifiers.
_IDENTIFIER = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,47}$")


class Settings(BaseSettings):
    # Store
    store_contact_points: str = Field("127.0.0.1", alias="STORE_CONTACT_POINTS")
    store_port: int = Field(9042, alias="STORE_PORT")
    store_keyspace: str = Field("my_keyspace", alias="STORE_KEYSPACE")
    store_table: str = Field("users", alias="STORE_TABLE")
    store_request_timeout: float = Field(10.0, gt=0, alias="STORE_REQUEST_TIMEOUT")
    store_fetch_size: int = Field(500, gt=0, alias="STORE_FETCH_SIZE")

    # HTTP
    http_host: str = Field("127.0.0.1", alias="HTTP_HOST")
    http_port: int = Field(8080, alias="HTTP_PORT")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("store_keyspace", "store_table")
    @classmethod
    def _check_identifier(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"{value!r} is not a valid CQL identifier")
        return value

    @property
    def contact_points(self) -> List[str]:
        # e.g. "scylla1,scylla2,scylla3"
        return [host.strip() for host in self.store_contact_points.split(",") if host.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings, parsed from the environment once per process."""
    return Settings()


__all__ = ["Settings", "get_settings"]
