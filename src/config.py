"""Configuration loading and validation.

This module is responsible for:

- Loading `.env` into the process environment (without overriding existing vars).
- Converting environment variables into strongly-typed Pydantic models.
- Validating values and providing actionable error messages.
"""

import os
import re
from typing import TypeVar

import dotenv
from pydantic import BaseModel, Field, field_validator

from logsink.stores import TARGET_TABLE, StoreTarget

_T = TypeVar("_T", int, float)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _get_env_str(name: str, default: str) -> str:
    """Read a string env var with a default (blank counts as unset)."""
    value = os.getenv(name, "").strip()
    return value or default


def _get_env_bool(name: str, default: bool) -> bool:
    """Read a boolean env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    normalized = raw.strip().lower()
    if normalized in {"true", "1", "yes", "y", "on"}:
        return True
    if normalized in {"false", "0", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean (true/false). Got: {raw!r}")


def _get_env_number(name: str, default: _T, cast: type[_T]) -> _T:
    """Read an int/float env var with a default."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a {cast.__name__}. Got: {raw!r}") from exc


class SinkConfig(BaseModel):
    """Configuration for the log store connection and batching."""

    database: str = Field(default="logs.duckdb", description="Database path, ':memory:' or URI")
    table: str = Field(default=TARGET_TABLE, description="Target log table")
    read_only: bool = Field(default=False, description="Open the database read-only")
    create_table: bool = Field(default=True, description="Create the log table if missing")
    motherduck_token: str | None = Field(default=None, description="Credential for 'md:' databases")
    batch_size: int = Field(default=5, description="Records per transactional batch")

    @field_validator("batch_size")
    def validate_batch_size(cls, v: int) -> int:
        """Batch size must be a positive integer."""
        if v < 1:
            raise ValueError(f"LOGSINK_BATCH_SIZE must be >= 1. Got: {v}")
        return v

    @field_validator("table")
    def validate_table(cls, v: str) -> str:
        """Table name is interpolated into SQL, so it must be a plain identifier."""
        if not _IDENTIFIER.fullmatch(v):
            raise ValueError(f"LOGSINK_TABLE must be a plain SQL identifier (letters, digits, underscore). Got: {v!r}")
        return v

    @field_validator("motherduck_token")
    def validate_motherduck_token(cls, v: str | None) -> str | None:
        """Reject the placeholder shipped in example env files."""
        if v is not None and v.startswith("your_") and v.endswith("_here"):
            raise ValueError("LOGSINK_MOTHERDUCK_TOKEN still holds a placeholder. Set it in your .env file or unset it.")
        return v

    def store_target(self) -> StoreTarget:
        """Build the store target; credentials travel as engine settings."""
        settings: dict[str, str] = {}
        if self.motherduck_token:
            settings["motherduck_token"] = self.motherduck_token
        return StoreTarget(
            database=self.database,
            read_only=self.read_only,
            settings=settings,
            table=self.table,
            create_table=self.create_table,
        )


class DemoConfig(BaseModel):
    """Knobs for the demo host process."""

    entry_count: int = Field(default=10, ge=0, description="Number of log entries to emit")
    interval_s: float = Field(default=1.0, ge=0.0, description="Pause between entries (seconds)")


class Config(BaseModel):
    """Top-level application configuration."""

    sink: SinkConfig = Field(..., description="Log sink configuration")
    demo: DemoConfig = Field(default_factory=DemoConfig, description="Demo driver configuration")


def load_config() -> Config:
    """Load application configuration from environment variables.

    Notes:
    - Calls `dotenv.load_dotenv()` so local `.env` values are visible to the process.
    - Raises `ValueError` with actionable messages when values cannot be parsed
      or fail validation.
    """
    # Load variables from `.env` into the process environment (without overriding
    # already-set env vars).
    dotenv.load_dotenv()

    sink = SinkConfig(
        database=_get_env_str("LOGSINK_DATABASE", "logs.duckdb"),
        table=_get_env_str("LOGSINK_TABLE", TARGET_TABLE),
        read_only=_get_env_bool("LOGSINK_READ_ONLY", False),
        create_table=_get_env_bool("LOGSINK_CREATE_TABLE", True),
        motherduck_token=os.getenv("LOGSINK_MOTHERDUCK_TOKEN") or None,
        batch_size=_get_env_number("LOGSINK_BATCH_SIZE", 5, int),
    )
    demo = DemoConfig(
        entry_count=_get_env_number("DEMO_ENTRY_COUNT", 10, int),
        interval_s=_get_env_number("DEMO_INTERVAL_S", 1.0, float),
    )
    return Config(sink=sink, demo=demo)
