"""Configuration management for autostruct."""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from rich.logging import RichHandler

from .errors import ConfigurationError

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def _find_env_file() -> Optional[str]:
    """Find .env file in multiple locations.

    Search order:
    1. Current working directory
    2. ~/.autostruct/.env
    3. Package directory (where this file is located)
    """
    # Current directory
    if os.path.exists(".env"):
        return ".env"

    # User config directory
    user_env = Path.home() / ".autostruct" / ".env"
    if user_env.exists():
        return str(user_env)

    # Package directory
    package_dir = Path(__file__).parent.parent
    package_env = package_dir / ".env"
    if package_env.exists():
        return str(package_env)

    return None


def parse_duration(value: str) -> float:
    """Parse a duration such as '3s', '500ms', '1m' or '2h' into seconds.

    A bare number is read as seconds.

    Raises:
        ConfigurationError: If the value is malformed or not positive
    """
    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ConfigurationError(
            f"Invalid duration '{value}'. Use a number with an optional unit (ms, s, m, h), e.g. 3s",
            details={"value": str(value)},
        )
    seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2) or "s"]
    if seconds <= 0:
        raise ConfigurationError(f"Duration must be positive, got '{value}'", details={"value": str(value)})
    return seconds


def mask_password(url: Optional[str]) -> str:
    """Return the connection string with its password replaced by ***."""
    if not url:
        return ""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{parts.username or ''}:***@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


def configure_logging(verbose: bool = False):
    """Route log records through rich: WARNING by default, DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database connection
    database_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("database_url", "AUTOSTRUCT_DATABASE_URL", "DATABASE_URL"),
        description="PostgreSQL connection string (postgres:// or postgresql://)"
    )
    timeout: str = Field(
        default="3s",
        description="Connection timeout, e.g. 3s, 500ms, 1m"
    )
    schemas: List[str] = Field(
        default=["public"],
        description="Schemas to introspect"
    )
    include_views: bool = Field(
        default=False,
        description="Also generate structs for views and materialized views"
    )

    # Generation
    output_dir: str = Field(
        default="./output",
        description="Directory the generated modules are written to"
    )
    singular: bool = Field(
        default=False,
        description="Singularise table names when naming structs"
    )
    framework: str = Field(
        default="none",
        description="Framework profile: none or sqlx"
    )
    exclude_tables: List[str] = Field(
        default=[],
        description="Tables to skip, as name or schema.name"
    )

    class Config:
        env_prefix = "AUTOSTRUCT_"
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()
