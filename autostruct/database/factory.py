"""Database variant inference and reader construction."""

from enum import Enum
from typing import Optional, Sequence
from urllib.parse import urlsplit

from ..config import mask_password
from ..errors import ConfigurationError
from .base import CatalogReader


class DatabaseKind(str, Enum):
    """Supported database variants."""
    POSTGRES = "postgres"


SCHEME_KINDS = {
    "postgres": DatabaseKind.POSTGRES,
    "postgresql": DatabaseKind.POSTGRES,
}


def infer_database_kind(database_url: Optional[str]) -> DatabaseKind:
    """Infer the database variant from the connection string scheme.

    Raises:
        ConfigurationError: If the URL is missing or the scheme is unknown
    """
    if not database_url:
        raise ConfigurationError(
            "No database URL given. Use --database-url or set DATABASE_URL"
        )
    scheme = urlsplit(database_url).scheme.lower()
    kind = SCHEME_KINDS.get(scheme)
    if kind is None:
        raise ConfigurationError(
            f"Unsupported database URL scheme '{scheme or database_url}'. "
            f"Expected one of: {', '.join(sorted(SCHEME_KINDS))}",
            details={"database_url": mask_password(database_url)},
        )
    return kind


def create_reader(
    database_url: str,
    schemas: Optional[Sequence[str]] = None,
    include_views: bool = False,
    timeout: float = 3.0,
) -> CatalogReader:
    """Create the catalog reader matching the connection string."""
    kind = infer_database_kind(database_url)
    if kind == DatabaseKind.POSTGRES:
        from .postgres import PostgresCatalogReader
        return PostgresCatalogReader(
            database_url,
            schemas=schemas,
            include_views=include_views,
            timeout=timeout,
        )
    raise ConfigurationError(f"No catalog reader for database kind '{kind.value}'")
