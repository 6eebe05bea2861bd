"""PostgreSQL catalog reader."""

import logging
import math
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..config import mask_password
from ..errors import ConnectionFailure, IntrospectionFailure
from .base import CatalogReader
from .raw import (
    RawAttribute,
    RawColumn,
    RawEnumLabel,
    RawForeignKeyColumn,
    RawKeyColumn,
    RawTable,
    RawType,
)

logger = logging.getLogger(__name__)

# attgenerated appeared in PostgreSQL 12
MINIMUM_SERVER_VERSION = 120000

TYPES_QUERY = """
SELECT
    t.oid::bigint AS oid,
    n.nspname AS schema,
    t.typname AS name,
    t.typtype::text AS type_type,
    t.typcategory::text AS category,
    t.typelem::bigint AS element_oid,
    t.typbasetype::bigint AS base_oid,
    t.typtypmod AS base_typmod,
    t.typnotnull AS not_null,
    t.typrelid::bigint AS relation_oid,
    c.relkind::text AS relation_kind,
    r.rngsubtype::bigint AS range_subtype_oid
FROM pg_catalog.pg_type t
JOIN pg_catalog.pg_namespace n ON n.oid = t.typnamespace
LEFT JOIN pg_catalog.pg_class c ON c.oid = t.typrelid
LEFT JOIN pg_catalog.pg_range r ON r.rngtypid = t.oid
ORDER BY t.oid
"""

ENUM_LABELS_QUERY = """
SELECT
    e.enumtypid::bigint AS type_oid,
    e.enumlabel AS label,
    e.enumsortorder::float8 AS sort_order
FROM pg_catalog.pg_enum e
ORDER BY e.enumtypid, e.enumsortorder
"""

COMPOSITE_ATTRIBUTES_QUERY = """
SELECT
    t.oid::bigint AS type_oid,
    a.attname AS name,
    a.attnum AS ordinal,
    a.atttypid::bigint AS attribute_type_oid,
    a.atttypmod AS typmod,
    a.attndims AS ndims,
    a.attnotnull AS not_null
FROM pg_catalog.pg_type t
JOIN pg_catalog.pg_class c ON c.oid = t.typrelid
JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid
WHERE t.typtype = 'c'
  AND c.relkind = 'c'
  AND a.attnum > 0
  AND NOT a.attisdropped
ORDER BY t.oid, a.attnum
"""

TABLES_QUERY = """
SELECT
    c.oid::bigint AS oid,
    n.nspname AS schema,
    c.relname AS name,
    c.relkind::text AS kind
FROM pg_catalog.pg_class c
JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
WHERE c.relkind::text = ANY(%(kinds)s)
  AND NOT c.relispartition
  AND n.nspname = ANY(%(schemas)s)
ORDER BY n.nspname, c.relname
"""

COLUMNS_QUERY = """
SELECT
    a.attrelid::bigint AS table_oid,
    a.attname AS name,
    a.attnum AS ordinal,
    a.atttypid::bigint AS type_oid,
    a.atttypmod AS typmod,
    a.attndims AS ndims,
    a.attnotnull AS not_null,
    a.atthasdef AS has_default,
    a.attidentity <> '' AS is_identity,
    a.attgenerated <> '' AS is_generated,
    pg_catalog.format_type(a.atttypid, a.atttypmod) AS formatted_type
FROM pg_catalog.pg_attribute a
WHERE a.attrelid = ANY(%(table_oids)s::oid[])
  AND a.attnum > 0
  AND NOT a.attisdropped
ORDER BY a.attrelid, a.attnum
"""

KEY_COLUMNS_QUERY = """
SELECT
    con.conrelid::bigint AS table_oid,
    con.conname AS constraint_name,
    con.contype::text AS constraint_type,
    a.attname AS column_name,
    k.position AS position,
    array_length(con.conkey, 1) AS column_count
FROM pg_catalog.pg_constraint con
CROSS JOIN LATERAL unnest(con.conkey) WITH ORDINALITY AS k(attnum, position)
JOIN pg_catalog.pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
WHERE con.conrelid = ANY(%(table_oids)s::oid[])
  AND con.contype IN ('p', 'u')
ORDER BY con.conrelid, con.conname, k.position
"""

FOREIGN_KEYS_QUERY = """
SELECT
    con.conrelid::bigint AS table_oid,
    con.conname AS name,
    rn.nspname AS referenced_schema,
    rc.relname AS referenced_table,
    a.attname AS column_name,
    ra.attname AS referenced_column,
    k.position AS position
FROM pg_catalog.pg_constraint con
CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(attnum, ref_attnum, position)
JOIN pg_catalog.pg_class rc ON rc.oid = con.confrelid
JOIN pg_catalog.pg_namespace rn ON rn.oid = rc.relnamespace
JOIN pg_catalog.pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
JOIN pg_catalog.pg_attribute ra ON ra.attrelid = con.confrelid AND ra.attnum = k.ref_attnum
WHERE con.conrelid = ANY(%(table_oids)s::oid[])
  AND con.contype = 'f'
ORDER BY con.conrelid, con.conname, k.position
"""


def _import_psycopg2():
    try:
        import psycopg2
        import psycopg2.extras
    except ImportError:
        raise ImportError(
            "psycopg2 is required for PostgreSQL connections. "
            "Install it with: pip install psycopg2-binary"
        )
    return psycopg2


class PostgresCatalogReader(CatalogReader):
    """Reads the catalog of a PostgreSQL database."""

    def __init__(
        self,
        database_url: str,
        schemas: Optional[Sequence[str]] = None,
        include_views: bool = False,
        timeout: float = 3.0,
    ):
        """Initialize PostgreSQL catalog reader.

        Args:
            database_url: postgres:// or postgresql:// connection string
            schemas: Schemas to read tables from (default: public)
            include_views: Also read views and materialized views
            timeout: Connection timeout in seconds
        """
        super().__init__(schemas=schemas, include_views=include_views)
        self.database_url = database_url
        self.timeout = timeout
        self._connection = None

    @property
    def connect_timeout(self) -> int:
        """libpq only accepts whole seconds."""
        return max(1, math.ceil(self.timeout))

    def connect(self):
        """Connect to PostgreSQL."""
        if self._connection is not None:
            return self._connection

        psycopg2 = _import_psycopg2()
        masked = mask_password(self.database_url)
        logger.info("Connecting to %s (timeout %ss)", masked, self.connect_timeout)

        try:
            self._connection = psycopg2.connect(self.database_url, connect_timeout=self.connect_timeout)
        except psycopg2.Error as e:
            raise ConnectionFailure(
                f"Could not connect to {masked}: {str(e).strip()}",
                details={"database_url": masked, "timeout": self.connect_timeout},
            ) from e

        server_version = getattr(self._connection, "server_version", None)
        if server_version is not None and server_version < MINIMUM_SERVER_VERSION:
            self.close()
            raise ConnectionFailure(
                f"PostgreSQL 12 or newer is required (server reports {server_version})",
                details={"server_version": server_version},
            )
        return self._connection

    def close(self):
        """Close the PostgreSQL connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    @contextmanager
    def snapshot(self) -> Iterator[None]:
        """Run the enclosed queries in one REPEATABLE READ, read-only transaction."""
        connection = self.connect()
        connection.set_session(isolation_level="REPEATABLE READ", readonly=True)
        try:
            yield
        finally:
            connection.rollback()

    def _fetch(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Execute a metadata query and return rows as dictionaries.

        Raises:
            IntrospectionFailure: If the query fails
        """
        psycopg2 = _import_psycopg2()
        connection = self.connect()
        try:
            with connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cursor:
                cursor.execute(sql, params)
                return [dict(row) for row in cursor.fetchall()]
        except psycopg2.Error as e:
            raise IntrospectionFailure(f"Catalog query failed: {str(e).strip()}", query=sql) from e

    def get_types(self) -> List[RawType]:
        return [RawType(**row) for row in self._fetch(TYPES_QUERY)]

    def get_enum_labels(self) -> List[RawEnumLabel]:
        return [RawEnumLabel(**row) for row in self._fetch(ENUM_LABELS_QUERY)]

    def get_composite_attributes(self) -> List[RawAttribute]:
        return [RawAttribute(**row) for row in self._fetch(COMPOSITE_ATTRIBUTES_QUERY)]

    def get_tables(self) -> List[RawTable]:
        kinds = ["r", "p"]
        if self.include_views:
            kinds += ["v", "m"]
        rows = self._fetch(TABLES_QUERY, {"kinds": kinds, "schemas": list(self.schemas)})
        return [RawTable(**row) for row in rows]

    def get_columns(self, table_oids: List[int]) -> List[RawColumn]:
        rows = self._fetch(COLUMNS_QUERY, {"table_oids": list(table_oids)})
        return [RawColumn(**row) for row in rows]

    def get_key_columns(self, table_oids: List[int]) -> List[RawKeyColumn]:
        rows = self._fetch(KEY_COLUMNS_QUERY, {"table_oids": list(table_oids)})
        return [RawKeyColumn(**row) for row in rows]

    def get_foreign_keys(self, table_oids: List[int]) -> List[RawForeignKeyColumn]:
        rows = self._fetch(FOREIGN_KEYS_QUERY, {"table_oids": list(table_oids)})
        return [RawForeignKeyColumn(**row) for row in rows]

    def get_server_version(self) -> Optional[str]:
        rows = self._fetch("SHOW server_version")
        return rows[0]["server_version"] if rows else None
