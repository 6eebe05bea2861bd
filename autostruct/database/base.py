"""Abstract base class for catalog introspection."""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import AbstractContextManager
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    CatalogSnapshot,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    QualifiedName,
    TableDescriptor,
    is_not_null_domain,
)
from .raw import (
    RawAttribute,
    RawColumn,
    RawEnumLabel,
    RawForeignKeyColumn,
    RawKeyColumn,
    RawTable,
    RawType,
)
from .type_catalog import TypeCatalog

logger = logging.getLogger(__name__)

RELATION_KINDS = {
    "r": "table",
    "p": "partitioned table",
    "v": "view",
    "m": "materialized view",
}


class CatalogReader(ABC):
    """Abstract base class for catalog readers.

    Subclasses implement connection handling, the snapshot scope and one
    method per metadata query. `read_catalog` runs every query inside a
    single snapshot and assembles the descriptors.
    """

    # Never read as target schemas
    EXCLUDED_SCHEMAS: set = {"pg_catalog", "information_schema", "pg_toast"}

    def __init__(self, schemas: Optional[Sequence[str]] = None, include_views: bool = False):
        requested = list(schemas) if schemas else ["public"]
        self.schemas = [s for s in requested if s not in self.EXCLUDED_SCHEMAS]
        skipped = sorted(set(requested) - set(self.schemas))
        if skipped:
            logger.warning("Ignoring system schemas: %s", ", ".join(skipped))
        self.include_views = include_views

    @abstractmethod
    def connect(self):
        """Establish connection to the database.

        Raises:
            ConnectionFailure: If the server cannot be reached in time
        """
        pass

    @abstractmethod
    def close(self):
        """Close the database connection."""
        pass

    @abstractmethod
    def snapshot(self) -> AbstractContextManager:
        """Open one consistent, read-only scope for all metadata queries."""
        pass

    @abstractmethod
    def get_types(self) -> List[RawType]:
        """Get every type known to the catalog."""
        pass

    @abstractmethod
    def get_enum_labels(self) -> List[RawEnumLabel]:
        """Get enum labels with their sort order."""
        pass

    @abstractmethod
    def get_composite_attributes(self) -> List[RawAttribute]:
        """Get the attributes of standalone composite types."""
        pass

    @abstractmethod
    def get_tables(self) -> List[RawTable]:
        """Get the tables (and optionally views) of the configured schemas."""
        pass

    @abstractmethod
    def get_columns(self, table_oids: List[int]) -> List[RawColumn]:
        """Get the columns of the given tables.

        Args:
            table_oids: Relation oids returned by `get_tables`

        Returns:
            List of RawColumn rows
        """
        pass

    @abstractmethod
    def get_key_columns(self, table_oids: List[int]) -> List[RawKeyColumn]:
        """Get the primary-key and unique constraint columns of the given tables."""
        pass

    @abstractmethod
    def get_foreign_keys(self, table_oids: List[int]) -> List[RawForeignKeyColumn]:
        """Get the foreign-key column pairs of the given tables."""
        pass

    def get_server_version(self) -> Optional[str]:
        """Get the server version string, if the reader knows it."""
        return None

    def read_catalog(self) -> CatalogSnapshot:
        """Capture the catalog and return a fully resolved snapshot.

        Every metadata query runs inside one `snapshot()` scope. Any failure
        propagates; a partial snapshot is never returned.

        Returns:
            CatalogSnapshot with tables sorted by qualified name

        Raises:
            ConnectionFailure: If the connection cannot be established
            IntrospectionFailure: If a metadata query fails
            CatalogCycleError: If a user-defined type references itself
        """
        self.connect()

        with self.snapshot():
            types = self.get_types()
            enum_labels = self.get_enum_labels()
            attributes = self.get_composite_attributes()
            tables = self.get_tables()
            table_oids = [t.oid for t in tables]
            if table_oids:
                columns = self.get_columns(table_oids)
                key_columns = self.get_key_columns(table_oids)
                foreign_keys = self.get_foreign_keys(table_oids)
            else:
                columns, key_columns, foreign_keys = [], [], []
            server_version = self.get_server_version()

        logger.debug(
            "Captured %d types, %d tables, %d columns",
            len(types), len(tables), len(columns),
        )

        catalog = TypeCatalog.build(types, enum_labels, attributes)
        descriptors = assemble_tables(catalog, tables, columns, key_columns, foreign_keys)
        return CatalogSnapshot(tables=descriptors, types=catalog, server_version=server_version)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def assemble_tables(
    catalog: TypeCatalog,
    tables: Iterable[RawTable],
    columns: Iterable[RawColumn],
    key_columns: Iterable[RawKeyColumn] = (),
    foreign_keys: Iterable[RawForeignKeyColumn] = (),
) -> Tuple[TableDescriptor, ...]:
    """Turn raw table rows into descriptors with resolved column types.

    Args:
        catalog: The frozen type catalog used to resolve column types
        tables: Table rows
        columns: Column rows of those tables
        key_columns: Primary-key and unique constraint columns
        foreign_keys: Foreign-key column pairs

    Returns:
        Tuple of TableDescriptor sorted by qualified name
    """
    columns_by_table: Dict[int, List[RawColumn]] = defaultdict(list)
    for column in columns:
        columns_by_table[column.table_oid].append(column)

    primary_keys: Dict[int, List[RawKeyColumn]] = defaultdict(list)
    unique_columns: Dict[int, set] = defaultdict(set)
    for key in key_columns:
        if key.constraint_type == "p":
            primary_keys[key.table_oid].append(key)
        elif key.constraint_type == "u" and key.column_count == 1:
            # Only single-column unique constraints make a column unique by itself
            unique_columns[key.table_oid].add(key.column_name)

    fk_rows: Dict[Tuple[int, str], List[RawForeignKeyColumn]] = defaultdict(list)
    for fk in foreign_keys:
        fk_rows[(fk.table_oid, fk.name)].append(fk)

    fks_by_table: Dict[int, List[ForeignKeyDescriptor]] = defaultdict(list)
    for (table_oid, name), rows in sorted(fk_rows.items()):
        rows = sorted(rows, key=lambda r: r.position)
        fks_by_table[table_oid].append(ForeignKeyDescriptor(
            name=name,
            columns=tuple(r.column_name for r in rows),
            referenced_table=QualifiedName(rows[0].referenced_schema, rows[0].referenced_table),
            referenced_columns=tuple(r.referenced_column for r in rows),
        ))

    descriptors = []
    for table in tables:
        pk_columns = tuple(
            k.column_name for k in sorted(primary_keys.get(table.oid, []), key=lambda k: k.position)
        )
        column_descriptors = []
        for column in sorted(columns_by_table.get(table.oid, []), key=lambda c: c.ordinal):
            type_ref = catalog.resolve(column.type_oid, column.typmod, column.ndims)
            column_descriptors.append(ColumnDescriptor(
                name=column.name,
                type_ref=type_ref,
                nullable=not (column.not_null or is_not_null_domain(type_ref)),
                has_default=column.has_default,
                ordinal=column.ordinal,
                is_primary_key=column.name in pk_columns,
                is_identity=column.is_identity,
                is_generated=column.is_generated,
                is_unique=column.name in unique_columns.get(table.oid, set()),
                formatted_type=column.formatted_type,
            ))

        descriptors.append(TableDescriptor(
            name=QualifiedName(table.schema, table.name),
            columns=tuple(column_descriptors),
            foreign_keys=tuple(fks_by_table.get(table.oid, [])),
            primary_key=pk_columns,
            kind=RELATION_KINDS.get(table.kind, "table"),
        ))

    return tuple(sorted(descriptors, key=lambda d: d.name))
