"""Catalog data models for schema introspection.

Type references form a closed set of variants. Every value is a frozen
dataclass so descriptors can be hashed, compared and shared between tables
without copying.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .type_catalog import TypeCatalog


@dataclass(frozen=True, order=True)
class QualifiedName:
    """A schema-qualified catalog name."""
    schema: str
    name: str

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class ScalarType:
    """A built-in or extension base type, with its decoded modifiers."""
    kind: str
    precision: Optional[int] = None
    scale: Optional[int] = None
    length: Optional[int] = None


@dataclass(frozen=True)
class ArrayType:
    """An array of `element`, nested `dimension` times."""
    element: "TypeRef"
    dimension: int = 1

    def __post_init__(self):
        if self.dimension < 1:
            raise ValueError(f"array dimension must be at least 1, got {self.dimension}")


@dataclass(frozen=True)
class EnumType:
    """A user-defined enumeration; labels keep catalog sort order."""
    qualified_name: QualifiedName
    labels: Tuple[str, ...]


@dataclass(frozen=True)
class CompositeField:
    """One attribute of a composite type."""
    name: str
    type_ref: "TypeRef"
    not_null: bool = False


@dataclass(frozen=True)
class CompositeType:
    """A user-defined record type with named, ordered fields."""
    qualified_name: QualifiedName
    fields: Tuple[CompositeField, ...]


@dataclass(frozen=True)
class RangeType:
    """A bounded interval over an ordered subtype."""
    subtype: "TypeRef"
    name: str = ""


@dataclass(frozen=True)
class DomainType:
    """A constrained alias for another type."""
    qualified_name: QualifiedName
    underlying: "TypeRef"
    not_null: bool = False


@dataclass(frozen=True)
class OpaqueType:
    """Fallback for anything the catalog or mapper does not recognize."""
    raw_name: str
    reason: str = "unrecognized type"


TypeRef = Union[ScalarType, ArrayType, EnumType, CompositeType, RangeType, DomainType, OpaqueType]

TYPE_REF_VARIANTS = (ScalarType, ArrayType, EnumType, CompositeType, RangeType, DomainType, OpaqueType)


def is_not_null_domain(type_ref: TypeRef) -> bool:
    """Check whether a type is a domain (or domain chain) declared NOT NULL."""
    while isinstance(type_ref, DomainType):
        if type_ref.not_null:
            return True
        type_ref = type_ref.underlying
    return False


@dataclass(frozen=True)
class ColumnDescriptor:
    """Represents a table column."""
    name: str
    type_ref: TypeRef
    nullable: bool = True
    has_default: bool = False
    ordinal: int = 0
    is_primary_key: bool = False
    is_identity: bool = False
    is_generated: bool = False
    is_unique: bool = False
    formatted_type: str = ""


@dataclass(frozen=True)
class ForeignKeyDescriptor:
    """A foreign-key constraint. Metadata only."""
    name: str
    columns: Tuple[str, ...]
    referenced_table: QualifiedName
    referenced_columns: Tuple[str, ...]


@dataclass(frozen=True)
class TableDescriptor:
    """Represents a table (or view) with columns in ordinal order."""
    name: QualifiedName
    columns: Tuple[ColumnDescriptor, ...] = ()
    foreign_keys: Tuple[ForeignKeyDescriptor, ...] = ()
    primary_key: Tuple[str, ...] = ()
    kind: str = "table"

    def get_column(self, name: str) -> Optional[ColumnDescriptor]:
        """Find a column by name."""
        for column in self.columns:
            if column.name == name:
                return column
        return None

    def foreign_key_for(self, column_name: str) -> Optional[ForeignKeyDescriptor]:
        """Find the first foreign key that includes the given column."""
        for fk in self.foreign_keys:
            if column_name in fk.columns:
                return fk
        return None


@dataclass(frozen=True)
class CatalogSnapshot:
    """Everything captured from one consistent catalog read."""
    tables: Tuple[TableDescriptor, ...]
    types: "TypeCatalog"
    server_version: Optional[str] = field(default=None, compare=False)

    def get_table(self, name: str) -> Optional[TableDescriptor]:
        """Find a table by unqualified or schema-qualified name."""
        for table in self.tables:
            if table.name.name == name or str(table.name) == name:
                return table
        return None
