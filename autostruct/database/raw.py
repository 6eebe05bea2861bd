"""Raw catalog rows.

These records model the rows returned by the metadata queries one to one;
field names match the column aliases used in the SQL. They are turned into
descriptors by the TypeCatalog and the table assembly step.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RawType:
    """A pg_type row."""
    oid: int
    schema: str
    name: str
    type_type: str  # b=base, c=composite, d=domain, e=enum, p=pseudo, r=range, m=multirange
    category: str  # A=array, others per pg_type.typcategory
    element_oid: int = 0
    base_oid: int = 0
    base_typmod: int = -1
    not_null: bool = False
    relation_oid: int = 0
    relation_kind: Optional[str] = None
    range_subtype_oid: Optional[int] = None


@dataclass(frozen=True)
class RawEnumLabel:
    type_oid: int
    label: str
    sort_order: float


@dataclass(frozen=True)
class RawAttribute:
    """An attribute of a standalone composite type."""
    type_oid: int
    name: str
    ordinal: int
    attribute_type_oid: int
    typmod: int = -1
    ndims: int = 0
    not_null: bool = False


@dataclass(frozen=True)
class RawTable:
    oid: int
    schema: str
    name: str
    kind: str = "r"  # pg_class.relkind


@dataclass(frozen=True)
class RawColumn:
    table_oid: int
    name: str
    ordinal: int
    type_oid: int
    typmod: int = -1
    ndims: int = 0
    not_null: bool = False
    has_default: bool = False
    is_identity: bool = False
    is_generated: bool = False
    formatted_type: str = ""


@dataclass(frozen=True)
class RawKeyColumn:
    """A column taking part in a primary key (p) or unique (u) constraint."""
    table_oid: int
    constraint_name: str
    constraint_type: str
    column_name: str
    position: int
    column_count: int = 1


@dataclass(frozen=True)
class RawForeignKeyColumn:
    table_oid: int
    name: str
    referenced_schema: str
    referenced_table: str
    column_name: str
    referenced_column: str
    position: int
