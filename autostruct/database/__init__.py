"""Catalog introspection module for autostruct.

This module reads the system catalog into raw rows, resolves user-defined
types through the TypeCatalog and assembles table descriptors.
"""

from .models import (
    QualifiedName,
    ScalarType,
    ArrayType,
    EnumType,
    CompositeField,
    CompositeType,
    RangeType,
    DomainType,
    OpaqueType,
    TypeRef,
    ColumnDescriptor,
    ForeignKeyDescriptor,
    TableDescriptor,
    CatalogSnapshot,
)
from .type_catalog import TypeCatalog, decode_typmod
from .base import CatalogReader, assemble_tables
from .postgres import PostgresCatalogReader
from .factory import DatabaseKind, infer_database_kind, create_reader

__all__ = [
    # Data models
    "QualifiedName",
    "ScalarType",
    "ArrayType",
    "EnumType",
    "CompositeField",
    "CompositeType",
    "RangeType",
    "DomainType",
    "OpaqueType",
    "TypeRef",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "TableDescriptor",
    "CatalogSnapshot",
    # Type registry
    "TypeCatalog",
    "decode_typmod",
    # Readers
    "CatalogReader",
    "assemble_tables",
    "PostgresCatalogReader",
    "DatabaseKind",
    "infer_database_kind",
    "create_reader",
]
