"""Mapping of catalog type references to Rust types."""

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Union

from ..database.models import (
    ArrayType,
    CompositeType,
    DomainType,
    EnumType,
    OpaqueType,
    QualifiedName,
    RangeType,
    ScalarType,
    TypeRef,
    is_not_null_domain,
)
from ..database.type_catalog import TypeCatalog
from .naming import NameResolver
from .types import RustType, external, option, primitive, vec

PG_TYPES = "sqlx::postgres::types"

# Canonical pg_type names and their Rust counterparts
SCALAR_TYPES: Dict[str, RustType] = {
    # Integers
    "int2": primitive("i16"),
    "int4": primitive("i32"),
    "int8": primitive("i64"),
    "char": primitive("i8"),
    # Floating point
    "float4": primitive("f32"),
    "float8": primitive("f64"),
    # Fixed point
    "numeric": external("rust_decimal::Decimal"),
    "money": primitive("i64"),
    # Boolean
    "bool": primitive("bool"),
    # Text
    "text": primitive("String"),
    "varchar": primitive("String"),
    "bpchar": primitive("String"),
    "name": primitive("String"),
    "citext": primitive("String"),
    "xml": primitive("String"),
    "tsvector": primitive("String"),
    "tsquery": primitive("String"),
    "txid_snapshot": primitive("String"),
    "pg_snapshot": primitive("String"),
    # Binary
    "bytea": vec(primitive("u8")),
    # Date and time
    "date": external("chrono::NaiveDate"),
    "time": external("chrono::NaiveTime"),
    "timestamp": external("chrono::NaiveDateTime"),
    "timestamptz": external("chrono::DateTime", external("chrono::Utc")),
    "timetz": external(f"{PG_TYPES}::PgTimeTz"),
    "interval": external(f"{PG_TYPES}::PgInterval"),
    # Identifiers
    "uuid": external("uuid::Uuid"),
    "oid": primitive("u32"),
    "xid": primitive("u32"),
    "cid": primitive("u32"),
    "xid8": primitive("u64"),
    "pg_lsn": primitive("u64"),
    # JSON
    "json": external("serde_json::Value"),
    "jsonb": external("serde_json::Value"),
    # Network addresses
    "inet": external("ipnetwork::IpNetwork"),
    "cidr": external("ipnetwork::IpNetwork"),
    "macaddr": external("mac_address::MacAddress"),
    "macaddr8": primitive("[u8; 8]"),
    # Bit strings
    "bit": external("bit_vec::BitVec"),
    "varbit": external("bit_vec::BitVec"),
    # Geometry
    "point": external(f"{PG_TYPES}::PgPoint"),
    "line": external(f"{PG_TYPES}::PgLine"),
    "lseg": external(f"{PG_TYPES}::PgLSeg"),
    "box": external(f"{PG_TYPES}::PgBox"),
    "path": external(f"{PG_TYPES}::PgPath"),
    "polygon": external(f"{PG_TYPES}::PgPolygon"),
    "circle": external(f"{PG_TYPES}::PgCircle"),
    # Extensions
    "ltree": external(f"{PG_TYPES}::PgLTree"),
    "lquery": external(f"{PG_TYPES}::PgLQuery"),
    "hstore": external(f"{PG_TYPES}::PgHstore"),
    "void": primitive("()"),
}

for _reg_type in (
    "regclass", "regcollation", "regconfig", "regdictionary", "regnamespace",
    "regoper", "regoperator", "regproc", "regprocedure", "regrole", "regtype",
):
    SCALAR_TYPES[_reg_type] = primitive("u32")

# SQL spellings accepted alongside pg_type names
SCALAR_ALIASES: Dict[str, str] = {
    "smallint": "int2",
    "smallserial": "int2",
    "serial2": "int2",
    "integer": "int4",
    "int": "int4",
    "serial": "int4",
    "serial4": "int4",
    "bigint": "int8",
    "bigserial": "int8",
    "serial8": "int8",
    "real": "float4",
    "double precision": "float8",
    "decimal": "numeric",
    "boolean": "bool",
    "character varying": "varchar",
    "character": "bpchar",
    "bit varying": "varbit",
    "timestamp without time zone": "timestamp",
    "timestamp with time zone": "timestamptz",
    "time without time zone": "time",
    "time with time zone": "timetz",
}


def canonical_scalar_kind(kind: str) -> str:
    """Normalise a scalar type name to its pg_type spelling."""
    normalized = " ".join(kind.strip().split())
    # Lowercase char is the pg_type name of the single-byte type; SQL CHAR is bpchar
    if normalized in ("char", "\"char\""):
        return "char"
    normalized = normalized.lower()
    if normalized == "char":
        return "bpchar"
    return SCALAR_ALIASES.get(normalized, normalized)


class DeclarationKind(str, Enum):
    """Kinds of generated auxiliary declarations."""
    ENUM = "enum"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class AuxiliaryDeclaration:
    """A generated enum or record struct required by some field.

    Attributes:
        qualified_name: Catalog name of the declared type
        name: Rust identifier
        kind: enum or composite
        source: The catalog definition
        fields: Composite attributes as (attribute name, mapped type)
        dependencies: Declarations the composite's fields refer to
        unsupported: Composite attributes that fell back to String
    """
    qualified_name: QualifiedName
    name: str
    kind: DeclarationKind
    source: Union[EnumType, CompositeType]
    fields: Tuple[Tuple[str, RustType], ...] = ()
    dependencies: FrozenSet[QualifiedName] = frozenset()
    unsupported: Tuple[Tuple[str, OpaqueType], ...] = ()


@dataclass(frozen=True)
class MappedType:
    """Result of mapping one type reference."""
    rust_type: RustType
    declarations: FrozenSet[AuxiliaryDeclaration] = frozenset()
    unsupported: Tuple[OpaqueType, ...] = ()


class TypeMapper:
    """Maps TypeRef values to Rust types.

    Mapping is pure: the same reference always yields the same result, and
    the catalog is only read.
    """

    def __init__(self, catalog: TypeCatalog, names: Optional[NameResolver] = None):
        self.catalog = catalog
        self.names = names or NameResolver()
        self._handlers: Dict[type, Callable[..., MappedType]] = {
            ScalarType: self._map_scalar,
            ArrayType: self._map_array,
            EnumType: self._map_enum,
            CompositeType: self._map_composite,
            RangeType: self._map_range,
            DomainType: self._map_domain,
            OpaqueType: self._map_opaque,
        }

    def map(self, type_ref: TypeRef) -> MappedType:
        """Map a type reference.

        Raises:
            TypeError: If `type_ref` is not a TypeRef variant
        """
        handler = self._handlers.get(type(type_ref))
        if handler is None:
            raise TypeError(f"Cannot map {type(type_ref).__name__}: not a catalog type reference")
        return handler(type_ref)

    def map_nullable(self, type_ref: TypeRef, nullable: bool) -> MappedType:
        """Map a type reference and wrap it in Option when nullable."""
        mapped = self.map(type_ref)
        if not nullable:
            return mapped
        return dataclasses.replace(mapped, rust_type=option(mapped.rust_type))

    def _map_scalar(self, ref: ScalarType) -> MappedType:
        base = SCALAR_TYPES.get(canonical_scalar_kind(ref.kind))
        if base is None:
            return self._map_opaque(OpaqueType(raw_name=ref.kind, reason="no Rust mapping for this type"))
        rust_type = dataclasses.replace(base, precision=ref.precision, scale=ref.scale, length=ref.length)
        return MappedType(rust_type=rust_type)

    def _map_array(self, ref: ArrayType) -> MappedType:
        element = self.map(ref.element)
        return dataclasses.replace(element, rust_type=vec(element.rust_type, ref.dimension))

    def _map_range(self, ref: RangeType) -> MappedType:
        subtype = self.map(ref.subtype)
        return dataclasses.replace(subtype, rust_type=external(f"{PG_TYPES}::PgRange", subtype.rust_type))

    def _map_domain(self, ref: DomainType) -> MappedType:
        return self.map(ref.underlying)

    def _map_opaque(self, ref: OpaqueType) -> MappedType:
        return MappedType(rust_type=primitive("String"), unsupported=(ref,))

    def _map_enum(self, ref: EnumType) -> MappedType:
        registered = self.catalog.get(ref.qualified_name)
        if not isinstance(registered, EnumType):
            return self._map_opaque(OpaqueType(str(ref.qualified_name), reason="enum not found in catalog"))

        declaration = AuxiliaryDeclaration(
            qualified_name=registered.qualified_name,
            name=self.names.type_name(registered.qualified_name.name),
            kind=DeclarationKind.ENUM,
            source=registered,
        )
        return MappedType(
            rust_type=RustType(name=declaration.name, declaration=declaration.qualified_name),
            declarations=frozenset({declaration}),
        )

    def _map_composite(self, ref: CompositeType) -> MappedType:
        registered = self.catalog.get(ref.qualified_name)
        if not isinstance(registered, CompositeType):
            return self._map_opaque(OpaqueType(str(ref.qualified_name), reason="composite type not found in catalog"))

        fields = []
        nested = set()
        unsupported = []
        for field in registered.fields:
            nullable = not (field.not_null or is_not_null_domain(field.type_ref))
            mapped = self.map_nullable(field.type_ref, nullable)
            fields.append((field.name, mapped.rust_type))
            nested |= mapped.declarations
            unsupported.extend((field.name, opaque) for opaque in mapped.unsupported)

        declaration = AuxiliaryDeclaration(
            qualified_name=registered.qualified_name,
            name=self.names.type_name(registered.qualified_name.name),
            kind=DeclarationKind.COMPOSITE,
            source=registered,
            fields=tuple(fields),
            dependencies=frozenset(d.qualified_name for d in nested),
            unsupported=tuple(unsupported),
        )
        return MappedType(
            rust_type=RustType(name=declaration.name, declaration=declaration.qualified_name),
            declarations=frozenset(nested | {declaration}),
        )
