"""Registry of user-defined catalog types.

The registry is built in one pass over the raw pg_type rows. Enumerations,
standalone composite types and domains are resolved into fully expanded
type references; nested references (a composite field typed as another
composite, a domain over an array of enums, ...) are resolved recursively
with cycle detection. Once built, the registry is read-only.
"""

import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from ..errors import CatalogCycleError
from .models import (
    ArrayType,
    CompositeField,
    CompositeType,
    DomainType,
    EnumType,
    OpaqueType,
    QualifiedName,
    RangeType,
    ScalarType,
    TypeRef,
)
from .raw import RawAttribute, RawEnumLabel, RawType

logger = logging.getLogger(__name__)

# pg_type.typtype values for user-definable types kept in the registry
USER_DEFINED_KINDS = {"e", "c", "d"}

VARHDRSZ = 4
LENGTH_TYPES = {"varchar", "bpchar"}
BIT_TYPES = {"bit", "varbit"}
TEMPORAL_PRECISION_TYPES = {"time", "timetz", "timestamp", "timestamptz"}


def decode_typmod(kind: str, typmod: Optional[int]) -> Tuple[Optional[int], Optional[int], Optional[int]]:
    """Decode a PostgreSQL type modifier.

    Args:
        kind: pg_type name of the scalar type
        typmod: atttypmod / typtypmod value (-1 when absent)

    Returns:
        Tuple of (precision, scale, length), each None when not applicable
    """
    if typmod is None or typmod < 0:
        return None, None, None

    if kind == "numeric":
        if typmod < VARHDRSZ:
            return None, None, None
        value = typmod - VARHDRSZ
        precision = (value >> 16) & 0xFFFF
        # Scale is an 11-bit signed value since PostgreSQL 15
        scale = ((value & 0x7FF) ^ 1024) - 1024
        return precision, scale, None

    if kind in LENGTH_TYPES:
        if typmod < VARHDRSZ:
            return None, None, None
        return None, None, typmod - VARHDRSZ

    if kind in BIT_TYPES:
        return None, None, typmod

    if kind in TEMPORAL_PRECISION_TYPES:
        return typmod, None, None

    if kind == "interval":
        precision = typmod & 0xFFFF
        return (None if precision == 0xFFFF else precision), None, None

    return None, None, None


def _scalar_from(raw: RawType, typmod: int) -> ScalarType:
    precision, scale, length = decode_typmod(raw.name, typmod)
    return ScalarType(kind=raw.name, precision=precision, scale=scale, length=length)


class _Resolver:
    """Resolution state for a single catalog build."""

    def __init__(
        self,
        types: Mapping[int, RawType],
        labels: Mapping[int, Tuple[str, ...]],
        attributes: Mapping[int, Tuple[RawAttribute, ...]],
    ):
        self._types = types
        self._labels = labels
        self._attributes = attributes
        self._resolved: Dict[int, TypeRef] = {}
        self._stack: List[Tuple[int, str]] = []

    def resolve(self, oid: int, typmod: int = -1, ndims: int = 0) -> TypeRef:
        """Resolve a type oid (with modifier and array dimensions) to a TypeRef."""
        raw = self._types.get(oid)
        if raw is None:
            logger.debug("Type oid %s is not present in the catalog", oid)
            return OpaqueType(raw_name=f"oid {oid}", reason="type not found in catalog")

        # Domains over arrays share the array category and typelem; only base rows are arrays
        if raw.type_type == "b" and raw.category == "A" and raw.element_oid:
            element = self.resolve(raw.element_oid, typmod)
            return ArrayType(element=element, dimension=max(ndims, 1))

        if raw.type_type in USER_DEFINED_KINDS:
            return self.resolve_user_type(raw)

        if raw.type_type == "r":
            if raw.range_subtype_oid is None:
                return OpaqueType(raw_name=raw.name, reason="range subtype not found in catalog")
            return RangeType(subtype=self.resolve(raw.range_subtype_oid), name=raw.name)

        if raw.type_type == "m":
            return OpaqueType(raw_name=raw.name, reason="multirange types are not supported")

        return _scalar_from(raw, typmod)

    def resolve_user_type(self, raw: RawType) -> TypeRef:
        if raw.oid in self._resolved:
            return self._resolved[raw.oid]

        qualified_name = QualifiedName(raw.schema, raw.name)
        for index, (oid, _) in enumerate(self._stack):
            if oid == raw.oid:
                cycle = [name for _, name in self._stack[index:]] + [str(qualified_name)]
                raise CatalogCycleError(cycle)

        self._stack.append((raw.oid, str(qualified_name)))
        try:
            if raw.type_type == "e":
                result = EnumType(qualified_name, self._labels.get(raw.oid, ()))
            elif raw.type_type == "c":
                result = self._composite(raw, qualified_name)
            else:
                result = DomainType(
                    qualified_name=qualified_name,
                    underlying=self.resolve(raw.base_oid, raw.base_typmod),
                    not_null=raw.not_null,
                )
        finally:
            self._stack.pop()

        self._resolved[raw.oid] = result
        return result

    def _composite(self, raw: RawType, qualified_name: QualifiedName) -> TypeRef:
        if raw.relation_kind not in (None, "c"):
            return OpaqueType(
                raw_name=str(qualified_name),
                reason="row types of tables and views are not supported",
            )
        fields = tuple(
            CompositeField(
                name=attribute.name,
                type_ref=self.resolve(attribute.attribute_type_oid, attribute.typmod, attribute.ndims),
                not_null=attribute.not_null,
            )
            for attribute in self._attributes.get(raw.oid, ())
        )
        return CompositeType(qualified_name, fields)


def _is_registered(raw: RawType) -> bool:
    if raw.type_type not in USER_DEFINED_KINDS:
        return False
    # Every table has an implicit composite row type; only standalone ones are registered
    return raw.type_type != "c" or raw.relation_kind in (None, "c")


class TypeCatalog:
    """Immutable registry of enum, composite and domain definitions.

    Entries are keyed by qualified name. Use `TypeCatalog.build` to construct
    a registry from raw catalog rows, or `TypeCatalog.of` to register already
    resolved type references.
    """

    def __init__(self, entries: Mapping[QualifiedName, TypeRef], resolver: Optional[_Resolver] = None):
        self._entries = MappingProxyType(dict(sorted(entries.items())))
        self._resolver = resolver

    @classmethod
    def build(
        cls,
        types: Iterable[RawType],
        enum_labels: Iterable[RawEnumLabel] = (),
        composite_attributes: Iterable[RawAttribute] = (),
    ) -> "TypeCatalog":
        """Build the registry from raw catalog rows.

        Args:
            types: pg_type rows
            enum_labels: pg_enum rows
            composite_attributes: attributes of standalone composite types

        Returns:
            A frozen TypeCatalog

        Raises:
            CatalogCycleError: If a domain or composite references itself
        """
        types_by_oid = {raw.oid: raw for raw in types}

        grouped_labels: Dict[int, List[RawEnumLabel]] = defaultdict(list)
        for label in enum_labels:
            grouped_labels[label.type_oid].append(label)
        labels = {
            oid: tuple(l.label for l in sorted(rows, key=lambda l: l.sort_order))
            for oid, rows in grouped_labels.items()
        }

        grouped_attributes: Dict[int, List[RawAttribute]] = defaultdict(list)
        for attribute in composite_attributes:
            grouped_attributes[attribute.type_oid].append(attribute)
        attributes = {
            oid: tuple(sorted(rows, key=lambda a: a.ordinal))
            for oid, rows in grouped_attributes.items()
        }

        resolver = _Resolver(types_by_oid, labels, attributes)
        entries: Dict[QualifiedName, TypeRef] = {}
        for raw in sorted(types_by_oid.values(), key=lambda t: (t.schema, t.name)):
            if _is_registered(raw):
                entries[QualifiedName(raw.schema, raw.name)] = resolver.resolve_user_type(raw)

        logger.debug("Built type catalog with %d user-defined types", len(entries))
        return cls(entries, resolver)

    @classmethod
    def of(cls, *type_refs: TypeRef) -> "TypeCatalog":
        """Register already resolved type references, including nested ones."""
        entries: Dict[QualifiedName, TypeRef] = {}
        pending = list(type_refs)
        while pending:
            type_ref = pending.pop()
            if isinstance(type_ref, (EnumType, CompositeType, DomainType)):
                entries[type_ref.qualified_name] = type_ref
            if isinstance(type_ref, CompositeType):
                pending.extend(f.type_ref for f in type_ref.fields)
            elif isinstance(type_ref, DomainType):
                pending.append(type_ref.underlying)
            elif isinstance(type_ref, ArrayType):
                pending.append(type_ref.element)
            elif isinstance(type_ref, RangeType):
                pending.append(type_ref.subtype)
        return cls(entries)

    def resolve(self, type_oid: int, typmod: int = -1, ndims: int = 0) -> TypeRef:
        """Resolve a column's raw type against the catalog rows this registry was built from."""
        if self._resolver is None:
            return OpaqueType(raw_name=f"oid {type_oid}", reason="type not found in catalog")
        return self._resolver.resolve(type_oid, typmod, ndims)

    def lookup(self, name: QualifiedName) -> TypeRef:
        """Get a registered type. Raises KeyError when absent."""
        return self._entries[name]

    def get(self, name: QualifiedName, default: Optional[TypeRef] = None) -> Optional[TypeRef]:
        return self._entries.get(name, default)

    def enums(self) -> Tuple[EnumType, ...]:
        return tuple(t for t in self._entries.values() if isinstance(t, EnumType))

    def composites(self) -> Tuple[CompositeType, ...]:
        return tuple(t for t in self._entries.values() if isinstance(t, CompositeType))

    def domains(self) -> Tuple[DomainType, ...]:
        return tuple(t for t in self._entries.values() if isinstance(t, DomainType))

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[QualifiedName]:
        return iter(self._entries)
