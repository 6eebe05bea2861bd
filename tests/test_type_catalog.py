"""Tests for the TypeCatalog registry and type-modifier decoding."""

import dataclasses

import pytest

from autostruct.database.models import (
    ArrayType,
    CompositeField,
    CompositeType,
    DomainType,
    EnumType,
    OpaqueType,
    QualifiedName,
    RangeType,
    ScalarType,
)
from autostruct.database.raw import RawAttribute
from autostruct.database.type_catalog import TypeCatalog, decode_typmod
from autostruct.errors import CatalogCycleError
from tests.fixtures.catalog import BUILTIN_TYPES, numeric_typmod, varchar_typmod


class TestDecodeTypmod:
    """Tests for decode_typmod."""

    def test_no_modifier(self):
        """Test that -1 means no modifier."""
        assert decode_typmod("numeric", -1) == (None, None, None)
        assert decode_typmod("varchar", -1) == (None, None, None)

    def test_numeric_precision_and_scale(self):
        """Test numeric(10,2)."""
        assert decode_typmod("numeric", numeric_typmod(10, 2)) == (10, 2, None)

    def test_numeric_negative_scale(self):
        """Test numeric(5,-2), allowed since PostgreSQL 15."""
        assert decode_typmod("numeric", numeric_typmod(5, -2)) == (5, -2, None)

    def test_varchar_length(self):
        """Test varchar(255) and char(3)."""
        assert decode_typmod("varchar", varchar_typmod(255)) == (None, None, 255)
        assert decode_typmod("bpchar", varchar_typmod(3)) == (None, None, 3)

    def test_bit_length(self):
        """Test bit(8) stores the length directly."""
        assert decode_typmod("bit", 8) == (None, None, 8)
        assert decode_typmod("varbit", 64) == (None, None, 64)

    def test_temporal_precision(self):
        """Test fractional-seconds precision of time types."""
        assert decode_typmod("timestamptz", 3) == (3, None, None)
        assert decode_typmod("time", 0) == (0, None, None)

    def test_interval_precision(self):
        """Test interval precision is the low 16 bits."""
        assert decode_typmod("interval", (0x7FFF << 16) | 6) == (6, None, None)
        assert decode_typmod("interval", (0x7FFF << 16) | 0xFFFF) == (None, None, None)

    def test_unparameterised_type(self):
        """Test that other types ignore the modifier."""
        assert decode_typmod("int4", 12) == (None, None, None)


class TestTypeCatalogBuild:
    """Tests for TypeCatalog.build."""

    def test_enum_labels_in_sort_order(self, builder):
        """Test enum labels follow enumsortorder, not insertion order."""
        oid = builder.add_enum("mood", ["sad", "ok", "happy"])
        builder.labels.reverse()

        catalog = builder.build_catalog()
        mood = catalog.lookup(QualifiedName("public", "mood"))

        assert isinstance(mood, EnumType)
        assert mood.labels == ("sad", "ok", "happy")
        assert catalog.resolve(oid) == mood

    def test_composite_fields_in_order(self, builder):
        """Test composite fields keep declaration order and types."""
        builder.add_composite("address", [("street", "text"), ("city", "text", True), ("zip_code", "varchar")])

        address = builder.build_catalog().lookup(QualifiedName("public", "address"))

        assert isinstance(address, CompositeType)
        assert [f.name for f in address.fields] == ["street", "city", "zip_code"]
        assert address.fields[0].type_ref == ScalarType("text")
        assert address.fields[1].not_null is True

    def test_nested_composite(self, builder):
        """Test a composite whose field is another composite and an enum array."""
        builder.add_enum("color", ["red", "green"])
        builder.add_composite("point2", [("x", "float8"), ("y", "float8")])
        builder.add_composite("shape", [("origin", "point2"), ("colors", "color[]")])

        catalog = builder.build_catalog()
        shape = catalog.lookup(QualifiedName("public", "shape"))

        assert shape.fields[0].type_ref == catalog.lookup(QualifiedName("public", "point2"))
        assert shape.fields[1].type_ref == ArrayType(catalog.lookup(QualifiedName("public", "color")), 1)

    def test_domain_resolution(self, builder):
        """Test domains keep their underlying type and NOT NULL flag."""
        builder.add_domain("positive_int", "int4", not_null=True)
        builder.add_domain("short_text", "varchar", typmod=varchar_typmod(20))

        catalog = builder.build_catalog()

        assert catalog.lookup(QualifiedName("public", "positive_int")) == DomainType(
            QualifiedName("public", "positive_int"), ScalarType("int4"), not_null=True
        )
        short_text = catalog.lookup(QualifiedName("public", "short_text"))
        assert short_text.underlying == ScalarType("varchar", length=20)

    def test_domain_over_array(self, builder):
        """Test a domain over an array stays a domain even though it shares the array category."""
        builder.add_type(
            "tag_list", "d", category="A", element_oid=BUILTIN_TYPES["text"],
            base_oid=builder.type_oid("text[]"), not_null=True,
        )

        catalog = builder.build_catalog()

        assert catalog.lookup(QualifiedName("public", "tag_list")) == DomainType(
            QualifiedName("public", "tag_list"), ArrayType(ScalarType("text"), 1), not_null=True
        )

    def test_domain_cycle_detected(self, builder):
        """Test that a self-referencing domain raises CatalogCycleError."""
        first = builder.add_type("first_domain", "d")
        second = builder.add_type("second_domain", "d", base_oid=first)
        builder.types[-2] = dataclasses.replace(builder.types[-2], base_oid=second)

        with pytest.raises(CatalogCycleError) as exc_info:
            builder.build_catalog()

        assert exc_info.value.cycle[0] == exc_info.value.cycle[-1]
        assert set(exc_info.value.cycle) == {"public.first_domain", "public.second_domain"}

    def test_composite_cycle_through_array(self, builder):
        """Test a composite containing an array of itself is a cycle."""
        oid = builder.add_composite("node", [("value", "int4")])
        array_oid = builder.type_oid("node[]")
        builder.attributes.append(RawAttribute(
            type_oid=oid, name="children", ordinal=2, attribute_type_oid=array_oid, ndims=1,
        ))

        with pytest.raises(CatalogCycleError) as exc_info:
            builder.build_catalog()

        assert "public.node" in exc_info.value.cycle

    def test_table_row_types_not_registered(self, builder):
        """Test composite row types of tables are left out of the registry."""
        oid = builder.add_composite("some_table", [("id", "int4")], relation_kind="r")

        catalog = builder.build_catalog()

        assert QualifiedName("public", "some_table") not in catalog
        resolved = catalog.resolve(oid)
        assert isinstance(resolved, OpaqueType)

    def test_unknown_base_oid_is_opaque(self, builder):
        """Test a domain over a missing type degrades to Opaque."""
        builder.add_type("broken", "d", base_oid=999999)

        broken = builder.build_catalog().lookup(QualifiedName("public", "broken"))

        assert isinstance(broken.underlying, OpaqueType)
        assert broken.underlying.reason == "type not found in catalog"

    def test_registry_is_read_only(self, builder):
        """Test entries cannot be added after construction."""
        builder.add_enum("mood", ["sad"])
        catalog = builder.build_catalog()

        with pytest.raises(TypeError):
            catalog._entries[QualifiedName("public", "other")] = EnumType(QualifiedName("public", "other"), ())

    def test_lookups(self, builder):
        """Test lookup helpers and sorted iteration."""
        builder.add_enum("zeta", ["a"])
        builder.add_enum("alpha", ["b"])
        builder.add_composite("middle", [("x", "int4")])
        builder.add_domain("dom", "text")
        catalog = builder.build_catalog()

        assert list(catalog) == sorted(catalog)
        assert len(catalog) == 4
        assert [e.qualified_name.name for e in catalog.enums()] == ["alpha", "zeta"]
        assert len(catalog.composites()) == 1
        assert len(catalog.domains()) == 1
        assert catalog.get(QualifiedName("public", "missing")) is None
        with pytest.raises(KeyError):
            catalog.lookup(QualifiedName("public", "missing"))


class TestTypeCatalogResolve:
    """Tests for TypeCatalog.resolve."""

    def test_scalar_with_modifier(self, builder):
        """Test base types resolve to ScalarType with decoded modifiers."""
        catalog = builder.build_catalog()

        assert catalog.resolve(BUILTIN_TYPES["numeric"], numeric_typmod(10, 2)) == ScalarType(
            "numeric", precision=10, scale=2
        )
        assert catalog.resolve(BUILTIN_TYPES["int4"]) == ScalarType("int4")

    def test_array_dimensions(self, builder):
        """Test array types use attndims, with at least one dimension."""
        catalog = builder.build_catalog()
        int4_array = builder.type_oid("int4[]")

        assert catalog.resolve(int4_array, ndims=0) == ArrayType(ScalarType("int4"), 1)
        assert catalog.resolve(int4_array, ndims=2) == ArrayType(ScalarType("int4"), 2)

    def test_array_element_keeps_modifier(self, builder):
        """Test varchar(10)[] keeps the element length."""
        varchar_array = builder.type_oid("varchar[]")
        catalog = builder.build_catalog()

        assert catalog.resolve(varchar_array, varchar_typmod(10), 1) == ArrayType(
            ScalarType("varchar", length=10), 1
        )

    def test_range(self, builder):
        """Test range types resolve with their subtype."""
        catalog = builder.build_catalog()

        assert catalog.resolve(builder.type_oid("int4range")) == RangeType(ScalarType("int4"), "int4range")

    def test_multirange_is_opaque(self, builder):
        """Test multirange types degrade to Opaque."""
        oid = builder.add_type("int4multirange", "m", schema="pg_catalog")
        catalog = builder.build_catalog()

        resolved = catalog.resolve(oid)
        assert isinstance(resolved, OpaqueType)
        assert resolved.raw_name == "int4multirange"

    def test_unknown_oid(self, builder):
        """Test an unknown oid resolves to Opaque."""
        resolved = builder.build_catalog().resolve(424242)

        assert resolved == OpaqueType("oid 424242", "type not found in catalog")

    def test_catalog_of_registers_nested_types(self):
        """Test TypeCatalog.of walks nested references."""
        mood = EnumType(QualifiedName("public", "mood"), ("sad",))
        wrapper = CompositeType(QualifiedName("public", "wrapper"), (CompositeField("m", ArrayType(mood)),))

        catalog = TypeCatalog.of(wrapper)

        assert catalog.lookup(mood.qualified_name) == mood
        assert catalog.lookup(wrapper.qualified_name) == wrapper
