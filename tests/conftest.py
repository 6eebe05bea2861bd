"""Shared pytest fixtures for autostruct tests."""

import pytest

from tests.fixtures.catalog import CatalogBuilder, col, numeric_typmod, varchar_typmod


@pytest.fixture
def builder():
    """An empty catalog with only the built-in types."""
    return CatalogBuilder()


@pytest.fixture
def sample_builder():
    """A small database exercising enums, composites, domains and foreign keys."""
    b = CatalogBuilder()
    b.add_enum("mood", ["sad", "ok", "happy"])
    b.add_composite("address", [("street", "text"), ("city", "text"), ("zip_code", "varchar")])
    b.add_domain("email", "text", not_null=True)

    b.add_table("table_basic_types", [
        col("id", "int4", has_default=True),
        col("integer_column", "int4", not_null=True),
        col("smallint_column", "int2"),
        col("bigint_column", "int8", not_null=True),
        col("numeric_column", "numeric", typmod=numeric_typmod(10, 2), formatted_type="numeric(10,2)"),
        col("real_column", "float4"),
        col("double_column", "float8", not_null=True),
        col("money_column", "money"),
    ], primary_key=["id"])

    b.add_table("table_enum_type", [
        col("id", "int4", has_default=True),
        col("mood_column", "mood", not_null=True),
    ], primary_key=["id"])

    b.add_table("table_composite_type", [
        col("id", "int4", has_default=True),
        col("address_column", "address"),
    ], primary_key=["id"])

    b.add_table("users", [
        col("id", "int8", is_identity=True),
        col("email", "email"),
        col("display_name", "varchar", typmod=varchar_typmod(100), formatted_type="character varying(100)"),
        col("current_mood", "mood"),
        col("tags", "text[]"),
    ], primary_key=["id"], unique=[["email"]])

    b.add_table("orders", [
        col("id", "int8", is_identity=True),
        col("user_id", "int8", not_null=True),
        col("total", "numeric", not_null=True, typmod=numeric_typmod(12, 2), formatted_type="numeric(12,2)"),
        col("shipping", "address", not_null=True),
    ], primary_key=["id"])
    b.add_foreign_key("orders", ["user_id"], "users", ["id"])
    return b


@pytest.fixture
def sample_snapshot(sample_builder):
    """The sample database as a captured snapshot."""
    return sample_builder.snapshot()
