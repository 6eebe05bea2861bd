"""End-to-end generation against a live PostgreSQL server.

Set AUTOSTRUCT_TEST_DATABASE_URL to a database the tests may create and drop
a scratch schema in; the tests are skipped otherwise.
"""

import os
from pathlib import Path

import pytest

from autostruct.runner import GenerateOptions, run

DATABASE_URL = os.environ.get("AUTOSTRUCT_TEST_DATABASE_URL")
SCHEMA = "autostruct_it"
FIXTURE_SQL = Path(__file__).parent / "fixtures" / "postgres_test.sql"

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not DATABASE_URL, reason="AUTOSTRUCT_TEST_DATABASE_URL not set"),
]

EXPECTED_MODULES = [
    "table_array_type",
    "table_basic_type",
    "table_binary_type",
    "table_bit_string_type",
    "table_boolean_type",
    "table_character_type",
    "table_composite_type",
    "table_date_time_type",
    "table_enum_type",
    "table_fdw",
    "table_foreign_key",
    "table_geometric_type",
    "table_json_type",
    "table_network_address_type",
    "table_oid_type",
    "table_range_type",
    "table_special_type",
    "table_text_search_type",
    "table_uuid_type",
    "table_xml_type",
]


@pytest.fixture(scope="module")
def test_schema():
    """Load the fixture tables into a scratch schema and drop it afterwards."""
    psycopg2 = pytest.importorskip("psycopg2")
    connection = psycopg2.connect(DATABASE_URL)
    connection.autocommit = True
    try:
        with connection.cursor() as cursor:
            cursor.execute(f"DROP SCHEMA IF EXISTS {SCHEMA} CASCADE")
            cursor.execute(f"CREATE SCHEMA {SCHEMA}")
            cursor.execute(f"SET search_path TO {SCHEMA}, public")
            cursor.execute(FIXTURE_SQL.read_text())
        yield SCHEMA
    finally:
        with connection.cursor() as cursor:
            cursor.execute(f"DROP SCHEMA IF EXISTS {SCHEMA} CASCADE")
        connection.close()


@pytest.fixture(scope="module")
def report(test_schema, tmp_path_factory):
    """Generate once with singular names and the sqlx profile."""
    output_dir = tmp_path_factory.mktemp("generated") / "autostructs"
    return run(GenerateOptions(
        database_url=DATABASE_URL,
        output_dir=str(output_dir),
        singular=True,
        framework="sqlx",
        schemas=[test_schema],
    ))


class TestGenerateFromPostgres:
    """Tests for a full run over the fixture schema."""

    def test_one_module_per_table(self, report):
        """Test twenty table modules plus mod.rs are written."""
        names = sorted(p.name for p in report.output_dir.iterdir() if p.suffix == ".rs")

        assert names == sorted([f"{m}.rs" for m in EXPECTED_MODULES] + ["mod.rs"])
        assert report.table_count == 20

    def test_no_unsupported_types(self, report):
        """Test every fixture column type has a mapping."""
        assert [w.message for w in report.warnings] == []

    def test_basic_types(self, report):
        """Test integer, numeric and nullability mapping."""
        text = (report.output_dir / "table_basic_type.rs").read_text()

        assert "pub struct TableBasicType {" in text
        assert "pub id: i32," in text
        assert "pub integer_column: i32," in text
        assert "pub smallint_column: Option<i16>," in text
        assert "pub bigint_column: i64," in text
        assert "pub numeric_column: Option<Decimal>," in text
        assert "/// SQL type: `numeric(10,2)`" in text
        assert "pub double_precision_column: f64," in text

    def test_enum_declared_once(self, report):
        """Test the mood enum appears in exactly one module with its labels in order."""
        files = {p.name: p.read_text() for p in report.output_dir.glob("*.rs")}

        owners = [name for name, text in files.items() if "pub enum Mood {" in text]
        assert owners == ["table_enum_type.rs"]
        text = files["table_enum_type.rs"]
        assert text.index("Sad,") < text.index("Ok,") < text.index("Happy,")
        assert "pub mood_column: Mood," in text

    def test_composite_fields(self, report):
        """Test the address composite keeps its three fields in order."""
        text = (report.output_dir / "table_composite_type.rs").read_text()

        assert (
            "pub struct Address {\n"
            "    pub street: Option<String>,\n"
            "    pub city: Option<String>,\n"
            "    pub zip_code: Option<String>,\n"
            "}"
        ) in text
        assert "pub address_column: Address," in text

    def test_foreign_keys_stay_scalar(self, report):
        """Test foreign-key columns map to the column's own type."""
        text = (report.output_dir / "table_foreign_key.rs").read_text()

        assert "pub fk_basic: Option<i32>," in text
        assert "pub fk_uuid: Option<Uuid>," in text
        assert f"/// References `{SCHEMA}.table_basic_types.id`" in text

    def test_rerun_is_identical(self, report):
        """Test a second run reproduces the same bytes."""
        before = {p.name: p.read_bytes() for p in report.output_dir.iterdir()}

        run(GenerateOptions(
            database_url=DATABASE_URL,
            output_dir=str(report.output_dir),
            singular=True,
            framework="sqlx",
            schemas=[SCHEMA],
        ))

        after = {p.name: p.read_bytes() for p in report.output_dir.iterdir()}
        assert after == before
