"""Tests for Rust type expressions and framework profiles."""

import pytest

from autostruct.database.models import QualifiedName
from autostruct.errors import ConfigurationError
from autostruct.rust.profiles import Framework, PlainProfile, SqlxProfile, get_profile, rust_string
from autostruct.rust.types import external, group_imports, option, primitive, vec


class TestRustType:
    """Tests for RustType helpers."""

    def test_option_never_nests(self):
        """Test wrapping an Option again returns it unchanged."""
        wrapped = option(primitive("i32"))

        assert option(wrapped) is wrapped
        assert option(wrapped).render() == "Option<i32>"

    def test_vec_of_option(self):
        """Test Vec<Option<T>> is a valid element type."""
        assert vec(option(primitive("String")), 2).render() == "Vec<Vec<Option<String>>>"

    def test_external_imports(self):
        """Test external types import their paths through generics."""
        rust_type = option(vec(external("uuid::Uuid")))

        assert rust_type.render() == "Option<Vec<Uuid>>"
        assert rust_type.imports() == frozenset({"uuid::Uuid"})

    def test_group_imports(self):
        """Test imports are grouped by module and sorted."""
        assert group_imports(["uuid::Uuid", "chrono::Utc", "chrono::DateTime"]) == [
            "use chrono::{DateTime, Utc};",
            "use uuid::Uuid;",
        ]
        assert group_imports([]) == []


class TestProfiles:
    """Tests for framework profiles."""

    def test_lookup(self):
        """Test lookup by enum member or string."""
        assert isinstance(get_profile("none"), PlainProfile)
        assert isinstance(get_profile(Framework.SQLX), SqlxProfile)

    def test_unknown(self):
        """Test an unknown framework lists the choices."""
        with pytest.raises(ConfigurationError) as exc_info:
            get_profile("diesel")

        assert "none, sqlx" in exc_info.value.message

    def test_plain_profile_adds_nothing(self):
        """Test the plain profile only uses standard derives."""
        profile = get_profile("none")

        assert profile.struct_derives() == ["Debug", "Clone"]
        assert profile.type_attributes(QualifiedName("public", "mood")) == []
        assert profile.field_attributes("createdAt", "created_at") == []

    def test_sqlx_field_rename(self):
        """Test renames only where the identifier differs from the column."""
        profile = get_profile("sqlx")

        assert profile.field_attributes("createdAt", "created_at") == ['#[sqlx(rename = "createdAt")]']
        assert profile.field_attributes("type", "r#type") == []
        assert profile.field_attributes("self", "self_") == ['#[sqlx(rename = "self")]']

    def test_rust_string_escaping(self):
        """Test labels with quotes and backslashes render as valid literals."""
        assert rust_string('say "hi"\\') == '"say \\"hi\\"\\\\"'
        assert rust_string("a\nb") == '"a\\nb"'
