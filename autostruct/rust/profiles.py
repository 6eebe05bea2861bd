"""Framework profiles.

A profile decides which derives and attributes are added to generated code.
Profiles are stateless strategy objects looked up by `Framework`.
"""

from abc import ABC
from enum import Enum
from typing import Dict, List, Union

from ..database.models import QualifiedName
from ..errors import ConfigurationError
from .naming import bare_identifier


class Framework(str, Enum):
    """Supported data-access frameworks."""
    NONE = "none"
    SQLX = "sqlx"


def rust_string(value: str) -> str:
    """Render a Rust string literal."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class FrameworkProfile(ABC):
    """Base profile: plain Rust types with standard derives."""

    framework: Framework

    STRUCT_DERIVES = ["Debug", "Clone"]
    COMPOSITE_DERIVES = ["Debug", "Clone"]
    ENUM_DERIVES = ["Debug", "Clone", "Copy", "PartialEq", "Eq", "Hash"]

    def struct_derives(self) -> List[str]:
        return list(self.STRUCT_DERIVES)

    def composite_derives(self) -> List[str]:
        return list(self.COMPOSITE_DERIVES)

    def enum_derives(self) -> List[str]:
        return list(self.ENUM_DERIVES)

    def type_attributes(self, qualified_name: QualifiedName) -> List[str]:
        """Attributes placed on a generated enum or composite."""
        return []

    def variant_attributes(self, label: str, identifier: str) -> List[str]:
        """Attributes placed on one enum variant."""
        return []

    def field_attributes(self, column: str, identifier: str) -> List[str]:
        """Attributes placed on one table struct field."""
        return []


class PlainProfile(FrameworkProfile):
    """No framework integration."""

    framework = Framework.NONE


class SqlxProfile(FrameworkProfile):
    """Integration with sqlx: FromRow on tables, Type on enums and composites."""

    framework = Framework.SQLX

    def struct_derives(self) -> List[str]:
        return super().struct_derives() + ["sqlx::FromRow"]

    def composite_derives(self) -> List[str]:
        return super().composite_derives() + ["sqlx::Type"]

    def enum_derives(self) -> List[str]:
        return super().enum_derives() + ["sqlx::Type"]

    def type_attributes(self, qualified_name: QualifiedName) -> List[str]:
        if qualified_name.schema == "public":
            type_name = qualified_name.name
        else:
            type_name = str(qualified_name)
        return [f"#[sqlx(type_name = {rust_string(type_name)})]"]

    def variant_attributes(self, label: str, identifier: str) -> List[str]:
        return [f"#[sqlx(rename = {rust_string(label)})]"]

    def field_attributes(self, column: str, identifier: str) -> List[str]:
        if bare_identifier(identifier) == column:
            return []
        return [f"#[sqlx(rename = {rust_string(column)})]"]


PROFILES: Dict[Framework, FrameworkProfile] = {
    Framework.NONE: PlainProfile(),
    Framework.SQLX: SqlxProfile(),
}


def get_profile(framework: Union[Framework, str]) -> FrameworkProfile:
    """Look up the profile for a framework name.

    Raises:
        ConfigurationError: If the framework is unknown
    """
    try:
        key = Framework(framework)
    except ValueError:
        choices = ", ".join(f.value for f in Framework)
        raise ConfigurationError(
            f"Unknown framework '{framework}'. Choose one of: {choices}",
            details={"framework": str(framework)},
        )
    return PROFILES[key]
