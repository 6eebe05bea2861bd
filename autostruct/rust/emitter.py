"""Rendering of generated structs and declarations to Rust source text."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..database.models import QualifiedName
from .naming import NameResolver, ensure_unique
from .profiles import FrameworkProfile
from .type_mapper import AuxiliaryDeclaration, DeclarationKind
from .types import RustType, group_imports

HEADER = [
    "#![allow(dead_code)]",
    "// Generated with autostruct",
]
INDENT = "    "


class FieldAttribute(str, Enum):
    """Catalog facts recorded on a generated field."""
    PRIMARY_KEY = "primary_key"
    IDENTITY = "identity"
    GENERATED = "generated"
    HAS_DEFAULT = "has_default"
    UNIQUE = "unique"


# Doc note per attribute, in rendering order
ATTRIBUTE_NOTES = [
    (FieldAttribute.PRIMARY_KEY, "Primary key"),
    (FieldAttribute.IDENTITY, "Identity column"),
    (FieldAttribute.GENERATED, "Generated column"),
    (FieldAttribute.UNIQUE, "Unique"),
]


@dataclass(frozen=True)
class GeneratedField:
    """One struct field, generated from one column."""
    name: str
    column: str
    rust_type: RustType
    attributes: FrozenSet[FieldAttribute] = frozenset()
    references: Optional[str] = None
    sql_type: Optional[str] = None

    def doc_notes(self) -> List[str]:
        notes = [note for attribute, note in ATTRIBUTE_NOTES if attribute in self.attributes]
        if self.references:
            notes.append(f"References `{self.references}`")
        if self.sql_type:
            notes.append(f"SQL type: `{self.sql_type}`")
        return notes


@dataclass(frozen=True)
class GeneratedStruct:
    """A table struct ready for rendering."""
    name: str
    module: str
    table: QualifiedName
    fields: Tuple[GeneratedField, ...]
    declarations: FrozenSet[QualifiedName] = frozenset()
    kind: str = "table"

    def get_field(self, column: str) -> Optional[GeneratedField]:
        """Find a field by its source column name."""
        for field in self.fields:
            if field.column == column:
                return field
        return None


class CodeEmitter:
    """Renders Rust source for table modules and the module index."""

    def __init__(self, profile: FrameworkProfile, names: Optional[NameResolver] = None):
        self.profile = profile
        self.names = names or NameResolver()

    @staticmethod
    def crate_imports(struct: GeneratedStruct, owned: Sequence[AuxiliaryDeclaration] = ()) -> FrozenSet[str]:
        """Paths used by the struct fields and the declarations rendered beside it."""
        paths = set()
        for field in struct.fields:
            paths |= field.rust_type.imports()
        for declaration in owned:
            for _, rust_type in declaration.fields:
                paths |= rust_type.imports()
        return frozenset(paths)

    def render_table_file(
        self,
        struct: GeneratedStruct,
        owned: Sequence[AuxiliaryDeclaration] = (),
        imported: Sequence[Tuple[str, str]] = (),
    ) -> str:
        """Render one table module.

        Args:
            struct: The table struct
            owned: Declarations rendered in this file, in dependency order
            imported: (module, identifier) of declarations owned by other files

        Returns:
            Complete file contents
        """
        lines = list(HEADER)
        lines.append("")

        crate_imports = group_imports(self.crate_imports(struct, owned))
        if crate_imports:
            lines.extend(crate_imports)
            lines.append("")

        super_imports = sorted(set(f"use super::{module}::{name};" for module, name in imported))
        if super_imports:
            lines.extend(super_imports)
            lines.append("")

        for declaration in owned:
            lines.extend(self.render_declaration(declaration))
            lines.append("")

        lines.extend(self.render_struct(struct))
        return "\n".join(lines) + "\n"

    def render_struct(self, struct: GeneratedStruct) -> List[str]:
        lines = [f"/// {struct.kind.capitalize()} `{struct.table}`"]
        lines.append(self._derive(self.profile.struct_derives()))
        lines.append(f"pub struct {struct.name} {{")
        for field in struct.fields:
            for note in field.doc_notes():
                lines.append(f"{INDENT}/// {note}")
            for attribute in self.profile.field_attributes(field.column, field.name):
                lines.append(f"{INDENT}{attribute}")
            lines.append(f"{INDENT}pub {field.name}: {field.rust_type.render()},")
        lines.append("}")
        return lines

    def render_declaration(self, declaration: AuxiliaryDeclaration) -> List[str]:
        if declaration.kind == DeclarationKind.ENUM:
            return self.render_enum(declaration)
        return self.render_composite(declaration)

    def render_enum(self, declaration: AuxiliaryDeclaration) -> List[str]:
        source = declaration.source
        variants = ensure_unique(
            ((label, self.names.variant_name(label)) for label in source.labels),
            scope=f"{declaration.name} variant",
        )

        lines = [f"/// Enum `{declaration.qualified_name}`"]
        lines.append(self._derive(self.profile.enum_derives()))
        lines.extend(self.profile.type_attributes(declaration.qualified_name))
        lines.append(f"pub enum {declaration.name} {{")
        for label in source.labels:
            for attribute in self.profile.variant_attributes(label, variants[label]):
                lines.append(f"{INDENT}{attribute}")
            lines.append(f"{INDENT}{variants[label]},")
        lines.append("}")
        return lines

    def render_composite(self, declaration: AuxiliaryDeclaration) -> List[str]:
        field_names = ensure_unique(
            ((name, self.names.column_name(name)) for name, _ in declaration.fields),
            scope=f"{declaration.name} field",
        )

        lines = [f"/// Composite type `{declaration.qualified_name}`"]
        lines.append(self._derive(self.profile.composite_derives()))
        lines.extend(self.profile.type_attributes(declaration.qualified_name))
        lines.append(f"pub struct {declaration.name} {{")
        for name, rust_type in declaration.fields:
            lines.append(f"{INDENT}pub {field_names[name]}: {rust_type.render()},")
        lines.append("}")
        return lines

    def render_mod_file(
        self,
        structs: Sequence[GeneratedStruct],
        owned: Dict[str, Sequence[AuxiliaryDeclaration]],
    ) -> str:
        """Render mod.rs declaring every table module and re-exporting its items.

        Args:
            structs: All generated structs
            owned: Declarations owned by each module
        """
        modules = sorted(structs, key=lambda s: s.module)

        lines = ["// Generated with autostruct", ""]
        for struct in modules:
            lines.append(f"pub mod {struct.module};")

        if modules:
            lines.append("")
        for struct in modules:
            exported = sorted([struct.name] + [d.name for d in owned.get(struct.module, ())])
            if len(exported) == 1:
                lines.append(f"pub use {struct.module}::{exported[0]};")
            else:
                lines.append(f"pub use {struct.module}::{{{', '.join(exported)}}};")

        return "\n".join(lines) + "\n"

    @staticmethod
    def _derive(derives: Sequence[str]) -> str:
        return f"#[derive({', '.join(derives)})]"
