"""Rust code generator for catalog snapshots."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set, Tuple, Union

from ..database.models import (
    ArrayType,
    CatalogSnapshot,
    ColumnDescriptor,
    DomainType,
    QualifiedName,
    ScalarType,
    TableDescriptor,
    TypeRef,
)
from ..errors import UnsupportedTypeWarning
from .emitter import CodeEmitter, FieldAttribute, GeneratedField, GeneratedStruct
from .naming import NameResolver, ensure_unique
from .profiles import Framework, get_profile
from .type_mapper import AuxiliaryDeclaration, TypeMapper

logger = logging.getLogger(__name__)

MOD_FILE = "mod.rs"
# Prelude types the generated code refers to unqualified
PRELUDE_NAMES = ("Option", "String", "Vec")


@dataclass
class GeneratorOptions:
    """Options controlling code generation."""
    singular: bool = False
    framework: Union[Framework, str] = Framework.NONE
    exclude_tables: Sequence[str] = ()


@dataclass(frozen=True)
class GeneratedArtifacts:
    """Everything produced by one generation run."""
    files: Dict[str, str]
    structs: Tuple[GeneratedStruct, ...]
    warnings: Tuple[UnsupportedTypeWarning, ...] = ()


@dataclass
class _Plan:
    structs: List[GeneratedStruct] = field(default_factory=list)
    declarations: Dict[QualifiedName, AuxiliaryDeclaration] = field(default_factory=dict)
    owners: Dict[QualifiedName, str] = field(default_factory=dict)
    owned: Dict[str, List[AuxiliaryDeclaration]] = field(default_factory=dict)
    warnings: List[UnsupportedTypeWarning] = field(default_factory=list)


def _parameterised_scalar(type_ref: TypeRef) -> Union[ScalarType, None]:
    while isinstance(type_ref, (ArrayType, DomainType)):
        type_ref = type_ref.element if isinstance(type_ref, ArrayType) else type_ref.underlying
    if isinstance(type_ref, ScalarType) and (
        type_ref.precision is not None or type_ref.scale is not None or type_ref.length is not None
    ):
        return type_ref
    return None


def _describe_scalar(scalar: ScalarType) -> str:
    if scalar.precision is not None and scalar.scale is not None:
        return f"{scalar.kind}({scalar.precision},{scalar.scale})"
    if scalar.precision is not None:
        return f"{scalar.kind}({scalar.precision})"
    return f"{scalar.kind}({scalar.length})"


def _dependency_order(declarations: List[AuxiliaryDeclaration]) -> List[AuxiliaryDeclaration]:
    """Order declarations so every composite follows the declarations it uses."""
    by_name = {d.qualified_name: d for d in declarations}
    ordered: List[AuxiliaryDeclaration] = []
    visited: Set[QualifiedName] = set()

    def visit(declaration: AuxiliaryDeclaration):
        if declaration.qualified_name in visited:
            return
        visited.add(declaration.qualified_name)
        for dependency in sorted(declaration.dependencies):
            if dependency in by_name:
                visit(by_name[dependency])
        ordered.append(declaration)

    for declaration in sorted(declarations, key=lambda d: d.qualified_name):
        visit(declaration)
    return ordered


class RustCodeGenerator:
    """Generates one Rust module per table from a catalog snapshot."""

    def __init__(self, snapshot: CatalogSnapshot, options: GeneratorOptions = None):
        """Initialize the generator.

        Args:
            snapshot: The captured catalog
            options: Generation options (defaults: plural names, no framework)

        Raises:
            ConfigurationError: If the framework is unknown
        """
        self.snapshot = snapshot
        self.options = options or GeneratorOptions()
        self.names = NameResolver()
        self.mapper = TypeMapper(snapshot.types, self.names)
        self.profile = get_profile(self.options.framework)
        self.emitter = CodeEmitter(self.profile, self.names)

    def included_tables(self) -> List[TableDescriptor]:
        """Tables left after exclusion, sorted by qualified name."""
        excluded = set(self.options.exclude_tables)
        matched = set()
        tables = []
        for table in self.snapshot.tables:
            keys = {table.name.name, str(table.name)} & excluded
            if keys:
                matched |= keys
                logger.debug("Excluding table %s", table.name)
                continue
            tables.append(table)

        for name in sorted(excluded - matched):
            logger.warning("Excluded table '%s' does not exist", name)

        return sorted(tables, key=lambda t: t.name)

    def build_structs(self) -> List[GeneratedStruct]:
        """Map every included table to a struct, without rendering."""
        return list(self._plan().structs)

    def generate_all(self) -> GeneratedArtifacts:
        """Generate all module files.

        Returns:
            GeneratedArtifacts with file name -> contents, sorted by file name

        Raises:
            NameCollisionError: If two names resolve to the same identifier
        """
        plan = self._plan()
        files: Dict[str, str] = {}

        for struct in plan.structs:
            owned = plan.owned.get(struct.module, [])
            imported = [
                (plan.owners[name], plan.declarations[name].name)
                for name in sorted(struct.declarations)
                if plan.owners[name] != struct.module
            ]
            files[f"{struct.module}.rs"] = self.emitter.render_table_file(struct, owned, imported)
            logger.debug("Rendered %s.rs (%d fields, %d declarations)", struct.module, len(struct.fields), len(owned))

        files[MOD_FILE] = self.emitter.render_mod_file(plan.structs, plan.owned)

        return GeneratedArtifacts(
            files=dict(sorted(files.items())),
            structs=tuple(plan.structs),
            warnings=tuple(plan.warnings),
        )

    def _plan(self) -> _Plan:
        plan = _Plan()
        tables = self.included_tables()

        identifiers = ensure_unique(
            ((str(t.name), self.names.table_name(t.name.name, self.options.singular)) for t in tables),
            scope="struct",
        )

        for table in tables:
            identifier = identifiers[str(table.name)]
            plan.structs.append(self._build_struct(table, identifier, plan))

        ensure_unique(
            [(str(s.table), s.module) for s in plan.structs] + [(MOD_FILE, "mod")],
            scope="module",
            case_sensitive=False,
        )
        ensure_unique(
            [(str(s.table), s.name) for s in plan.structs]
            + [(f"type {d.qualified_name}", d.name) for d in plan.declarations.values()],
            scope="type",
        )

        # Each declaration belongs to the first table (in sorted order) that needs it
        for struct in plan.structs:
            new = [plan.declarations[name] for name in struct.declarations if name not in plan.owners]
            for declaration in new:
                plan.owners[declaration.qualified_name] = struct.module
            if new:
                plan.owned[struct.module] = _dependency_order(new)

        for struct in plan.structs:
            self._check_file_names(struct, plan)

        return plan

    def _check_file_names(self, struct: GeneratedStruct, plan: _Plan):
        """Reject a module whose own names shadow its imports or the prelude."""
        pairs = [(f"prelude {name}", name) for name in PRELUDE_NAMES]
        pairs += [
            (f"use {path}", path.rsplit("::", 1)[-1])
            for path in sorted(self.emitter.crate_imports(struct, plan.owned.get(struct.module, [])))
        ]
        # Declarations are either owned by this module or imported into it
        pairs += [
            (f"type {name}", plan.declarations[name].name) for name in sorted(struct.declarations)
        ]
        pairs.append((str(struct.table), struct.name))
        ensure_unique(pairs, scope=f"{struct.module}.rs")

    def _build_struct(self, table: TableDescriptor, identifier: str, plan: _Plan) -> GeneratedStruct:
        fields = []
        needed: Set[QualifiedName] = set()

        for column in table.columns:
            nullable = column.nullable and not (column.is_primary_key or column.is_identity)
            mapped = self.mapper.map_nullable(column.type_ref, nullable)

            for opaque in mapped.unsupported:
                plan.warnings.append(UnsupportedTypeWarning(
                    location=f"{table.name.name}.{column.name}",
                    raw_type=opaque.raw_name,
                    reason=opaque.reason,
                ))

            for declaration in sorted(mapped.declarations, key=lambda d: d.qualified_name):
                needed.add(declaration.qualified_name)
                if declaration.qualified_name in plan.declarations:
                    continue
                plan.declarations[declaration.qualified_name] = declaration
                for field_name, opaque in declaration.unsupported:
                    plan.warnings.append(UnsupportedTypeWarning(
                        location=f"{declaration.qualified_name.name}.{field_name}",
                        raw_type=opaque.raw_name,
                        reason=opaque.reason,
                    ))

            fields.append(GeneratedField(
                name=self.names.column_name(column.name),
                column=column.name,
                rust_type=mapped.rust_type,
                attributes=self._attributes(column),
                references=self._references(table, column),
                sql_type=self._sql_type(column),
            ))

        ensure_unique(((f.column, f.name) for f in fields), scope=f"{identifier} field")

        return GeneratedStruct(
            name=identifier,
            module=self.names.module_name(identifier),
            table=table.name,
            fields=tuple(fields),
            declarations=frozenset(needed),
            kind=table.kind,
        )

    @staticmethod
    def _attributes(column: ColumnDescriptor) -> frozenset:
        flags = {
            FieldAttribute.PRIMARY_KEY: column.is_primary_key,
            FieldAttribute.IDENTITY: column.is_identity,
            FieldAttribute.GENERATED: column.is_generated,
            FieldAttribute.HAS_DEFAULT: column.has_default,
            FieldAttribute.UNIQUE: column.is_unique,
        }
        return frozenset(attribute for attribute, present in flags.items() if present)

    @staticmethod
    def _references(table: TableDescriptor, column: ColumnDescriptor) -> Union[str, None]:
        # Metadata only; the referenced table may be excluded or missing
        fk = table.foreign_key_for(column.name)
        if fk is None:
            return None
        referenced_column = fk.referenced_columns[fk.columns.index(column.name)]
        return f"{fk.referenced_table}.{referenced_column}"

    @staticmethod
    def _sql_type(column: ColumnDescriptor) -> Union[str, None]:
        scalar = _parameterised_scalar(column.type_ref)
        if scalar is None:
            return None
        return column.formatted_type or _describe_scalar(scalar)
