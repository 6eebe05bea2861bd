"""Rust type expressions."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..database.models import QualifiedName


@dataclass(frozen=True)
class RustType:
    """A Rust type expression.

    `name` is the identifier as written in generated code, `path` the fully
    qualified path that must be imported for it (None for primitives, prelude
    types and generated declarations). Decimal precision and scale and
    character length are carried along for documentation; Rust's types do not
    encode them.
    """
    name: str
    path: Optional[str] = None
    generics: Tuple["RustType", ...] = ()
    precision: Optional[int] = None
    scale: Optional[int] = None
    length: Optional[int] = None
    declaration: Optional[QualifiedName] = None

    def render(self) -> str:
        """Render the type as Rust source."""
        if self.generics:
            return f"{self.name}<{', '.join(g.render() for g in self.generics)}>"
        return self.name

    def imports(self) -> FrozenSet[str]:
        """Collect every path that must be imported to use this type."""
        paths = {self.path} if self.path else set()
        for generic in self.generics:
            paths |= generic.imports()
        return frozenset(paths)

    def declarations(self) -> FrozenSet[QualifiedName]:
        """Collect the generated declarations this type refers to."""
        names = {self.declaration} if self.declaration else set()
        for generic in self.generics:
            names |= generic.declarations()
        return frozenset(names)

    @property
    def is_option(self) -> bool:
        return self.name == "Option" and self.path is None

    def __str__(self) -> str:
        return self.render()


def primitive(name: str) -> RustType:
    """A primitive or prelude type such as i32, String or [u8; 8]."""
    return RustType(name=name)


def external(path: str, *generics: RustType) -> RustType:
    """A type that lives in another crate, e.g. chrono::NaiveDate."""
    return RustType(name=path.rsplit("::", 1)[-1], path=path, generics=tuple(generics))


def option(inner: RustType) -> RustType:
    """Wrap in Option<...>; an Option is never wrapped twice."""
    if inner.is_option:
        return inner
    return RustType(name="Option", generics=(inner,))


def vec(inner: RustType, dimension: int = 1) -> RustType:
    """Wrap in Vec<...> `dimension` times."""
    result = inner
    for _ in range(dimension):
        result = RustType(name="Vec", generics=(result,))
    return result


def group_imports(paths: Iterable[str]) -> List[str]:
    """Render `use` lines for the given paths, grouped by parent module.

    >>> group_imports(["chrono::Utc", "chrono::DateTime", "uuid::Uuid"])
    ['use chrono::{DateTime, Utc};', 'use uuid::Uuid;']
    """
    grouped: Dict[str, set] = defaultdict(set)
    for path in paths:
        parent, _, name = path.rpartition("::")
        grouped[parent].add(name)

    lines = []
    for parent in sorted(grouped):
        names = sorted(grouped[parent])
        if len(names) == 1:
            lines.append(f"use {parent}::{names[0]};")
        else:
            lines.append(f"use {parent}::{{{', '.join(names)}}};")
    return lines
