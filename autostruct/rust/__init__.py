"""Rust code generation module for autostruct."""

from .types import RustType, group_imports
from .naming import NameResolver, ensure_unique, singularize, split_words
from .type_mapper import TypeMapper, MappedType, AuxiliaryDeclaration, DeclarationKind
from .profiles import Framework, FrameworkProfile, PlainProfile, SqlxProfile, get_profile
from .emitter import CodeEmitter, FieldAttribute, GeneratedField, GeneratedStruct
from .generator import RustCodeGenerator, GeneratorOptions, GeneratedArtifacts

__all__ = [
    "RustType",
    "group_imports",
    "NameResolver",
    "ensure_unique",
    "singularize",
    "split_words",
    "TypeMapper",
    "MappedType",
    "AuxiliaryDeclaration",
    "DeclarationKind",
    "Framework",
    "FrameworkProfile",
    "PlainProfile",
    "SqlxProfile",
    "get_profile",
    "CodeEmitter",
    "FieldAttribute",
    "GeneratedField",
    "GeneratedStruct",
    "RustCodeGenerator",
    "GeneratorOptions",
    "GeneratedArtifacts",
]
