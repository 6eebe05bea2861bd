"""Identifier resolution for generated Rust code.

Converts catalog names into Rust identifiers: PascalCase for types and enum
variants, snake_case for fields and modules, with optional English
singularisation of table names and escaping of reserved words.
"""

import re
from typing import Dict, Iterable, List, Sequence, Tuple

from ..errors import NameCollisionError

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_WORD_SEPARATOR = re.compile(r"[\W_]+")

RUST_KEYWORDS = {
    # strict
    "as", "break", "const", "continue", "crate", "else", "enum", "extern",
    "false", "fn", "for", "if", "impl", "in", "let", "loop", "match", "mod",
    "move", "mut", "pub", "ref", "return", "self", "Self", "static", "struct",
    "super", "trait", "true", "type", "unsafe", "use", "where", "while",
    "async", "await", "dyn",
    # reserved
    "abstract", "become", "box", "do", "final", "macro", "override", "priv",
    "typeof", "unsized", "virtual", "yield", "try", "gen",
}

# Keywords that cannot be written as raw identifiers
NON_RAW_KEYWORDS = {"self", "Self", "super", "crate"}

UNCOUNTABLES = {
    "data", "equipment", "fish", "information", "metadata", "money", "news",
    "rice", "series", "sheep", "species", "deer",
}

IRREGULAR_SINGULARS = {
    "people": "person",
    "men": "man",
    "women": "woman",
    "children": "child",
    "sexes": "sex",
    "moves": "move",
    "zombies": "zombie",
    "geese": "goose",
    "teeth": "tooth",
    "feet": "foot",
}

# First match wins
SINGULAR_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(pattern), replacement)
    for pattern, replacement in [
        (r"(database)s$", r"\1"),
        (r"(quiz)zes$", r"\1"),
        (r"(matr)ices$", r"\1ix"),
        (r"(vert|ind)ices$", r"\1ex"),
        (r"^(ox)en$", r"\1"),
        (r"(alias|status)(es)?$", r"\1"),
        (r"(octop|vir)(us|i)$", r"\1us"),
        (r"^(a)x[ie]s$", r"\1xis"),
        (r"(cris|test)(is|es)$", r"\1is"),
        (r"(shoe)s$", r"\1"),
        (r"(o)es$", r"\1"),
        (r"(bus)(es)?$", r"\1"),
        (r"(m|l)ice$", r"\1ouse"),
        (r"(x|ch|ss|sh)es$", r"\1"),
        (r"(m)ovies$", r"\1ovie"),
        (r"([^aeiouy]|qu)ies$", r"\1y"),
        (r"([lr])ves$", r"\1f"),
        (r"(tive)s$", r"\1"),
        (r"(hive)s$", r"\1"),
        (r"([^f])ves$", r"\1fe"),
        (r"(analy|ba|diagno|parenthe|progno|synop|the)(sis|ses)$", r"\1sis"),
        (r"([ti])a$", r"\1um"),
        (r"(ss)$", r"\1"),
        (r"(us)$", r"\1"),
        (r"(is)$", r"\1"),
        (r"s$", ""),
    ]
]


def split_words(raw: str) -> List[str]:
    """Split a name written in snake_case, camelCase, with spaces or punctuation."""
    text = _ACRONYM_BOUNDARY.sub(r"\1_\2", raw)
    text = _CAMEL_BOUNDARY.sub(r"\1_\2", text)
    return [word for word in _WORD_SEPARATOR.split(text) if word]


def singularize(word: str) -> str:
    """Singularise one lowercase English word."""
    if not word or word in UNCOUNTABLES:
        return word
    if word in IRREGULAR_SINGULARS:
        return IRREGULAR_SINGULARS[word]
    for pattern, replacement in SINGULAR_RULES:
        if pattern.search(word):
            return pattern.sub(replacement, word, count=1)
    return word


def to_pascal_case(words: Sequence[str]) -> str:
    return "".join(word[:1].upper() + word[1:].lower() for word in words)


def to_snake_case(words: Sequence[str]) -> str:
    return "_".join(word.lower() for word in words)


def _digit_prefix(identifier: str) -> str:
    if identifier[:1].isdigit():
        return f"_{identifier}"
    return identifier


def bare_identifier(identifier: str) -> str:
    """Strip the raw-identifier prefix, if any."""
    return identifier[2:] if identifier.startswith("r#") else identifier


class NameResolver:
    """Turns catalog names into Rust identifiers."""

    def table_name(self, raw: str, singular: bool = False) -> str:
        """Struct identifier for a table.

        Args:
            raw: Unqualified table name
            singular: Singularise the last word (table_basic_types -> TableBasicType)
        """
        words = split_words(raw)
        if singular and words:
            words[-1] = singularize(words[-1].lower())
        return self._type_identifier(words, fallback="Table")

    def type_name(self, raw: str) -> str:
        """Identifier for a generated enum or record; never singularised."""
        return self._type_identifier(split_words(raw), fallback="Type")

    def variant_name(self, label: str) -> str:
        """Enum variant identifier for a label. An empty label becomes `Empty`."""
        return self._type_identifier(split_words(label), fallback="Empty")

    def column_name(self, raw: str) -> str:
        """Field identifier for a column or composite attribute."""
        words = split_words(raw)
        identifier = _digit_prefix(to_snake_case(words)) if words else "field"
        if identifier in NON_RAW_KEYWORDS:
            return f"{identifier}_"
        if identifier in RUST_KEYWORDS:
            return f"r#{identifier}"
        return identifier

    def module_name(self, identifier: str) -> str:
        """Module (file) name for a struct identifier."""
        words = split_words(bare_identifier(identifier))
        module = _digit_prefix(to_snake_case(words)) if words else "module"
        if module in RUST_KEYWORDS:
            return f"{module}_"
        return module

    def resolve_tables(self, names: Iterable[str], singular: bool = False) -> Dict[str, str]:
        """Map raw table names to struct identifiers.

        Raises:
            NameCollisionError: If two distinct names resolve to one identifier
        """
        unique_names = sorted(set(names))
        return ensure_unique(
            ((name, self.table_name(name, singular)) for name in unique_names),
            scope="struct",
        )

    def _type_identifier(self, words: Sequence[str], fallback: str) -> str:
        identifier = _digit_prefix(to_pascal_case(words)) if words else fallback
        if identifier in RUST_KEYWORDS:
            return f"{identifier}_"
        return identifier


def ensure_unique(
    pairs: Iterable[Tuple[str, str]],
    scope: str,
    case_sensitive: bool = True,
) -> Dict[str, str]:
    """Check that distinct sources map to distinct identifiers.

    Args:
        pairs: (source name, identifier) pairs
        scope: What the identifiers name, used in the error message
        case_sensitive: Compare case-insensitively (file names)

    Returns:
        Dict of source name -> identifier

    Raises:
        NameCollisionError: On the first collision
    """
    resolved: Dict[str, str] = {}
    owners: Dict[str, str] = {}
    for source, identifier in pairs:
        key = bare_identifier(identifier)
        if not case_sensitive:
            key = key.lower()
        owner = owners.get(key)
        if owner is not None and owner != source:
            raise NameCollisionError(identifier, owner, source, scope=scope)
        owners[key] = source
        resolved[source] = identifier
    return resolved
