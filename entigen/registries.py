# File: entigen/registries.py
"""
EntiGen - Type & Relation Kind Registries
===========================================
Statically built registries for everything the generator needs to look up
by name:

- ``FieldType``          scalar database types a ``#[Field]`` may declare
- ``PHP_TYPE_MAP``       scalar database type -> PHP native type
- ``RelationKind``       the four relation cardinalities
- ``RELATION_INVERSE``   relation kind -> kind declared on the other side

The registries are plain module-level data.  Nothing is discovered at
runtime; adding a type means adding an enum member and a map entry.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from entigen.errors import ValidationError

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.registries")


# ---------------------------------------------------------------------------
# Scalar field types
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Scalar database types supported by ``#[Field(type: ...)]``."""

    # String
    STRING = "string"
    CHAR = "char"
    TEXT = "text"
    MEDIUM_TEXT = "mediumText"
    LONG_TEXT = "longText"

    # Numeric
    INTEGER = "integer"
    TINY_INT = "tinyInt"
    SMALL_INT = "smallInt"
    BIG_INT = "bigInt"
    UNSIGNED_BIG_INT = "unsignedBigInt"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"

    # Date / Time
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    DATETIMETZ = "datetimetz"
    TIMESTAMP = "timestamp"
    TIMESTAMPTZ = "timestamptz"
    YEAR = "year"

    # Special
    UUID = "uuid"
    BINARY = "binary"
    JSON = "json"
    SIMPLE_JSON = "simple_json"
    ARRAY = "array"
    SIMPLE_ARRAY = "simple_array"
    ENUM = "enum"
    SET = "set"
    GEOMETRY = "geometry"
    POINT = "point"
    LINESTRING = "linestring"
    POLYGON = "polygon"
    IP_ADDRESS = "ipAddress"
    MAC_ADDRESS = "macAddress"


_DATE_TYPE: str = "\\DateTimeImmutable"

PHP_TYPE_MAP: Dict[FieldType, str] = {
    FieldType.STRING: "string",
    FieldType.CHAR: "string",
    FieldType.TEXT: "string",
    FieldType.MEDIUM_TEXT: "string",
    FieldType.LONG_TEXT: "string",
    FieldType.INTEGER: "int",
    FieldType.TINY_INT: "int",
    FieldType.SMALL_INT: "int",
    FieldType.BIG_INT: "int",
    FieldType.UNSIGNED_BIG_INT: "int",
    FieldType.DECIMAL: "float",
    FieldType.FLOAT: "float",
    FieldType.BOOLEAN: "bool",
    FieldType.YEAR: "int",
    FieldType.DATE: _DATE_TYPE,
    FieldType.TIME: _DATE_TYPE,
    FieldType.DATETIME: _DATE_TYPE,
    FieldType.DATETIMETZ: _DATE_TYPE,
    FieldType.TIMESTAMP: _DATE_TYPE,
    FieldType.TIMESTAMPTZ: _DATE_TYPE,
    FieldType.JSON: "array",
    FieldType.SIMPLE_JSON: "array",
    FieldType.ARRAY: "array",
    FieldType.SIMPLE_ARRAY: "array",
    FieldType.SET: "array",
    FieldType.UUID: "string",
    FieldType.BINARY: "string",
    FieldType.ENUM: "string",
    FieldType.GEOMETRY: "string",
    FieldType.POINT: "string",
    FieldType.LINESTRING: "string",
    FieldType.POLYGON: "string",
    FieldType.IP_ADDRESS: "string",
    FieldType.MAC_ADDRESS: "string",
}

# Fallback PHP type for anything that slips past the registry.
PHP_MIXED: str = "mixed"


class FieldTypeRegistry:
    """
    Lookup facade over ``FieldType`` and ``PHP_TYPE_MAP``.

    ``lookup`` returns ``None`` for unknown names; ``require`` raises
    ``ValidationError`` instead.
    """

    __slots__ = ("_by_value",)

    def __init__(self) -> None:
        self._by_value: Dict[str, FieldType] = {ft.value: ft for ft in FieldType}

    def all(self) -> List[FieldType]:
        return list(FieldType)

    def names(self) -> List[str]:
        return [ft.value for ft in FieldType]

    def lookup(self, name: str) -> Optional[FieldType]:
        if isinstance(name, FieldType):
            return name
        return self._by_value.get(name)

    def require(self, name: str) -> FieldType:
        field_type: Optional[FieldType] = self.lookup(name)
        if field_type is None:
            raise ValidationError(
                f"Unknown field type '{name}'. "
                f"Supported types: {', '.join(self.names())}.",
                code="UNKNOWN_FIELD_TYPE",
                details={"type": str(name)},
            )
        return field_type

    def php_type(self, name: str) -> str:
        """Map a database type to its PHP type, ``mixed`` when unknown."""
        field_type: Optional[FieldType] = self.lookup(name)
        if field_type is None:
            return PHP_MIXED
        return PHP_TYPE_MAP.get(field_type, PHP_MIXED)


# ---------------------------------------------------------------------------
# Relation kinds
# ---------------------------------------------------------------------------


class RelationKind(str, Enum):
    """Relation cardinalities, valued by their lower-camel keyword."""

    ONE_TO_ONE = "oneToOne"
    ONE_TO_MANY = "oneToMany"
    MANY_TO_ONE = "manyToOne"
    MANY_TO_MANY = "manyToMany"

    @property
    def attribute(self) -> str:
        """PHP attribute class name, e.g. ``OneToMany``."""
        return self.value[0].upper() + self.value[1:]

    @property
    def is_collection(self) -> bool:
        return self in COLLECTION_KINDS


COLLECTION_KINDS: FrozenSet[RelationKind] = frozenset({
    RelationKind.ONE_TO_MANY,
    RelationKind.MANY_TO_MANY,
})

RELATION_INVERSE: Dict[RelationKind, RelationKind] = {
    RelationKind.ONE_TO_ONE: RelationKind.ONE_TO_ONE,
    RelationKind.MANY_TO_ONE: RelationKind.ONE_TO_MANY,
    RelationKind.ONE_TO_MANY: RelationKind.MANY_TO_ONE,
    RelationKind.MANY_TO_MANY: RelationKind.MANY_TO_MANY,
}

# Attribute names recognised on existing properties, e.g. "ManyToOne".
RELATION_ATTRIBUTES: Dict[str, RelationKind] = {
    kind.attribute: kind for kind in RelationKind
}

_NON_ALPHA_RE: re.Pattern[str] = re.compile(r"[^A-Za-z]")

_NORMALISED_KINDS: Dict[str, RelationKind] = {
    kind.value.lower(): kind for kind in RelationKind
}


class RelationKindRegistry:
    """Keyword normalisation and inverse lookup for relation kinds."""

    __slots__ = ()

    def all(self) -> List[RelationKind]:
        return list(RelationKind)

    def keywords(self) -> List[str]:
        return [kind.value for kind in RelationKind]

    def lookup(self, keyword: object) -> Optional[RelationKind]:
        """
        Resolve ``oneToMany``, ``OneToMany``, ``one_to_many`` or
        ``ONE-TO-MANY`` to ``RelationKind.ONE_TO_MANY``.
        """
        if isinstance(keyword, RelationKind):
            return keyword
        if not isinstance(keyword, str):
            return None
        normalised: str = _NON_ALPHA_RE.sub("", keyword).lower()
        return _NORMALISED_KINDS.get(normalised)

    def require(self, keyword: object) -> RelationKind:
        kind: Optional[RelationKind] = self.lookup(keyword)
        if kind is None:
            raise ValidationError(
                f"Unknown relation kind '{keyword}'. "
                f"Expected one of: {', '.join(self.keywords())}.",
                code="UNKNOWN_RELATION_KIND",
                details={"kind": str(keyword)},
            )
        return kind

    def inverse(self, keyword: object) -> RelationKind:
        return RELATION_INVERSE[self.require(keyword)]


# ---------------------------------------------------------------------------
# Help text shown by ``entigen types``
# ---------------------------------------------------------------------------

RELATION_HELP: Dict[RelationKind, Tuple[str, ...]] = {
    RelationKind.ONE_TO_MANY: (
        "Collection side (OneToMany) is the inverse side and uses mappedBy.",
        "The owning side is ManyToOne on the target entity; it uses "
        "inversedBy and carries the foreign key.",
    ),
    RelationKind.MANY_TO_ONE: (
        "This side is the owning side; it uses inversedBy and holds the "
        "foreign key.",
        "The inverse side on the other entity is a OneToMany collection "
        "using mappedBy.",
    ),
    RelationKind.ONE_TO_ONE: (
        "Only one side owns the relation and stores the foreign key.",
        "Owning side uses inversedBy, inverse side uses mappedBy.",
        "The invoking side owns the relation unless marked as inverse.",
    ),
    RelationKind.MANY_TO_MANY: (
        "One side owns the relation and declares the join table.",
        "The invoking side owns it unless marked as inverse.",
        "Both sides are collections; rows live in the join table.",
    ),
}


# ---------------------------------------------------------------------------
# Shared singletons
# ---------------------------------------------------------------------------

FIELD_TYPES: FieldTypeRegistry = FieldTypeRegistry()
RELATION_KINDS: RelationKindRegistry = RelationKindRegistry()


__all__: List[str] = [
    "FieldType",
    "FieldTypeRegistry",
    "PHP_TYPE_MAP",
    "PHP_MIXED",
    "RelationKind",
    "RelationKindRegistry",
    "COLLECTION_KINDS",
    "RELATION_INVERSE",
    "RELATION_ATTRIBUTES",
    "RELATION_HELP",
    "FIELD_TYPES",
    "RELATION_KINDS",
]

logger.debug("entigen.registries loaded - %d field types.", len(PHP_TYPE_MAP))
