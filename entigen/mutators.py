# File: entigen/mutators.py
"""
EntiGen - Class Mutators
=========================
Idempotent edits applied to a parsed ``ClassSource``.

Every ``add_*`` call follows the same shape:

1. validate inputs (``ValidationError``, nothing touched),
2. swap the property in place, or insert it after the last property,
3. swap regenerated accessors in place, drop stale ones, append new ones.

Running the same call twice therefore yields the same class, and a changed
definition silently replaces the old one.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Set

from entigen.errors import StructuralParseError, ValidationError
from entigen.models import RelationSpec
from entigen.registries import FIELD_TYPES, FieldType, RelationKind
from entigen.source import (
    CONSTRUCTOR,
    ClassSource,
    MethodNode,
    PropertyNode,
    parse_member,
)
from entigen.templates import PhpTemplates
from entigen.utils import (
    is_valid_class_name,
    is_valid_identifier,
    short_class_name,
    ucfirst,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.mutators")

_TARGET_ENTITY_RE: re.Pattern[str] = re.compile(
    r"targetEntity:\s*\\?([A-Za-z_][\w\\]*)::class"
)


def _property_node(text: str) -> PropertyNode:
    node = parse_member(text)
    if not isinstance(node, PropertyNode):
        raise StructuralParseError("Rendered fragment is not a property.")
    return node


def _method_node(text: str) -> MethodNode:
    node = parse_member(text)
    if not isinstance(node, MethodNode):
        raise StructuralParseError("Rendered fragment is not a method.")
    return node


class _Mutator:
    """Common plumbing: the source being edited and the renderer."""

    def __init__(self, source: ClassSource, templates: PhpTemplates) -> None:
        self.source: ClassSource = source
        self.templates: PhpTemplates = templates

    def _replace_property(self, name: str, text: str) -> None:
        """Swap an existing property in place, or insert a new one."""
        node: PropertyNode = _property_node(text)
        existing: Optional[PropertyNode] = self.source.find_property(name)
        if existing is not None:
            self.source.replace_member(existing, node)
        else:
            self.source.insert_property(node)

    def _replace_methods(self, texts: List[str], stale_methods: List[str]) -> None:
        """
        Regenerated methods keep their position; stale ones that are not
        regenerated are dropped; the rest are appended.
        """
        nodes: List[MethodNode] = [_method_node(text) for text in texts]
        regenerated: Set[str] = {node.name.lower() for node in nodes}
        for name in stale_methods:
            if name.lower() not in regenerated:
                self.source.remove_method(name)
        for node in nodes:
            existing: Optional[MethodNode] = self.source.find_method(node.name)
            if existing is not None:
                self.source.replace_member(existing, node)
            else:
                self.source.insert_method(node)

    @staticmethod
    def _is_collection_property(node: PropertyNode) -> bool:
        return bool(
            re.search(r"\barray\s+\$" + re.escape(node.name) + r"\b", node.text)
        )

    def _stale_accessors(self, prop: str) -> List[str]:
        """
        Accessors generated for the current definition of *prop*.

        Only methods this generator emits for that kind of property are
        listed; anything else in the class is left alone.
        """
        node: Optional[PropertyNode] = self.source.find_property(prop)
        if node is None:
            return []
        stud: str = ucfirst(prop)
        if node.is_relation:
            if not self._is_collection_property(node):
                return [f"get{stud}", f"set{stud}", f"remove{stud}"]
            stale: List[str] = [f"get{stud}"]
            match = _TARGET_ENTITY_RE.search(node.text)
            if match is not None:
                previous: str = short_class_name(match.group(1))
                stale.extend([f"add{previous}", f"remove{previous}"])
            return stale
        if node.is_field:
            return [f"get{stud}", f"set{stud}"]
        return []

    def _drop_collection_init(self, prop: str) -> None:
        ctor: Optional[MethodNode] = self.source.find_method(CONSTRUCTOR)
        if ctor is not None:
            ctor.remove_statement(self.templates.render_collection_init(prop))


# ---------------------------------------------------------------------------
# Scalar fields
# ---------------------------------------------------------------------------


class PropertyMutator(_Mutator):
    """Adds ``#[Field]`` properties with getter and fluent setter."""

    def add_scalar_field(
        self,
        name: str,
        db_type: object,
        php_type: Optional[str] = None,
        nullable: bool = False,
    ) -> None:
        if not is_valid_identifier(name):
            raise ValidationError(
                f"Invalid field name '{name}'.",
                code="INVALID_FIELD_NAME",
                details={"field": name},
            )
        field_type: FieldType = FIELD_TYPES.require(db_type)
        resolved_php: str = php_type or FIELD_TYPES.php_type(field_type)

        stale: List[str] = self._stale_accessors(name)
        self._drop_collection_init(name)
        self._replace_property(
            name,
            self.templates.render_field_property(
                name, field_type.value, resolved_php, nullable
            ),
        )
        self._replace_methods(
            self.templates.render_field_accessors(name, resolved_php, nullable),
            stale,
        )
        logger.info(
            "Field %s::$%s (%s) written.",
            self.source.class_name,
            name,
            field_type.value,
        )


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


class RelationMutator(_Mutator):
    """Adds relation properties, accessors and collection initialisation."""

    def add_relation(
        self, spec: RelationSpec, target_short_name: Optional[str] = None
    ) -> None:
        """
        Insert the property described by a resolved *spec*.

        Collections become ``public array $x;`` initialised once in the
        constructor; to-one relations become ``public ?T $x = null;``.
        """
        target: str = target_short_name or spec.target_short_name
        if not is_valid_class_name(target):
            raise ValidationError(
                f"Invalid target class name '{target}'.",
                code="INVALID_TARGET_NAME",
                details={"target": target},
            )
        prop: Optional[str] = spec.property_name
        if not prop or not is_valid_identifier(prop):
            raise ValidationError(
                f"Invalid relation property name '{prop}'.",
                code="INVALID_PROPERTY_NAME",
                details={"property": prop},
            )

        kind: RelationKind = spec.kind
        stale: List[str] = self._stale_accessors(prop)
        attribute: str = self.templates.render_relation_attribute(
            kind,
            target,
            spec.is_owning_side,
            other_prop=spec.other_prop,
            join_table=spec.join_table,
            inverse_one_to_one=(
                kind is RelationKind.ONE_TO_ONE and not spec.is_owning_side
            ),
            nullable=spec.nullable,
        )
        self._replace_property(
            prop,
            self.templates.render_relation_property(prop, kind, target, attribute),
        )

        if kind.is_collection:
            self._ensure_collection_init(prop)
            accessors: List[str] = self.templates.render_collection_accessors(
                prop, target
            )
        else:
            self._drop_collection_init(prop)
            accessors = self.templates.render_reference_accessors(prop, target)
        self._replace_methods(accessors, stale)

        logger.info(
            "Relation %s::$%s (%s -> %s, %s) written.",
            self.source.class_name,
            prop,
            kind.value,
            target,
            "owning" if spec.is_owning_side else "inverse",
        )

    def _ensure_collection_init(self, prop: str) -> None:
        """Exactly one ``$this->prop = [];`` in the constructor."""
        ctor: MethodNode = self.source.find_or_create_constructor()
        if prop in ctor.assigned_properties():
            return
        ctor.append_statement(
            self.templates.render_collection_init(prop), self.source.indent
        )


__all__: List[str] = [
    "PropertyMutator",
    "RelationMutator",
]
