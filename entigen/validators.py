# File: entigen/validators.py
"""
EntiGen - Plan & Configuration Validators
==========================================
Pre-flight semantic validation of ``EntityPlan`` values.

Pydantic already guarantees structure (known field types, known relation
kinds, required keys).  This module adds everything that needs context:
identifier rules, duplicate property names, ownership contradictions,
unknown target entities and redefinitions of existing members.

Issues are accumulated into a ``ValidationResult`` so a user sees every
problem of a plan at once.  Any error aborts generation before a single
file is touched.

Usage:
    from entigen.validators import validate_plan
    result = validate_plan(plan, known_entities=store.list_entities())
    if result.has_errors:
        print(result.format_report())
"""

from __future__ import annotations

import difflib
import logging
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from entigen.errors import ValidationError
from entigen.models import EntityPlan, GenerationConfig
from entigen.registries import FIELD_TYPES, RelationKind
from entigen.resolver import RelationResolver
from entigen.utils import (
    InflectionPluralizer,
    Pluralizer,
    is_valid_class_name,
    is_valid_entity_name,
    is_valid_identifier,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationIssue:
    """Lightweight issue descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()


class ValidationResult:
    """Accumulates ``ValidationIssue`` instances."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationIssue] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationIssue("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationIssue]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> Set[str]:
        return {e.code for e in self._items}

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {
                "error": "❌",
                "warning": "⚠️",
                "info": "ℹ️",
            }.get(item.level, "•")
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            if item.context:
                for k, v in item.context.items():
                    lines.append(f"       {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_entity_name(plan: EntityPlan) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if not is_valid_entity_name(plan.name):
        result.add_error(
            "INVALID_ENTITY_NAME",
            f"Entity name '{plan.name}' must be upper-camel alphanumeric "
            f"(e.g. 'BlogPost') and not a reserved word.",
            {"entity": plan.name},
        )
    return result


def validate_fields(plan: EntityPlan) -> ValidationResult:
    """
    Field names must be identifiers that are not reserved words and whose
    type is in the registry.
    """
    result: ValidationResult = ValidationResult()
    for spec in plan.fields:
        ctx: Dict[str, Any] = {"entity": plan.name, "field": spec.name}
        if not is_valid_identifier(spec.name):
            result.add_error(
                "INVALID_FIELD_NAME",
                f"Field name '{spec.name}' is not a valid property name.",
                ctx,
            )
        if FIELD_TYPES.lookup(spec.db_type) is None:
            result.add_error(
                "UNKNOWN_FIELD_TYPE",
                f"Field '{spec.name}' has unknown type '{spec.db_type}'.",
                ctx,
            )
    return result


def suggest_entities(
    name: str,
    known_entities: Iterable[str],
    limit: int = 3,
    pluralizer: Optional[Pluralizer] = None,
) -> List[str]:
    """
    Close matches of *name* among *known_entities*.  A known entity equal
    to the singular of *name* (``Comments`` -> ``Comment``) is ranked first.
    """
    known: List[str] = list(known_entities)
    matches: List[str] = difflib.get_close_matches(name, known, n=limit, cutoff=0.6)
    singular: str = (pluralizer or InflectionPluralizer()).singularize(name)
    if singular != name and singular in known:
        matches = [singular] + [m for m in matches if m != singular]
    return matches[:limit]


def validate_relations(
    plan: EntityPlan,
    known_entities: Optional[Iterable[str]] = None,
    resolver: Optional[RelationResolver] = None,
) -> ValidationResult:
    """
    Property and target names, ownership contradictions, reciprocal names
    and unknown targets.  ``known_entities`` of ``None`` skips the
    unknown-target check.
    """
    result: ValidationResult = ValidationResult()
    res: RelationResolver = resolver or RelationResolver()
    known: Optional[Set[str]] = set(known_entities) if known_entities is not None else None
    if known is not None:
        known.add(plan.name)

    for spec in plan.relations:
        target: str = spec.target_short_name
        prop: str = spec.property_name or res.suggest_property_name(target, spec.kind)
        ctx: Dict[str, Any] = {
            "entity": plan.name,
            "property": prop,
            "kind": spec.kind.value,
            "target": target,
        }

        if not is_valid_identifier(prop):
            result.add_error(
                "INVALID_PROPERTY_NAME",
                f"Relation property '{prop}' is not a valid property name.",
                ctx,
            )
        if not is_valid_class_name(target):
            result.add_error(
                "INVALID_TARGET_NAME",
                f"Relation target '{spec.target}' is not a valid class name.",
                ctx,
            )
        if spec.other_prop is not None and not is_valid_identifier(spec.other_prop):
            result.add_error(
                "INVALID_PROPERTY_NAME",
                f"Reciprocal property '{spec.other_prop}' is not a valid "
                f"property name.",
                ctx,
            )

        try:
            res.resolve_ownership(spec.kind, spec.owning)
        except ValidationError as exc:
            result.add_error(exc.code, exc.message, ctx)

        if spec.join_table is not None and spec.kind is not RelationKind.MANY_TO_MANY:
            result.add_warning(
                "JOIN_TABLE_IGNORED",
                f"Join table on '{prop}' is ignored: only manyToMany "
                f"relations declare one.",
                ctx,
            )

        if target == plan.name and spec.generate_inverse:
            other: str = spec.other_prop or res.suggest_property_name(
                plan.name, res.resolve_inverse(spec.kind)
            )
            if other == prop:
                result.add_error(
                    "SELF_REFERENCE_CONFLICT",
                    f"Self-referencing relation '{prop}' cannot be its own "
                    f"inverse; set a different reciprocal property name.",
                    ctx,
                )

        if known is not None and target not in known:
            suggestions: List[str] = suggest_entities(target, known)
            hint: str = f" Did you mean: {', '.join(suggestions)}?" if suggestions else ""
            if spec.generate_inverse:
                result.add_info(
                    "TARGET_WILL_BE_CREATED",
                    f"Target entity '{target}' does not exist and will be "
                    f"created from a stub.{hint}",
                    ctx,
                )
            else:
                result.add_warning(
                    "UNKNOWN_TARGET_ENTITY",
                    f"Target entity '{target}' does not exist.{hint}",
                    ctx,
                )
    return result


def validate_duplicates(
    plan: EntityPlan, resolver: Optional[RelationResolver] = None
) -> ValidationResult:
    """
    A property name may be planned only once per entity, and two relations
    may not declare the same reciprocal property on one target.
    """
    result: ValidationResult = ValidationResult()
    res: RelationResolver = resolver or RelationResolver()
    seen: Set[str] = set()
    names: List[str] = [f.name for f in plan.fields]
    names.extend(
        r.property_name or res.suggest_property_name(r.target_short_name, r.kind)
        for r in plan.relations
    )
    for name in names:
        if name in seen:
            result.add_error(
                "DUPLICATE_PROPERTY",
                f"Property '{name}' is defined more than once for "
                f"entity '{plan.name}'.",
                {"entity": plan.name, "property": name},
            )
        seen.add(name)

    reciprocals: Dict[Tuple[str, str], str] = {}
    for spec in plan.relations:
        if not spec.generate_inverse:
            continue
        target: str = spec.target_short_name
        prop: str = spec.property_name or res.suggest_property_name(target, spec.kind)
        other: str = spec.other_prop or res.suggest_property_name(
            plan.name, res.resolve_inverse(spec.kind)
        )
        key: Tuple[str, str] = (target, other)
        if key in reciprocals:
            result.add_error(
                "DUPLICATE_INVERSE_PROPERTY",
                f"Relations '{reciprocals[key]}' and '{prop}' both declare "
                f"'{target}::${other}' as their inverse side; set a distinct "
                f"reciprocal property name.",
                {"entity": plan.name, "property": prop, "target": target,
                 "other_prop": other},
            )
        else:
            reciprocals[key] = prop
    return result


def validate_existing_members(
    plan: EntityPlan,
    existing_fields: Iterable[str],
    existing_relations: Iterable[str],
    resolver: Optional[RelationResolver] = None,
) -> ValidationResult:
    """Warn when the plan replaces members already present in the file."""
    result: ValidationResult = ValidationResult()
    res: RelationResolver = resolver or RelationResolver()
    fields: Set[str] = set(existing_fields)
    relations: Set[str] = set(existing_relations)

    for spec in plan.fields:
        if spec.name in relations:
            result.add_warning(
                "REPLACES_RELATION",
                f"Field '{spec.name}' replaces an existing relation.",
                {"entity": plan.name, "property": spec.name},
            )
        elif spec.name in fields:
            result.add_info(
                "REDEFINES_FIELD",
                f"Field '{spec.name}' already exists and will be regenerated.",
                {"entity": plan.name, "property": spec.name},
            )
    for rel in plan.relations:
        prop: str = rel.property_name or res.suggest_property_name(
            rel.target_short_name, rel.kind
        )
        if prop in fields:
            result.add_warning(
                "REPLACES_FIELD",
                f"Relation '{prop}' replaces an existing field.",
                {"entity": plan.name, "property": prop},
            )
        elif prop in relations:
            result.add_info(
                "REDEFINES_RELATION",
                f"Relation '{prop}' already exists and will be regenerated.",
                {"entity": plan.name, "property": prop},
            )
    return result


def validate_config(config: GenerationConfig) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    if config.entity_dir.resolve() == config.repository_dir.resolve():
        result.add_warning(
            "SHARED_OUTPUT_DIR",
            "Entity and repository directories are the same; repositories "
            "will be listed as entities.",
            {"dir": str(config.entity_dir)},
        )
    return result


def validate_plan(
    plan: EntityPlan,
    known_entities: Optional[Iterable[str]] = None,
    resolver: Optional[RelationResolver] = None,
) -> ValidationResult:
    """Master validation entry point for a single entity plan."""
    logger.info(
        "Validating plan for %s (%d field(s), %d relation(s)).",
        plan.name,
        len(plan.fields),
        len(plan.relations),
    )
    res: RelationResolver = resolver or RelationResolver()
    result: ValidationResult = ValidationResult()
    result.merge(validate_entity_name(plan))
    result.merge(validate_fields(plan))
    result.merge(validate_duplicates(plan, res))
    result.merge(validate_relations(plan, known_entities, res))

    if plan.is_empty:
        result.add_warning(
            "EMPTY_PLAN",
            f"Nothing to add to '{plan.name}'.",
            {"entity": plan.name},
        )

    if result.has_errors:
        logger.error(
            "Validation FAILED for %s with %d error(s).",
            plan.name,
            result.error_count,
        )
    else:
        logger.info("Validation PASSED for %s. %s", plan.name, result.summary())
    return result


__all__: List[str] = [
    "ValidationIssue",
    "ValidationResult",
    "validate_entity_name",
    "validate_fields",
    "validate_relations",
    "validate_duplicates",
    "validate_existing_members",
    "validate_config",
    "validate_plan",
    "suggest_entities",
]

logger.debug("entigen.validators loaded.")
