# File: entigen/resolver.py
"""
EntiGen - Relation Resolver
============================
Decides everything about a relation that the user did not spell out:

* the inverse kind (``oneToMany`` <-> ``manyToOne`` ...)
* which side owns the relation
* default property names (``comments`` for a ``oneToMany`` to ``Comment``)
* default join tables (``post_tag`` from either side)
* the ``InverseQueueEntry`` describing the reciprocal property

Ownership rule:

    manyToOne   always owning
    oneToMany   always inverse
    manyToMany  owning unless explicitly marked inverse
    oneToOne    owning unless explicitly marked inverse

An explicit ``owning`` flag that contradicts a fixed rule is rejected.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from entigen.errors import ValidationError
from entigen.models import GenerationConfig, InverseQueueEntry, JoinTable, RelationSpec
from entigen.registries import RELATION_KINDS, RelationKind
from entigen.utils import InflectionPluralizer, Pluralizer, lcfirst, short_class_name, to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.resolver")


class RelationResolver:
    """Fills in ownership and naming defaults for ``RelationSpec`` values."""

    def __init__(self, pluralizer: Optional[Pluralizer] = None) -> None:
        self._pluralizer: Pluralizer = pluralizer or InflectionPluralizer()

    # -----------------------------------------------------------------
    # Primitive decisions
    # -----------------------------------------------------------------

    def resolve_inverse(self, kind: object) -> RelationKind:
        return RELATION_KINDS.inverse(kind)

    def suggest_property_name(self, target_short_name: str, kind: object) -> str:
        """
        Lower-first target name, pluralised for collection kinds.

        >>> RelationResolver().suggest_property_name("Comment", "oneToMany")
        'comments'
        """
        relation_kind: RelationKind = RELATION_KINDS.require(kind)
        base: str = lcfirst(short_class_name(target_short_name))
        if relation_kind.is_collection:
            return self._pluralizer.pluralize(base)
        return base

    @staticmethod
    def default_join_table(self_name: str, target_name: str) -> JoinTable:
        """Symmetric table name; columns follow the calling side."""
        own: str = to_snake_case(short_class_name(self_name))
        other: str = to_snake_case(short_class_name(target_name))
        return JoinTable(
            name="_".join(sorted([own, other])),
            join_column=f"{own}_id",
            inverse_column=f"{other}_id",
        )

    @staticmethod
    def resolve_ownership(kind: RelationKind, owning: Optional[bool]) -> bool:
        """Apply the ownership rule; reject contradictory explicit flags."""
        if kind is RelationKind.MANY_TO_ONE:
            if owning is False:
                raise ValidationError(
                    "A manyToOne relation is always the owning side.",
                    code="OWNERSHIP_CONTRADICTION",
                    details={"kind": kind.value},
                )
            return True
        if kind is RelationKind.ONE_TO_MANY:
            if owning is True:
                raise ValidationError(
                    "A oneToMany relation is always the inverse side.",
                    code="OWNERSHIP_CONTRADICTION",
                    details={"kind": kind.value},
                )
            return False
        return owning is not False

    # -----------------------------------------------------------------
    # Spec resolution
    # -----------------------------------------------------------------

    def resolve(self, spec: RelationSpec, self_name: str) -> RelationSpec:
        """Return a copy of *spec* with every default filled in."""
        kind: RelationKind = RELATION_KINDS.require(spec.kind)
        target_short: str = spec.target_short_name
        is_owning: bool = self.resolve_ownership(kind, spec.owning)

        property_name: str = spec.property_name or self.suggest_property_name(
            target_short, kind
        )

        other_prop: Optional[str] = spec.other_prop
        if spec.generate_inverse and not other_prop:
            other_prop = self.suggest_property_name(
                self_name, self.resolve_inverse(kind)
            )

        join_table: Optional[JoinTable] = None
        if kind is RelationKind.MANY_TO_MANY and is_owning:
            join_table = spec.join_table or self.default_join_table(
                self_name, target_short
            )

        resolved: RelationSpec = spec.model_copy(
            update={
                "property_name": property_name,
                "kind": kind,
                "is_owning_side": is_owning,
                "other_prop": other_prop,
                "join_table": join_table,
                "nullable": False if kind.is_collection else spec.nullable,
            }
        )
        logger.debug(
            "Resolved %s.%s: %s -> %s (%s).",
            self_name,
            property_name,
            kind.value,
            target_short,
            "owning" if is_owning else "inverse",
        )
        return resolved

    def build_inverse_entry(
        self,
        spec: RelationSpec,
        self_name: str,
        config: Optional[GenerationConfig] = None,
    ) -> Optional[InverseQueueEntry]:
        """
        Reciprocal-side intent for a resolved *spec*, or ``None`` when no
        inverse was requested.
        """
        if not spec.generate_inverse:
            return None
        if not spec.property_name or not spec.other_prop:
            raise ValidationError(
                "Relation must be resolved before building its inverse.",
                code="UNRESOLVED_RELATION",
            )

        cfg: GenerationConfig = config or GenerationConfig()
        inverse_kind: RelationKind = self.resolve_inverse(spec.kind)
        owning_flag: bool = not spec.is_owning_side
        target_short: str = spec.target_short_name

        join_table: Optional[JoinTable] = None
        if inverse_kind is RelationKind.MANY_TO_MANY and owning_flag:
            join_table = self.default_join_table(target_short, self_name)

        return InverseQueueEntry(
            target_entity_fqn=cfg.entity_fqn(spec.target),
            target_property_name=spec.other_prop,
            inverse_kind=inverse_kind,
            back_reference_fqn=cfg.entity_fqn(self_name),
            other_prop=spec.property_name,
            owning_flag=owning_flag,
            join_table=join_table,
            is_inverse_one_to_one=(
                inverse_kind is RelationKind.ONE_TO_ONE and not owning_flag
            ),
        )


__all__: List[str] = [
    "RelationResolver",
]
