# File: entigen/models.py
"""
EntiGen - Core Data Models
===========================
Pydantic V2 models for everything that flows through the pipeline:

    Plan file / CLI → EntityPlan (FieldSpec, RelationSpec)
                    → RelationResolver → InverseQueueEntry
                    → mutators → saved entity files

The models enforce *structure* (known enum members, required keys, types).
Cross-entity semantics (identifier rules, duplicates, ownership
contradictions) live in ``entigen.validators`` and ``entigen.resolver``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from entigen.registries import (
    FIELD_TYPES,
    RELATION_KINDS,
    FieldType,
    RelationKind,
)
from entigen.utils import qualify_class_name, short_class_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.models")


# ---------------------------------------------------------------------------
# Shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    frozen=False,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Relation primitives
# ---------------------------------------------------------------------------


class JoinTable(BaseModel):
    """Join table of a many-to-many relation, declared on the owning side."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Join table name.")
    join_column: str = Field(
        ..., min_length=1, description="FK column pointing at the owning entity."
    )
    inverse_column: str = Field(
        ..., min_length=1, description="FK column pointing at the target entity."
    )

    def __repr__(self) -> str:
        return f"<JoinTable {self.name}({self.join_column}, {self.inverse_column})>"


# ---------------------------------------------------------------------------
# Field / relation specifications
# ---------------------------------------------------------------------------


class FieldSpec(BaseModel):
    """A scalar ``#[Field]`` property to add to (or replace in) an entity."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Property name.")
    db_type: FieldType = Field(..., alias="type", description="Database type.")
    nullable: bool = Field(default=False, description="Column allows NULL?")

    @field_validator("db_type", mode="before")
    @classmethod
    def _known_db_type(cls, v: Any) -> FieldType:
        field_type: Optional[FieldType] = FIELD_TYPES.lookup(v)
        if field_type is None:
            raise ValueError(f"Unknown field type '{v}'.")
        return field_type

    @computed_field  # type: ignore[misc]
    @property
    def php_type(self) -> str:
        return FIELD_TYPES.php_type(self.db_type)

    def __repr__(self) -> str:
        suffix: str = "?" if self.nullable else ""
        return f"<FieldSpec {self.name}: {self.db_type.value}{suffix}>"


class RelationSpec(BaseModel):
    """
    A relationship property on the entity being generated.

    ``owning`` records what the user asked for (``None`` = no preference);
    ``is_owning_side`` is what ``RelationResolver.resolve`` decided.
    """

    model_config = _SHARED_CONFIG

    property_name: Optional[str] = Field(
        default=None,
        alias="property",
        description="Property name; suggested from the target when omitted.",
    )
    kind: RelationKind = Field(..., description="Relation cardinality.")
    target: str = Field(
        ..., min_length=1, description="Target entity short name or FQCN."
    )
    owning: Optional[bool] = Field(
        default=None, description="Explicit owning/inverse choice, if any."
    )
    is_owning_side: bool = Field(
        default=True, description="Resolved ownership of this side."
    )
    other_prop: Optional[str] = Field(
        default=None,
        description="Reciprocal property name on the target (mappedBy/inversedBy).",
    )
    generate_inverse: bool = Field(
        default=False, description="Also declare the reciprocal property."
    )
    join_table: Optional[JoinTable] = Field(
        default=None, description="Join table (owning many-to-many only)."
    )
    nullable: bool = Field(
        default=False, description="Nullable reference (never for collections)."
    )

    @model_validator(mode="before")
    @classmethod
    def _normalise(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kind: Optional[RelationKind] = RELATION_KINDS.lookup(data.get("kind"))
        if kind is not None:
            data["kind"] = kind
            if kind.is_collection:
                data["nullable"] = False
        return data

    @computed_field  # type: ignore[misc]
    @property
    def target_short_name(self) -> str:
        return short_class_name(self.target)

    @computed_field  # type: ignore[misc]
    @property
    def is_collection(self) -> bool:
        return self.kind.is_collection

    def __repr__(self) -> str:
        side: str = "owning" if self.is_owning_side else "inverse"
        return (
            f"<RelationSpec {self.property_name}: {self.kind.value} "
            f"→ {self.target} ({side})>"
        )


class InverseQueueEntry(BaseModel):
    """A pending reciprocal-relation declaration for another entity file."""

    model_config = _SHARED_CONFIG

    target_entity_fqn: str = Field(..., min_length=1)
    target_property_name: str = Field(..., min_length=1)
    inverse_kind: RelationKind
    back_reference_fqn: str = Field(..., min_length=1)
    other_prop: Optional[str] = None
    owning_flag: bool = False
    join_table: Optional[JoinTable] = None
    is_inverse_one_to_one: bool = False
    nullable: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def target_short_name(self) -> str:
        return short_class_name(self.target_entity_fqn)

    @computed_field  # type: ignore[misc]
    @property
    def back_reference_short_name(self) -> str:
        return short_class_name(self.back_reference_fqn)

    def to_relation_spec(self) -> RelationSpec:
        """The relation to declare on ``target_entity_fqn``."""
        return RelationSpec(
            property_name=self.target_property_name,
            kind=self.inverse_kind,
            target=self.back_reference_fqn,
            owning=self.owning_flag,
            is_owning_side=self.owning_flag,
            other_prop=self.other_prop,
            join_table=self.join_table if self.owning_flag else None,
            nullable=self.nullable,
        )

    def __repr__(self) -> str:
        return (
            f"<InverseQueueEntry {self.target_short_name}."
            f"{self.target_property_name}: {self.inverse_kind.value}>"
        )


# ---------------------------------------------------------------------------
# Entity plan
# ---------------------------------------------------------------------------


class EntityPlan(BaseModel):
    """Everything one invocation should add to a single entity."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Entity short name.")
    fields: List[FieldSpec] = Field(default_factory=list)
    relations: List[RelationSpec] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def is_empty(self) -> bool:
        return not self.fields and not self.relations

    def __repr__(self) -> str:
        return (
            f"<EntityPlan {self.name}: {len(self.fields)} field(s), "
            f"{len(self.relations)} relation(s)>"
        )


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """Where entity files live and how they are written."""

    model_config = _SHARED_CONFIG

    entity_dir: Path = Field(
        default=Path("app/Entity"), description="Directory of entity classes."
    )
    repository_dir: Path = Field(
        default=Path("app/Repository"), description="Directory of repositories."
    )
    entity_namespace: str = Field(default="App\\Entity")
    repository_namespace: str = Field(default="App\\Repository")
    attribute_namespace: str = Field(default="MonkeysLegion\\Entity\\Attributes")
    repository_base_class: str = Field(
        default="MonkeysLegion\\Repository\\EntityRepository"
    )
    generate_repository: bool = Field(
        default=True, description="Create a repository stub for new entities."
    )
    indent_size: int = Field(default=4, ge=2, le=8)
    atomic_writes: bool = Field(default=True)
    lock_files: bool = Field(default=True)
    dry_run: bool = Field(default=False, description="Never write to disk.")

    @field_validator("entity_namespace", "repository_namespace", "attribute_namespace")
    @classmethod
    def _strip_namespace(cls, v: str) -> str:
        stripped: str = v.strip().strip("\\")
        if not stripped:
            raise ValueError("Namespace must not be empty.")
        return stripped

    @computed_field  # type: ignore[misc]
    @property
    def indent(self) -> str:
        return " " * self.indent_size

    def entity_fqn(self, name: str) -> str:
        return qualify_class_name(name, self.entity_namespace)


__all__: List[str] = [
    "JoinTable",
    "FieldSpec",
    "RelationSpec",
    "InverseQueueEntry",
    "EntityPlan",
    "GenerationConfig",
]

logger.debug("entigen.models loaded.")
