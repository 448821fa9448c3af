# File: entigen/__init__.py
"""
EntiGen - Incremental Entity Class Generator
=============================================

Adds scalar fields and bidirectional relations to PHP entity classes, and
keeps re-running safely against files it generated before.

Architecture overview::

    ┌──────────────┐     ┌────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ EntityGenerator │────▶│ PropertyMutator  │
    │   (cli.py)   │     │ (generator.py)  │     │ RelationMutator  │
    └──────────────┘     └───────┬────────┘     └────────┬─────────┘
                                 │                       │
                    ┌────────────┼────────────┐          ▼
                    ▼            ▼            ▼    ┌────────────┐
             ┌──────────┐ ┌───────────┐ ┌────────┐ │ClassSource │
             │validators│ │ resolver  │ │ storage│ │ (source.py)│
             └──────────┘ └───────────┘ └────────┘ └────────────┘

Usage::

    # As a library
    from entigen import EntityGenerator, EntityPlan, GenerationConfig
    report = EntityGenerator(GenerationConfig()).generate(
        EntityPlan(name="Post", fields=[{"name": "title", "type": "string"}])
    )

    # From the command line
    python -m entigen make Post --field title:string -v

Public API:
    - EntityGenerator    - Per-entity orchestrator
    - GenerationConfig   - Generation settings model
    - EntityPlan         - What to add to one entity
    - ClassSource        - Parsed, mutable entity class
    - RelationResolver   - Ownership and naming defaults
    - validate_plan      - Plan validation entry point
"""

from __future__ import annotations

__version__: str = "1.0.0"
__author__: str = "EntiGen Team"
__license__: str = "MIT"

from entigen.errors import (
    ConcurrentModificationError,
    CrossFileError,
    EntigenError,
    StructuralParseError,
    ValidationError,
)
from entigen.models import (
    EntityPlan,
    FieldSpec,
    GenerationConfig,
    InverseQueueEntry,
    JoinTable,
    RelationSpec,
)
from entigen.registries import FIELD_TYPES, RELATION_KINDS, FieldType, RelationKind
from entigen.resolver import RelationResolver
from entigen.source import ClassSource, parse_source
from entigen.mutators import PropertyMutator, RelationMutator
from entigen.inverse_queue import DrainResult, InverseQueue
from entigen.storage import EntityStore
from entigen.validators import ValidationResult, validate_plan
from entigen.generator import (
    EntityGenerator,
    GenerationPhase,
    GenerationReport,
    load_plan_file,
    parse_raw_plan,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Orchestrator
    "EntityGenerator",
    "GenerationPhase",
    "GenerationReport",
    "load_plan_file",
    "parse_raw_plan",
    # Models
    "EntityPlan",
    "FieldSpec",
    "GenerationConfig",
    "InverseQueueEntry",
    "JoinTable",
    "RelationSpec",
    # Registries
    "FIELD_TYPES",
    "RELATION_KINDS",
    "FieldType",
    "RelationKind",
    # Components
    "RelationResolver",
    "ClassSource",
    "parse_source",
    "PropertyMutator",
    "RelationMutator",
    "InverseQueue",
    "DrainResult",
    "EntityStore",
    # Validation
    "validate_plan",
    "ValidationResult",
    # Errors
    "EntigenError",
    "ValidationError",
    "StructuralParseError",
    "CrossFileError",
    "ConcurrentModificationError",
]
