# File: entigen/generator.py
"""
EntiGen - Generation Orchestrator
==================================
Connects every component for one entity at a time:

    EntityPlan → validate → load/stub → resolve → mutate → save → inverse drain

Workflow per entity (``GenerationPhase``)::

    IDLE
      → LOAD_OR_CREATE_PRIMARY   lock + read the file, or render a stub
      → COLLECT_SPECS            resolve relations, queue inverse sides
      → MUTATE_PRIMARY           apply fields and relations to the class
      → SAVE_PRIMARY             serialize + atomic write (+ repository stub)
      → DRAIN_INVERSE_QUEUE      patch every related entity file
      → DONE                     (or FAILED)

Error handling strategy:
    - Validation errors are collected before anything is read or written.
    - Errors up to MUTATE_PRIMARY abort the entity; nothing is saved.
    - Inverse-side failures are isolated per target and reported; the
      saved primary file is never rolled back.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from pydantic import ValidationError as PydanticValidationError

from entigen.errors import (
    ConcurrentModificationError,
    EntigenError,
    StructuralParseError,
    ValidationError,
)
from entigen.inverse_queue import DrainResult, InverseQueue
from entigen.models import EntityPlan, GenerationConfig, InverseQueueEntry, RelationSpec
from entigen.mutators import PropertyMutator, RelationMutator
from entigen.resolver import RelationResolver
from entigen.source import ClassSource
from entigen.storage import EntityStore
from entigen.templates import PhpTemplates
from entigen.utils import Pluralizer, Timer
from entigen.validators import (
    ValidationResult,
    validate_config,
    validate_existing_members,
    validate_plan,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.generator")


class GenerationPhase(str, Enum):
    IDLE = "idle"
    LOAD_OR_CREATE_PRIMARY = "load_or_create_primary"
    COLLECT_SPECS = "collect_specs"
    MUTATE_PRIMARY = "mutate_primary"
    SAVE_PRIMARY = "save_primary"
    DRAIN_INVERSE_QUEUE = "drain_inverse_queue"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """Outcome of ``EntityGenerator.generate()`` for one entity."""

    success: bool = False
    entity: str = ""
    phase: GenerationPhase = GenerationPhase.IDLE
    entity_path: str = ""
    created: bool = False
    dry_run: bool = False
    total_elapsed_seconds: float = 0.0

    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)
    inverse_results: List[DrainResult] = field(default_factory=list)
    written_files: List[str] = field(default_factory=list)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        action: str = "created" if self.created else "updated"
        lines.append(f"{'='*60}")
        lines.append(f"  EntiGen: {self.entity}")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:   {status}" + ("  (dry run)" if self.dry_run else ""))
        lines.append(f"  Phase:    {self.phase.value}")
        if self.entity_path:
            lines.append(f"  File:     {self.entity_path} ({action})")
        lines.append(f"  Time:     {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections: List[Tuple[str, str, List[str]]] = [
            ("Validation Errors", "✗", self.validation_errors),
            ("Validation Warnings", "⚠", self.validation_warnings),
            ("Generation Errors", "✗", self.generation_errors),
            ("Export Errors", "✗", self.export_errors),
        ]
        for title, icon, items in sections:
            if items:
                lines.append(f"{'─'*60}")
                lines.append(f"  {title} ({len(items)}):")
                for item in items:
                    lines.append(f"    {icon} {item}")

        if self.inverse_results:
            lines.append(f"{'─'*60}")
            lines.append(f"  Inverse Sides ({len(self.inverse_results)}):")
            for result in self.inverse_results:
                lines.append(f"    {result}")

        if self.written_files:
            lines.append(f"{'─'*60}")
            lines.append(f"  Files Written ({len(self.written_files)}):")
            for path in self.written_files:
                lines.append(f"    • {path}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Plan loader helpers
# ---------------------------------------------------------------------------


def _load_json_file(path: Path) -> Dict[str, Any]:
    """Load and parse a JSON file. Raises ValueError on parse errors."""
    try:
        text: str = path.read_text(encoding="utf-8")
        data: Any = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a JSON object at top level, got {type(data).__name__}."
            )
        return data
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def _load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML file. Raises ValueError on parse errors."""
    try:
        text: str = path.read_text(encoding="utf-8")
        data: Any = yaml.safe_load(text)
        if not isinstance(data, dict):
            raise ValueError(
                f"Expected a YAML mapping at top level, got {type(data).__name__}."
            )
        return data
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc


def load_plan_file(path: Path) -> Dict[str, Any]:
    """
    Load a plan file (JSON or YAML), dispatching on the file extension.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Plan file not found: {path}")

    if not path.is_file():
        raise ValueError(f"Plan path is not a file: {path}")

    suffix: str = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        return _load_yaml_file(path)
    elif suffix == ".json":
        return _load_json_file(path)
    else:
        logger.info("Unknown extension '%s', trying JSON then YAML.", suffix)
        try:
            return _load_json_file(path)
        except ValueError:
            return _load_yaml_file(path)


def parse_raw_plan(raw: Dict[str, Any]) -> Tuple[List[EntityPlan], GenerationConfig]:
    """
    Parse a raw dictionary (from JSON/YAML) into validated models.

    Expected top-level keys:
        - ``entities`` (list of entity plans) or ``entity`` (a single one)
        - ``config`` (optional generation settings)

    Raises:
        ValueError: If required keys are missing or model validation fails.
    """
    entity_data: List[Any]
    if "entities" in raw:
        entity_data = raw["entities"]
        if not isinstance(entity_data, list):
            raise ValueError("'entities' must be a list of entity plans.")
    elif "entity" in raw:
        entity_data = [raw["entity"]]
    else:
        raise ValueError(
            "Cannot find entity plans in input. "
            "Expected top-level key: 'entities' or 'entity'."
        )

    config_data: Any = raw.get("config")
    if config_data is None:
        logger.info("No generation config found in input, using defaults.")
        config_data = {}

    try:
        plans: List[EntityPlan] = [EntityPlan.model_validate(e) for e in entity_data]
    except PydanticValidationError as exc:
        raise ValueError(f"Plan validation failed: {exc}") from exc

    try:
        config: GenerationConfig = GenerationConfig.model_validate(config_data)
    except PydanticValidationError as exc:
        raise ValueError(f"Config validation failed: {exc}") from exc

    return plans, config


# ---------------------------------------------------------------------------
# EntityGenerator
# ---------------------------------------------------------------------------


class EntityGenerator:
    """
    Per-entity pipeline orchestrator.

    Usage::

        generator = EntityGenerator(GenerationConfig(entity_dir=Path("app/Entity")))
        report = generator.generate(plan)
        print(report.summary())

    The generator is reusable: create once, call ``generate()`` many times.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        *,
        store: Optional[EntityStore] = None,
        pluralizer: Optional[Pluralizer] = None,
    ) -> None:
        self.config: GenerationConfig = config or GenerationConfig()
        self.store: EntityStore = store or EntityStore(self.config)
        self.resolver: RelationResolver = RelationResolver(pluralizer)
        self.templates: PhpTemplates = PhpTemplates(self.config)

        logger.debug(
            "EntityGenerator initialised (entity_dir=%s, dry_run=%s).",
            self.config.entity_dir,
            self.config.dry_run,
        )

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def validate(self, plan: EntityPlan) -> ValidationResult:
        """Validation only; touches no file."""
        result: ValidationResult = validate_plan(
            plan, self.store.list_entities(), self.resolver
        )
        result.merge(validate_config(self.config))
        return result

    def generate(self, plan: EntityPlan) -> GenerationReport:
        """Run the full state machine for *plan*."""
        report: GenerationReport = GenerationReport(
            entity=plan.name, dry_run=self.config.dry_run
        )
        start: float = time.perf_counter()
        written_before: int = len(self.store.written)

        if self._step_validate(plan, report):
            queue: InverseQueue = InverseQueue()
            if self._run_primary(plan, report, queue):
                self._step_drain(queue, report)

        report.written_files = [str(p) for p in self.store.written[written_before:]]
        return self._finalise_report(report, time.perf_counter() - start)

    def generate_all(self, plans: Sequence[EntityPlan]) -> List[GenerationReport]:
        """Generate each plan in order; a failed entity does not stop the rest."""
        reports: List[GenerationReport] = []
        for plan in plans:
            reports.append(self.generate(plan))
        return reports

    @classmethod
    def generate_from_file(
        cls,
        plan_path: Path,
        *,
        config_overrides: Optional[Dict[str, Any]] = None,
    ) -> List[GenerationReport]:
        """
        Load a plan file and generate every entity in it.

        Raises:
            FileNotFoundError / ValueError: the file cannot be loaded or
                does not describe valid plans.
        """
        raw_data: Dict[str, Any] = load_plan_file(plan_path)
        if config_overrides:
            config_section: Any = raw_data.get("config")
            if not isinstance(config_section, dict):
                config_section = {}
                raw_data["config"] = config_section
            config_section.update(config_overrides)

        plans, config = parse_raw_plan(raw_data)
        logger.info("Loaded %d plan(s) from %s.", len(plans), plan_path)
        return cls(config).generate_all(plans)

    # -----------------------------------------------------------------
    # Pipeline steps
    # -----------------------------------------------------------------

    def _record(
        self,
        report: GenerationReport,
        name: str,
        timer: Timer,
        success: bool,
        detail: str = "",
    ) -> None:
        report.step_metrics.append(GenerationStepMetric(
            step_name=name,
            success=success,
            elapsed_seconds=timer.elapsed,
            detail=detail,
        ))

    def _step_validate(self, plan: EntityPlan, report: GenerationReport) -> bool:
        with Timer(f"validate {plan.name}") as t:
            result: ValidationResult = self.validate(plan)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            self._record(report, "Validate", t, False, f"{result.error_count} error(s)")
            for err in result.errors:
                logger.error("  ✗ %s", err)
            report.phase = GenerationPhase.FAILED
            return False

        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        detail: str = (
            f"{result.warning_count} warning(s)" if result.has_warnings
            else "all checks passed"
        )
        self._record(report, "Validate", t, True, detail)
        return True

    def _run_primary(
        self,
        plan: EntityPlan,
        report: GenerationReport,
        queue: InverseQueue,
    ) -> bool:
        """Lock, load, mutate and save the primary entity file."""
        store: EntityStore = self.store
        report.entity_path = str(store.path_for(plan.name))
        try:
            with store.lock(plan.name):
                source: ClassSource = self._step_load(plan, report)
                resolved: List[RelationSpec] = self._step_collect(
                    plan, source, report, queue
                )
                self._step_mutate(plan, source, resolved, report)
                self._step_save(plan, source, report)
        except ValidationError as exc:
            report.validation_errors.append(str(exc))
            return self._fail(report, exc)
        except (StructuralParseError, ConcurrentModificationError) as exc:
            report.generation_errors.append(str(exc))
            return self._fail(report, exc)
        except (EntigenError, OSError) as exc:
            if report.phase is GenerationPhase.SAVE_PRIMARY:
                report.export_errors.append(f"Could not save {plan.name}: {exc}")
            else:
                report.generation_errors.append(str(exc))
            return self._fail(report, exc)
        return True

    def _fail(self, report: GenerationReport, exc: BaseException) -> bool:
        logger.error(
            "%s failed during %s: %s", report.entity, report.phase.value, exc
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name=report.phase.value,
            success=False,
            detail=str(exc),
        ))
        report.phase = GenerationPhase.FAILED
        return False

    def _step_load(self, plan: EntityPlan, report: GenerationReport) -> ClassSource:
        report.phase = GenerationPhase.LOAD_OR_CREATE_PRIMARY
        with Timer(f"load {plan.name}") as t:
            text: Optional[str] = self.store.read(plan.name)
            if text is None:
                report.created = True
                text = self.templates.entity_stub(plan.name)
                logger.info("Entity %s does not exist, starting from a stub.", plan.name)
            source: ClassSource = ClassSource.parse(text, path=report.entity_path)
        self._record(
            report,
            "Load" if not report.created else "Create Stub",
            t,
            True,
            f"{len(source.properties())} properties, {len(source.methods())} methods",
        )
        return source

    def _step_collect(
        self,
        plan: EntityPlan,
        source: ClassSource,
        report: GenerationReport,
        queue: InverseQueue,
    ) -> List[RelationSpec]:
        report.phase = GenerationPhase.COLLECT_SPECS
        with Timer(f"collect {plan.name}") as t:
            existing: ValidationResult = validate_existing_members(
                plan, source.fields(), source.relations(), self.resolver
            )
            report.validation_warnings.extend(str(w) for w in existing.warnings)

            resolved: List[RelationSpec] = []
            for spec in plan.relations:
                relation: RelationSpec = self.resolver.resolve(spec, plan.name)
                resolved.append(relation)
                entry: Optional[InverseQueueEntry] = self.resolver.build_inverse_entry(
                    relation, plan.name, self.config
                )
                if entry is not None:
                    queue.enqueue(entry)
        self._record(
            report,
            "Collect Specs",
            t,
            True,
            f"{len(resolved)} relation(s), {len(queue)} inverse side(s) queued",
        )
        return resolved

    def _step_mutate(
        self,
        plan: EntityPlan,
        source: ClassSource,
        relations: List[RelationSpec],
        report: GenerationReport,
    ) -> None:
        report.phase = GenerationPhase.MUTATE_PRIMARY
        with Timer(f"mutate {plan.name}") as t:
            fields = PropertyMutator(source, self.templates)
            for spec in plan.fields:
                fields.add_scalar_field(
                    spec.name, spec.db_type, spec.php_type, spec.nullable
                )
            relation_mutator = RelationMutator(source, self.templates)
            for relation in relations:
                relation_mutator.add_relation(relation)
        self._record(
            report,
            "Mutate",
            t,
            True,
            f"{len(plan.fields)} field(s), {len(relations)} relation(s)",
        )

    def _step_save(
        self, plan: EntityPlan, source: ClassSource, report: GenerationReport
    ) -> None:
        report.phase = GenerationPhase.SAVE_PRIMARY
        with Timer(f"save {plan.name}") as t:
            self.store.write(plan.name, source.serialize())
            if report.created and self.config.generate_repository:
                self.store.write_repository_stub(
                    plan.name, self.templates.repository_stub(plan.name)
                )
        self._record(report, "Save", t, True, report.entity_path)

    def _step_drain(self, queue: InverseQueue, report: GenerationReport) -> None:
        report.phase = GenerationPhase.DRAIN_INVERSE_QUEUE
        if not len(queue):
            report.phase = GenerationPhase.DONE
            return

        with Timer("drain inverse queue") as t:
            results: List[DrainResult] = queue.drain(self.store, self.templates)
        report.inverse_results.extend(results)
        failed: List[DrainResult] = [r for r in results if not r.ok]
        report.export_errors.extend(str(r.error) for r in failed)
        self._record(
            report,
            "Drain Inverse Queue",
            t,
            not failed,
            f"{len(results)} target(s), {len(failed)} failed",
        )
        report.phase = GenerationPhase.DONE

    def _finalise_report(
        self, report: GenerationReport, total_elapsed: float
    ) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        if report.phase not in (GenerationPhase.FAILED, GenerationPhase.DONE):
            report.phase = GenerationPhase.DONE
        report.success = not (
            report.validation_errors
            or report.generation_errors
            or report.export_errors
        )
        if report.success:
            logger.info("%s generated in %.3fs.", report.entity, total_elapsed)
        return report


__all__: List[str] = [
    "EntityGenerator",
    "GenerationPhase",
    "GenerationReport",
    "GenerationStepMetric",
    "load_plan_file",
    "parse_raw_plan",
]

logger.debug("entigen.generator loaded.")
