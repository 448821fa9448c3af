# File: entigen/inverse_queue.py
"""
EntiGen - Inverse Queue
========================
Reciprocal relation properties are not written while the primary entity is
being mutated.  They are recorded as ``InverseQueueEntry`` intents and
applied in a second phase, once the primary file is safely on disk.

Draining groups entries by target entity (first-enqueued order) and
processes each target in isolation: a target that cannot be locked,
parsed or saved becomes a ``CrossFileError`` in its ``DrainResult`` and
the remaining targets are still processed.  Nothing is rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from entigen.errors import CrossFileError, EntigenError
from entigen.models import InverseQueueEntry
from entigen.mutators import RelationMutator
from entigen.source import ClassSource
from entigen.storage import EntityStore
from entigen.templates import PhpTemplates
from entigen.utils import Timer, short_class_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.inverse_queue")


@dataclass(slots=True)
class DrainResult:
    """Outcome of patching one target entity."""

    target: str
    properties: List[str] = field(default_factory=list)
    path: Optional[Path] = None
    created: bool = False
    error: Optional[CrossFileError] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.error is not None:
            return f"✗ {self.target}: {self.error}"
        props: str = ", ".join(f"${p}" for p in self.properties)
        action: str = "created" if self.created else "updated"
        return f"✓ {self.target} {action} ({props})"


class InverseQueue:
    """FIFO of pending reciprocal-relation declarations."""

    def __init__(self) -> None:
        self._entries: List[InverseQueueEntry] = []

    def enqueue(self, entry: InverseQueueEntry) -> None:
        """Record intent only; no file is touched."""
        self._entries.append(entry)
        logger.debug("Queued inverse %r", entry)

    @property
    def pending(self) -> List[InverseQueueEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _grouped(self) -> Dict[str, List[InverseQueueEntry]]:
        groups: Dict[str, List[InverseQueueEntry]] = {}
        for entry in self._entries:
            groups.setdefault(entry.target_entity_fqn, []).append(entry)
        return groups

    def drain(self, store: EntityStore, templates: PhpTemplates) -> List[DrainResult]:
        """Apply every queued entry, one isolated unit of work per target."""
        results: List[DrainResult] = []
        groups: Dict[str, List[InverseQueueEntry]] = self._grouped()
        self._entries = []

        for target, entries in groups.items():
            result = DrainResult(target=target)
            with Timer(f"drain {target}") as timer:
                try:
                    self._patch_target(store, templates, target, entries, result)
                except (EntigenError, OSError) as exc:
                    result.error = CrossFileError(target, exc)
                    logger.error("%s", result.error)
            result.duration_ms = round(timer.elapsed * 1000, 2)
            results.append(result)

        failed: int = sum(1 for r in results if not r.ok)
        logger.info(
            "Inverse queue drained: %d target(s), %d failed.", len(results), failed
        )
        return results

    @staticmethod
    def _patch_target(
        store: EntityStore,
        templates: PhpTemplates,
        target: str,
        entries: List[InverseQueueEntry],
        result: DrainResult,
    ) -> None:
        short_name: str = short_class_name(target)
        with store.lock(target):
            text: Optional[str] = store.read(target)
            if text is None:
                namespace: Optional[str] = (
                    target.rsplit("\\", 1)[0] if "\\" in target else None
                )
                text = templates.entity_stub(short_name, namespace)
                result.created = True
                logger.info("Creating inverse-side entity %s", short_name)

            source = ClassSource.parse(text, path=str(store.path_for(target)))
            mutator = RelationMutator(source, templates)
            for entry in entries:
                mutator.add_relation(
                    entry.to_relation_spec(), entry.back_reference_short_name
                )
                result.properties.append(entry.target_property_name)
            result.path = store.write(target, source.serialize())


__all__: List[str] = [
    "DrainResult",
    "InverseQueue",
]
