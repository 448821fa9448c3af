"""
tests/test_inverse_queue.py
Unit tests for entigen.inverse_queue: deferred reciprocal declarations,
per-target grouping and cross-file error isolation.
"""

from __future__ import annotations

import pathlib

import pytest

from entigen.errors import (
    ConcurrentModificationError,
    CrossFileError,
    StructuralParseError,
)
from entigen.inverse_queue import DrainResult, InverseQueue
from entigen.models import GenerationConfig, InverseQueueEntry
from entigen.storage import EntityStore
from entigen.templates import PhpTemplates


def _entry(target: str, prop: str, kind: str = "manyToOne", **extra) -> InverseQueueEntry:
    data = dict(
        target_entity_fqn=f"App\\Entity\\{target}",
        target_property_name=prop,
        inverse_kind=kind,
        back_reference_fqn="App\\Entity\\Post",
        other_prop="comments",
        owning_flag=True,
    )
    data.update(extra)
    return InverseQueueEntry(**data)


@pytest.fixture()
def queue() -> InverseQueue:
    return InverseQueue()


class TestEnqueue:
    def test_enqueue_touches_no_files(
        self, queue: InverseQueue, entity_dir: pathlib.Path
    ) -> None:
        queue.enqueue(_entry("Comment", "post"))
        assert len(queue) == 1
        assert list(entity_dir.iterdir()) == []

    def test_pending_is_a_copy(self, queue: InverseQueue) -> None:
        queue.enqueue(_entry("Comment", "post"))
        queue.pending.clear()
        assert len(queue) == 1


class TestDrain:
    def test_missing_target_is_created(
        self, queue: InverseQueue, store: EntityStore, templates: PhpTemplates
    ) -> None:
        queue.enqueue(_entry("Comment", "post"))
        results = queue.drain(store, templates)

        assert len(results) == 1
        result = results[0]
        assert result.ok and result.created
        assert result.properties == ["post"]
        text = store.read("Comment")
        assert text is not None
        assert "namespace App\\Entity;" in text
        assert "#[ManyToOne(targetEntity: Post::class, inversedBy: 'comments')]" in text
        assert "public ?Post $post = null;" in text
        assert "public function setPost(?Post $post): self" in text
        assert len(queue) == 0

    def test_existing_target_is_patched(
        self,
        queue: InverseQueue,
        store: EntityStore,
        templates: PhpTemplates,
        write_entity,
    ) -> None:
        write_entity("Comment", templates.entity_stub("Comment"))
        queue.enqueue(_entry("Comment", "post"))
        result = queue.drain(store, templates)[0]
        assert result.ok
        assert not result.created
        assert store.read("Comment").count("class Comment") == 1

    def test_entries_are_grouped_by_target(
        self, queue: InverseQueue, store: EntityStore, templates: PhpTemplates
    ) -> None:
        queue.enqueue(_entry("Comment", "post"))
        queue.enqueue(
            _entry("Tag", "posts", "manyToMany", other_prop="tags", owning_flag=False)
        )
        queue.enqueue(_entry("Comment", "reviewedPost", other_prop="reviews"))
        results = queue.drain(store, templates)

        assert [r.target for r in results] == ["App\\Entity\\Comment", "App\\Entity\\Tag"]
        assert results[0].properties == ["post", "reviewedPost"]
        tag = store.read("Tag")
        assert "#[ManyToMany(targetEntity: Post::class, mappedBy: 'tags')]" in tag
        assert "$this->posts = [];" in tag

    def test_unparseable_target_is_isolated(
        self,
        queue: InverseQueue,
        store: EntityStore,
        templates: PhpTemplates,
        write_entity,
    ) -> None:
        write_entity("Comment", "<?php\n$comment = 1;\n")
        queue.enqueue(_entry("Comment", "post"))
        queue.enqueue(_entry("Author", "post"))
        broken, author = queue.drain(store, templates)

        assert not broken.ok
        assert isinstance(broken.error, CrossFileError)
        assert isinstance(broken.error.cause, StructuralParseError)
        assert store.read("Comment") == "<?php\n$comment = 1;\n"
        assert author.ok
        assert store.exists("Author")

    def test_locked_target_is_isolated(
        self, queue: InverseQueue, store: EntityStore, templates: PhpTemplates
    ) -> None:
        lock = store.lock_path_for("Comment")
        lock.write_text("12345", encoding="utf-8")
        queue.enqueue(_entry("Comment", "post"))
        queue.enqueue(_entry("Author", "post"))
        locked, author = queue.drain(store, templates)

        assert isinstance(locked.error.cause, ConcurrentModificationError)
        assert not store.exists("Comment")
        assert lock.exists()
        assert author.ok

    def test_locks_are_released(
        self,
        queue: InverseQueue,
        store: EntityStore,
        templates: PhpTemplates,
        entity_dir: pathlib.Path,
    ) -> None:
        queue.enqueue(_entry("Comment", "post"))
        queue.drain(store, templates)
        assert list(entity_dir.glob("*.lock")) == []

    def test_dry_run_writes_nothing(
        self, queue: InverseQueue, config: GenerationConfig, entity_dir: pathlib.Path
    ) -> None:
        dry = config.model_copy(update={"dry_run": True})
        queue.enqueue(_entry("Comment", "post"))
        result = queue.drain(EntityStore(dry), PhpTemplates(dry))[0]
        assert result.ok and result.created
        assert list(entity_dir.iterdir()) == []


class TestDrainResult:
    def test_str(self) -> None:
        ok = DrainResult(target="App\\Entity\\Comment", properties=["post"], created=True)
        assert str(ok) == "✓ App\\Entity\\Comment created ($post)"
        failed = DrainResult(
            target="Tag",
            error=CrossFileError("Tag", OSError("disk full")),
        )
        assert not failed.ok
        assert str(failed).startswith("✗ Tag: Could not patch inverse side in 'Tag'")
