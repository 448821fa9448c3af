"""
tests/conftest.py
Shared fixtures for the entigen test suite.

No external mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixture.
"""

from __future__ import annotations

import copy
import pathlib
import textwrap
from typing import Any, Dict

import pytest
import yaml

from entigen.generator import EntityGenerator
from entigen.models import GenerationConfig
from entigen.storage import EntityStore
from entigen.templates import PhpTemplates


# ---------------------------------------------------------------------------
# Configuration and collaborators
# ---------------------------------------------------------------------------


@pytest.fixture()
def entity_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "app" / "Entity"
    path.mkdir(parents=True)
    return path


@pytest.fixture()
def config(tmp_path: pathlib.Path, entity_dir: pathlib.Path) -> GenerationConfig:
    """Config writing into the temporary project."""
    return GenerationConfig(
        entity_dir=entity_dir,
        repository_dir=tmp_path / "app" / "Repository",
    )


@pytest.fixture()
def store(config: GenerationConfig) -> EntityStore:
    return EntityStore(config)


@pytest.fixture()
def templates(config: GenerationConfig) -> PhpTemplates:
    return PhpTemplates(config)


@pytest.fixture()
def generator(config: GenerationConfig, store: EntityStore) -> EntityGenerator:
    return EntityGenerator(config, store=store)


# ---------------------------------------------------------------------------
# PHP sources
# ---------------------------------------------------------------------------


@pytest.fixture()
def post_stub(templates: PhpTemplates) -> str:
    """The freshly generated ``Post`` entity."""
    return templates.entity_stub("Post")


@pytest.fixture()
def hand_written_post() -> str:
    """An entity with hand-written code the generator must not disturb."""
    return textwrap.dedent(
        """\
        <?php
        declare(strict_types=1);

        namespace App\\Entity;

        use MonkeysLegion\\Entity\\Attributes\\Entity;
        use MonkeysLegion\\Entity\\Attributes\\Field;

        /**
         * A blog post.
         */
        #[Entity(table: 'posts')]
        final class Post
        {
            public const STATUS_DRAFT = 'draft';

            /** Primary key. */
            #[Field(type: 'INT', autoIncrement: true, primaryKey: true)]
            public int $id;

            #[Field(type: 'string', length: 120)]
            public string $title; // shown in listings

            public function __construct()
            {
                // keep me
                $this->title = "Untitled {draft}";
            }

            public function getId(): int
            {
                return $this->id;
            }

            public function slug(): string
            {
                $map = ['{' => '', '}' => ''];
                return strtr(strtolower($this->title), $map);
            }
        }
        """
    )


@pytest.fixture()
def write_entity(store: EntityStore):
    """Write raw PHP text as an entity file and return its path."""

    def _write(name: str, text: str) -> pathlib.Path:
        path = store.path_for(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Plan files
# ---------------------------------------------------------------------------


@pytest.fixture()
def blog_plan_dict(config: GenerationConfig) -> Dict[str, Any]:
    """A two-entity plan: Post with fields and relations, then Tag."""
    return {
        "config": {
            "entity_dir": str(config.entity_dir),
            "repository_dir": str(config.repository_dir),
        },
        "entities": [
            {
                "name": "Post",
                "fields": [
                    {"name": "title", "type": "string"},
                    {"name": "publishedAt", "type": "datetime", "nullable": True},
                ],
                "relations": [
                    {
                        "property": "comments",
                        "kind": "oneToMany",
                        "target": "Comment",
                        "generate_inverse": True,
                    },
                    {
                        "kind": "manyToMany",
                        "target": "Tag",
                        "generate_inverse": True,
                    },
                ],
            },
            {
                "name": "Tag",
                "fields": [{"name": "label", "type": "string"}],
            },
        ],
    }


@pytest.fixture()
def plan_yaml_path(blog_plan_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    """Write the plan dict to a temporary YAML file and return its path."""
    path = tmp_path / "plan.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(copy.deepcopy(blog_plan_dict), fh, default_flow_style=False)
    return path
