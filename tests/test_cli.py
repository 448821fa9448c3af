"""
tests/test_cli.py
Tests for entigen.cli: argument parsing helpers, every subcommand and the
exit-code contract.
"""

from __future__ import annotations

import pathlib
from typing import List

import pytest

from entigen.cli import (
    EXIT_EXPORT_ERROR,
    EXIT_GENERATION_ERROR,
    EXIT_INPUT_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_ERROR,
    parse_field_arg,
    parse_relation_arg,
    run,
)
from entigen.errors import ValidationError
from entigen.models import GenerationConfig
from entigen.registries import FieldType, RelationKind
from entigen.storage import EntityStore


@pytest.fixture()
def dirs(config: GenerationConfig) -> List[str]:
    """Global options pointing the CLI at the temporary project."""
    return [
        "--entity-dir", str(config.entity_dir),
        "--repository-dir", str(config.repository_dir),
    ]


def _read(config: GenerationConfig, name: str) -> str:
    return (config.entity_dir / f"{name}.php").read_text(encoding="utf-8")


# ===========================================================================
# Inline spec parsing
# ===========================================================================


class TestParseFieldArg:
    def test_plain(self) -> None:
        spec = parse_field_arg("title:string")
        assert spec.name == "title"
        assert spec.db_type is FieldType.STRING
        assert not spec.nullable

    def test_nullable(self) -> None:
        assert parse_field_arg("publishedAt:datetime:nullable").nullable

    @pytest.mark.parametrize("text", ["title", ":string", "a:string:maybe", "a:b:c:d"])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_field_arg(text)

    def test_unknown_type(self) -> None:
        with pytest.raises(ValidationError):
            parse_field_arg("title:varchar2")


class TestParseRelationArg:
    def test_without_inverse(self) -> None:
        spec = parse_relation_arg("author:manyToOne:User")
        assert spec.property_name == "author"
        assert spec.kind is RelationKind.MANY_TO_ONE
        assert not spec.generate_inverse
        assert spec.owning is None

    def test_named_inverse(self) -> None:
        spec = parse_relation_arg("comments:oneToMany:Comment:post")
        assert spec.generate_inverse
        assert spec.other_prop == "post"

    @pytest.mark.parametrize("other", ["*", ""])
    def test_default_inverse(self, other: str) -> None:
        spec = parse_relation_arg(f":manyToMany:Tag:{other}")
        assert spec.property_name is None
        assert spec.generate_inverse
        assert spec.other_prop is None

    def test_inverse_side(self) -> None:
        spec = parse_relation_arg("tags:manyToMany:Tag:*", ["tags"])
        assert spec.owning is False

    @pytest.mark.parametrize("text", ["tags:manyToMany", "tags:manyToMany::x", "a:b:c:d:e"])
    def test_malformed(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_relation_arg(text)

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValidationError):
            parse_relation_arg("tags:manyToFew:Tag")


# ===========================================================================
# make
# ===========================================================================


class TestMake:
    def test_field(self, dirs: List[str], config: GenerationConfig, capsys) -> None:
        code = run(dirs + ["make", "Post", "--field", "title:string"])
        assert code == EXIT_SUCCESS
        assert "public string $title;" in _read(config, "Post")
        assert (config.repository_dir / "PostRepository.php").is_file()
        assert "EntiGen: Post" in capsys.readouterr().out

    def test_relation_with_inverse(self, dirs: List[str], config: GenerationConfig) -> None:
        code = run(dirs + ["make", "Post", "--relation", "comments:oneToMany:Comment:post"])
        assert code == EXIT_SUCCESS
        assert "mappedBy: 'post'" in _read(config, "Post")
        assert "inversedBy: 'comments'" in _read(config, "Comment")

    def test_inverse_side_flag(self, dirs: List[str], config: GenerationConfig) -> None:
        code = run(dirs + [
            "make", "Post",
            "--relation", "tags:manyToMany:Tag:*",
            "--inverse-side", "tags",
        ])
        assert code == EXIT_SUCCESS
        assert "#[ManyToMany(targetEntity: Tag::class, mappedBy: 'posts')]" in _read(config, "Post")
        tag = _read(config, "Tag")
        assert "inversedBy: 'tags'" in tag
        assert "JoinTable(name: 'post_tag', joinColumn: 'tag_id'" in tag

    def test_inverse_side_must_name_a_relation(self, dirs: List[str]) -> None:
        code = run(dirs + ["make", "Post", "--relation", "tags:manyToMany:Tag",
                           "--inverse-side", "labels"])
        assert code == EXIT_INPUT_ERROR

    def test_malformed_field(self, dirs: List[str], entity_dir: pathlib.Path) -> None:
        assert run(dirs + ["make", "Post", "--field", "title"]) == EXIT_INPUT_ERROR
        assert list(entity_dir.iterdir()) == []

    def test_unknown_type(self, dirs: List[str]) -> None:
        assert run(dirs + ["make", "Post", "--field", "title:varchar2"]) == EXIT_VALIDATION_ERROR

    def test_invalid_entity_name(self, dirs: List[str], entity_dir: pathlib.Path) -> None:
        assert run(dirs + ["make", "post", "--field", "title:string"]) == EXIT_VALIDATION_ERROR
        assert list(entity_dir.iterdir()) == []

    def test_locked_entity(self, dirs: List[str], store: EntityStore) -> None:
        store.lock_path_for("Post").write_text("1", encoding="utf-8")
        assert run(dirs + ["make", "Post", "--field", "title:string"]) == EXIT_GENERATION_ERROR

    def test_no_lock(self, dirs: List[str], store: EntityStore) -> None:
        store.lock_path_for("Post").write_text("1", encoding="utf-8")
        code = run(["--no-lock"] + dirs + ["make", "Post", "--field", "title:string"])
        assert code == EXIT_SUCCESS

    def test_broken_inverse_target(self, dirs: List[str], write_entity) -> None:
        write_entity("Comment", "<?php\n$x = 1;\n")
        code = run(dirs + ["make", "Post", "--relation", "comments:oneToMany:Comment:post"])
        assert code == EXIT_EXPORT_ERROR

    def test_dry_run(self, dirs: List[str], entity_dir: pathlib.Path) -> None:
        code = run(["--dry-run"] + dirs + ["make", "Post", "--field", "title:string"])
        assert code == EXIT_SUCCESS
        assert list(entity_dir.iterdir()) == []

    def test_no_repository(self, dirs: List[str], config: GenerationConfig) -> None:
        run(["--no-repository"] + dirs + ["make", "Post", "--field", "title:string"])
        assert not (config.repository_dir / "PostRepository.php").exists()

    def test_namespace(self, dirs: List[str], config: GenerationConfig) -> None:
        run(["--namespace", "Blog\\Model"] + dirs + ["make", "Post"])
        assert "namespace Blog\\Model;" in _read(config, "Post")


# ===========================================================================
# apply / validate
# ===========================================================================


class TestPlanCommands:
    def test_apply(
        self, plan_yaml_path: pathlib.Path, config: GenerationConfig
    ) -> None:
        assert run(["apply", str(plan_yaml_path)]) == EXIT_SUCCESS
        assert "public string $label;" in _read(config, "Tag")

    def test_apply_dry_run(
        self, plan_yaml_path: pathlib.Path, entity_dir: pathlib.Path
    ) -> None:
        assert run(["--dry-run", "apply", str(plan_yaml_path)]) == EXIT_SUCCESS
        assert list(entity_dir.iterdir()) == []

    def test_apply_missing_file(self, tmp_path: pathlib.Path) -> None:
        assert run(["apply", str(tmp_path / "nope.yaml")]) == EXIT_INPUT_ERROR

    def test_validate(self, plan_yaml_path: pathlib.Path, entity_dir: pathlib.Path, capsys) -> None:
        assert run(["validate", str(plan_yaml_path)]) == EXIT_SUCCESS
        assert "All validations passed" in capsys.readouterr().out
        assert list(entity_dir.iterdir()) == []

    def test_validate_reports_errors(self, tmp_path: pathlib.Path, capsys) -> None:
        plan = tmp_path / "plan.json"
        plan.write_text(
            '{"entity": {"name": "post", "fields": [{"name": "class", "type": "string"}]}}',
            encoding="utf-8",
        )
        assert run(["validate", str(plan)]) == EXIT_VALIDATION_ERROR
        out = capsys.readouterr().out
        assert "INVALID_ENTITY_NAME" in out
        assert "INVALID_FIELD_NAME" in out


# ===========================================================================
# list / types / parser
# ===========================================================================


class TestInspection:
    def test_list_empty(self, dirs: List[str], capsys) -> None:
        assert run(dirs + ["list"]) == EXIT_SUCCESS
        assert "No entities" in capsys.readouterr().out

    def test_list(self, dirs: List[str], write_entity, capsys) -> None:
        run(dirs + ["make", "Post", "--field", "title:string",
                    "--relation", "author:manyToOne:User"])
        write_entity("Broken", "<?php\n")
        capsys.readouterr()

        assert run(dirs + ["list"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Post" in out and "2 field(s), 1 relation(s)" in out
        assert "Broken" in out and "unparseable" in out

    def test_types(self, capsys) -> None:
        assert run(["types"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "datetime" in out and "\\DateTimeImmutable" in out
        assert "oneToMany" in out and "(inverse: manyToOne)" in out

    def test_version(self, capsys) -> None:
        assert run(["--version"]) == EXIT_SUCCESS
        assert "EntiGen v" in capsys.readouterr().out

    def test_missing_command(self) -> None:
        assert run([]) == EXIT_INPUT_ERROR

    def test_unknown_command(self) -> None:
        assert run(["frobnicate"]) == EXIT_INPUT_ERROR
