"""
tests/test_resolver.py
Unit tests for entigen.resolver.RelationResolver.
"""

from __future__ import annotations

import pytest

from entigen.errors import ValidationError
from entigen.models import GenerationConfig, JoinTable, RelationSpec
from entigen.registries import RelationKind
from entigen.resolver import RelationResolver


class _Irregular:
    """Pluralizer stub with a fixed vocabulary."""

    def pluralize(self, word: str) -> str:
        return {"person": "people"}.get(word, word + "s")

    def singularize(self, word: str) -> str:
        return {"people": "person"}.get(word, word[:-1] if word.endswith("s") else word)


@pytest.fixture()
def resolver() -> RelationResolver:
    return RelationResolver()


class TestPrimitives:
    def test_resolve_inverse(self, resolver: RelationResolver) -> None:
        assert resolver.resolve_inverse("oneToMany") is RelationKind.MANY_TO_ONE
        with pytest.raises(ValidationError):
            resolver.resolve_inverse("sideways")

    def test_suggest_property_name(self, resolver: RelationResolver) -> None:
        assert resolver.suggest_property_name("Comment", "oneToMany") == "comments"
        assert resolver.suggest_property_name("Tag", "manyToMany") == "tags"
        assert resolver.suggest_property_name("Post", "manyToOne") == "post"
        assert resolver.suggest_property_name("BlogPost", "oneToOne") == "blogPost"

    def test_custom_pluralizer(self) -> None:
        resolver = RelationResolver(_Irregular())
        assert resolver.suggest_property_name("Person", "oneToMany") == "people"

    def test_join_table_is_symmetric(self, resolver: RelationResolver) -> None:
        from_post = resolver.default_join_table("Post", "Tag")
        from_tag = resolver.default_join_table("Tag", "Post")
        assert from_post.name == from_tag.name == "post_tag"
        assert from_post.join_column == "post_id"
        assert from_post.inverse_column == "tag_id"
        assert from_tag.join_column == "tag_id"
        assert from_tag.inverse_column == "post_id"

    def test_join_table_snake_cases_names(self, resolver: RelationResolver) -> None:
        table = resolver.default_join_table("BlogPost", "App\\Entity\\Tag")
        assert table.name == "blog_post_tag"
        assert table.join_column == "blog_post_id"


class TestOwnership:
    @pytest.mark.parametrize(
        "kind, owning, expected",
        [
            (RelationKind.MANY_TO_ONE, None, True),
            (RelationKind.MANY_TO_ONE, True, True),
            (RelationKind.ONE_TO_MANY, None, False),
            (RelationKind.ONE_TO_MANY, False, False),
            (RelationKind.MANY_TO_MANY, None, True),
            (RelationKind.MANY_TO_MANY, False, False),
            (RelationKind.ONE_TO_ONE, None, True),
            (RelationKind.ONE_TO_ONE, False, False),
        ],
    )
    def test_rule(self, kind: RelationKind, owning, expected: bool) -> None:
        assert RelationResolver.resolve_ownership(kind, owning) is expected

    @pytest.mark.parametrize(
        "kind, owning",
        [(RelationKind.ONE_TO_MANY, True), (RelationKind.MANY_TO_ONE, False)],
    )
    def test_contradictions_raise(self, kind: RelationKind, owning: bool) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RelationResolver.resolve_ownership(kind, owning)
        assert exc_info.value.code == "OWNERSHIP_CONTRADICTION"


class TestResolve:
    def test_fills_defaults(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(kind="oneToMany", target="Comment", generate_inverse=True)
        resolved = resolver.resolve(spec, "Post")
        assert resolved.property_name == "comments"
        assert resolved.is_owning_side is False
        assert resolved.other_prop == "post"
        assert resolved.join_table is None
        assert spec.property_name is None

    def test_owning_many_to_many_gets_join_table(self, resolver: RelationResolver) -> None:
        resolved = resolver.resolve(RelationSpec(kind="manyToMany", target="Tag"), "Post")
        assert resolved.is_owning_side
        assert resolved.join_table == JoinTable(
            name="post_tag", join_column="post_id", inverse_column="tag_id"
        )

    def test_explicit_join_table_is_kept(self, resolver: RelationResolver) -> None:
        custom = JoinTable(name="taggings", join_column="p", inverse_column="t")
        spec = RelationSpec(kind="manyToMany", target="Tag", join_table=custom)
        assert resolver.resolve(spec, "Post").join_table == custom

    def test_inverse_many_to_many_has_no_join_table(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(kind="manyToMany", target="Post", owning=False)
        resolved = resolver.resolve(spec, "Tag")
        assert not resolved.is_owning_side
        assert resolved.join_table is None

    def test_collections_are_never_nullable(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(kind="oneToMany", target="Comment", nullable=True)
        assert spec.nullable is False
        assert resolver.resolve(spec, "Post").nullable is False

    def test_to_one_keeps_nullable(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(kind="manyToOne", target="User", nullable=True)
        assert resolver.resolve(spec, "Post").nullable is True


class TestBuildInverseEntry:
    def test_none_without_inverse(self, resolver: RelationResolver) -> None:
        resolved = resolver.resolve(RelationSpec(kind="manyToOne", target="User"), "Post")
        assert resolver.build_inverse_entry(resolved, "Post") is None

    def test_one_to_many_entry(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(
            property="comments", kind="oneToMany", target="Comment", generate_inverse=True
        )
        resolved = resolver.resolve(spec, "Post")
        entry = resolver.build_inverse_entry(resolved, "Post", GenerationConfig())
        assert entry is not None
        assert entry.target_entity_fqn == "App\\Entity\\Comment"
        assert entry.target_property_name == "post"
        assert entry.inverse_kind is RelationKind.MANY_TO_ONE
        assert entry.back_reference_fqn == "App\\Entity\\Post"
        assert entry.other_prop == "comments"
        assert entry.owning_flag is True
        assert entry.join_table is None

    def test_ownership_is_complementary(self, resolver: RelationResolver) -> None:
        for kind in ("oneToOne", "oneToMany", "manyToOne", "manyToMany"):
            resolved = resolver.resolve(
                RelationSpec(kind=kind, target="Other", generate_inverse=True), "Self"
            )
            entry = resolver.build_inverse_entry(resolved, "Self")
            assert entry is not None
            assert entry.owning_flag is (not resolved.is_owning_side)
            assert resolver.resolve_inverse(entry.inverse_kind) is resolved.kind

    def test_many_to_many_entry_from_inverse_primary(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(kind="manyToMany", target="Post", owning=False, generate_inverse=True)
        resolved = resolver.resolve(spec, "Tag")
        entry = resolver.build_inverse_entry(resolved, "Tag")
        assert entry is not None
        assert entry.owning_flag is True
        assert entry.join_table == JoinTable(
            name="post_tag", join_column="post_id", inverse_column="tag_id"
        )

    def test_inverse_one_to_one_flag(self, resolver: RelationResolver) -> None:
        resolved = resolver.resolve(
            RelationSpec(kind="oneToOne", target="Profile", generate_inverse=True), "User"
        )
        entry = resolver.build_inverse_entry(resolved, "User")
        assert entry is not None
        assert entry.is_inverse_one_to_one is True
        relation = entry.to_relation_spec()
        assert relation.is_owning_side is False
        assert relation.other_prop == resolved.property_name

    def test_unresolved_spec_is_rejected(self, resolver: RelationResolver) -> None:
        spec = RelationSpec(kind="oneToMany", target="Comment", generate_inverse=True)
        with pytest.raises(ValidationError):
            resolver.build_inverse_entry(spec, "Post")
