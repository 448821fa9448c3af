"""
tests/test_source.py
Unit tests for entigen.source (class parser / serializer) and
entigen.formatting (the final whitespace pass).
"""

from __future__ import annotations

import textwrap

import pytest

from entigen.errors import StructuralParseError
from entigen.formatting import normalize_whitespace
from entigen.source import (
    BlankLine,
    ClassSource,
    MethodNode,
    OpaqueNode,
    PropertyNode,
    mask_source,
    parse_member,
)


def _php(body: str) -> str:
    return textwrap.dedent(body).lstrip("\n")


class TestMasking:
    def test_offsets_are_preserved(self) -> None:
        text = "$a = '{'; // }\n$b = \"x\";"
        masked = mask_source(text)
        assert len(masked) == len(text)
        assert "{" not in masked and "}" not in masked
        assert masked.count("\n") == text.count("\n")

    def test_attributes_are_not_comments(self) -> None:
        masked = mask_source("#[Field(type: 'INT')]\n# comment {")
        assert masked.startswith("#[Field(type:")
        assert "{" not in masked

    def test_heredoc_is_masked(self) -> None:
        text = "$x = <<<SQL\nSELECT { FROM t\nSQL;\n"
        assert "{" not in mask_source(text)

    def test_unterminated_string(self) -> None:
        with pytest.raises(StructuralParseError) as exc_info:
            mask_source("$a = 'oops;\n")
        assert exc_info.value.line == 1

    def test_unterminated_comment(self) -> None:
        with pytest.raises(StructuralParseError):
            mask_source("\n/* never closed")


class TestParse:
    def test_stub_members(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        assert source.class_name == "Post"
        assert [p.name for p in source.properties()] == ["id"]
        assert [m.name for m in source.methods()] == ["__construct", "getId"]
        assert source.fields() == ["id"]
        assert source.relations() == []

    def test_hand_written_members(self, hand_written_post: str) -> None:
        source = ClassSource.parse(hand_written_post)
        kinds = [type(n) for n in source.members()]
        assert kinds == [
            OpaqueNode,
            PropertyNode,
            PropertyNode,
            MethodNode,
            MethodNode,
            MethodNode,
        ]
        title = source.find_property("title")
        assert title is not None
        assert title.text.endswith("// shown in listings")
        assert title.attributes == ["Field"]

    def test_relation_attributes_are_detected(self) -> None:
        source = ClassSource.parse(_php("""
            <?php
            class Comment
            {
                #[ManyToOne(targetEntity: Post::class, inversedBy: 'comments')]
                public ?Post $post = null;

                #[\\MonkeysLegion\\Entity\\Attributes\\Field(type: 'text')]
                public string $body;
            }
            """))
        assert source.relations() == ["post"]
        assert source.fields() == ["body"]

    def test_method_split(self, hand_written_post: str) -> None:
        source = ClassSource.parse(hand_written_post)
        ctor = source.find_method("__construct")
        assert ctor is not None and ctor.is_constructor
        assert ctor.head.endswith("{")
        assert ctor.tail == "}"
        assert ctor.assigned_properties() == {"title"}

    def test_abstract_method(self) -> None:
        node = parse_member("abstract public function name(): string;")
        assert isinstance(node, MethodNode)
        assert node.body is None

    def test_blank_lines_are_recorded(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        assert any(isinstance(n, BlankLine) for n in source.nodes)

    @pytest.mark.parametrize(
        "text, message",
        [
            ("<?php\n$x = 1;\n", "No class"),
            ("<?php\nclass A\n{\n}\nclass B\n{\n}\n", "single class"),
            ("<?php\nclass A\n{\n    public function x()\n    {\n", "Unbalanced"),
            ("<?php\nclass A\n{\n    public int $x\n}\n", "not terminated"),
            ("<?php\nclass A\n{\n    foo();\n}\n", "Unsupported"),
        ],
    )
    def test_rejects_unsupported_files(self, text: str, message: str) -> None:
        with pytest.raises(StructuralParseError) as exc_info:
            ClassSource.parse(text)
        assert message in str(exc_info.value)

    def test_error_carries_path_and_line(self) -> None:
        text = "<?php\nclass A\n{\n    foo();\n}\n"
        with pytest.raises(StructuralParseError) as exc_info:
            ClassSource.parse(text, path="A.php")
        assert exc_info.value.path == "A.php"
        assert exc_info.value.line == 4
        assert str(exc_info.value).startswith("A.php: line 4: ")


class TestRoundTrip:
    def test_hand_written_file_is_unchanged(self, hand_written_post: str) -> None:
        assert ClassSource.parse(hand_written_post).serialize() == hand_written_post

    def test_stub_is_unchanged(self, post_stub: str) -> None:
        assert ClassSource.parse(post_stub).serialize() == post_stub

    def test_only_blank_lines_change(self) -> None:
        messy = _php("""
            <?php
            class A
            {


                public int $a;
                public int $b;



                public function a(): int { return $this->a; }

            }
            """)
        expected = _php("""
            <?php

            class A
            {
                public int $a;

                public int $b;

                public function a(): int { return $this->a; }
            }
            """)
        assert ClassSource.parse(messy).serialize() == expected


class TestStructuralEdits:
    def test_insert_property_after_last_property(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        source.insert_property(parse_member("public string $title;"))
        names = [getattr(n, "name", None) for n in source.members()]
        assert names == ["id", "title", "__construct", "getId"]
        index = source.nodes.index(source.find_property("title"))
        assert isinstance(source.nodes[index - 1], BlankLine)
        assert isinstance(source.nodes[index + 1], BlankLine)

    def test_first_property_has_no_leading_blank(self) -> None:
        source = ClassSource.parse("<?php\nclass A\n{\n}\n")
        source.insert_property(parse_member("public int $x;"))
        assert isinstance(source.nodes[0], PropertyNode)

    def test_remove_property_only_strips_the_node(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        assert source.remove_property("id")
        assert source.find_property("id") is None
        assert source.find_method("getId") is not None
        assert not source.remove_property("id")

    def test_remove_method_is_case_insensitive(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        assert source.remove_method("GETID")
        assert source.find_method("getId") is None

    def test_insert_method_after_last_method(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        source.insert_method(parse_member("public function x(): void\n{\n}"))
        assert [m.name for m in source.methods()] == ["__construct", "getId", "x"]

    def test_constructor_is_synthesised_before_methods(self) -> None:
        source = ClassSource.parse(_php("""
            <?php
            class A
            {
                public int $a;

                public function getA(): int
                {
                    return $this->a;
                }
            }
            """))
        ctor = source.find_or_create_constructor()
        assert [m.name for m in source.methods()] == ["__construct", "getA"]
        assert source.find_or_create_constructor() is ctor

    def test_constructor_without_methods_goes_last(self) -> None:
        source = ClassSource.parse("<?php\nclass A\n{\n    public int $a;\n}\n")
        source.find_or_create_constructor()
        assert isinstance(source.members()[-1], MethodNode)

    def test_append_statement(self, post_stub: str) -> None:
        source = ClassSource.parse(post_stub)
        ctor = source.find_or_create_constructor()
        ctor.append_statement("$this->tags = [];", "    ")
        assert "tags" in ctor.assigned_properties()
        assert "        $this->tags = [];\n    }" in source.serialize()


class TestFormatting:
    def test_declare_is_normalised(self) -> None:
        code = "<?php\ndeclare( strict_types = 1 );\nnamespace A;\n"
        assert normalize_whitespace(code) == (
            "<?php\ndeclare(strict_types=1);\n\nnamespace A;\n"
        )

    def test_blank_line_after_open_tag(self) -> None:
        assert normalize_whitespace("<?php\nnamespace A;") == "<?php\n\nnamespace A;\n"

    def test_blank_line_between_use_and_class(self) -> None:
        code = "<?php\n\nuse A\\B;\n#[Entity]\nclass C\n{\n}\n"
        assert "use A\\B;\n\n#[Entity]" in normalize_whitespace(code)

    def test_collapses_blank_runs_and_trailing_space(self) -> None:
        code = "<?php\n\n\n\nclass C   \n{\n}\n\n\n"
        assert normalize_whitespace(code) == "<?php\n\nclass C\n{\n}\n"

    def test_prepends_open_tag(self) -> None:
        assert normalize_whitespace("class C\n{\n}").startswith("<?php\n\nclass C")
