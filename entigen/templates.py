# File: entigen/templates.py
"""
EntiGen - PHP Fragment Templates
=================================
Stateless rendering of the PHP text the mutators insert:

    1. ``#[Field]`` properties with getter / fluent setter
    2. Relation properties (collection and scalar) with their accessors
    3. Entity stub files for entities that do not exist yet
    4. Repository stub files for newly created entities

Fragments are rendered at column zero using the configured indent unit;
``ClassSource`` re-indents them to the class body level.

All string assembly uses the ``List[str]`` + ``"\\n".join()`` pattern.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from entigen.models import GenerationConfig, JoinTable
from entigen.registries import RelationKind
from entigen.utils import ucfirst

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.templates")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Attribute classes imported by every generated entity
ENTITY_ATTRIBUTE_IMPORTS: List[str] = [
    "Entity",
    "Field",
    "OneToOne",
    "OneToMany",
    "ManyToOne",
    "ManyToMany",
    "JoinTable",
]


def _nullable(php_type: str, nullable: bool) -> str:
    if nullable and not php_type.startswith("?") and php_type != "mixed":
        return f"?{php_type}"
    return php_type


class PhpTemplates:
    """
    Stateless PHP code renderer.

    Every ``render_*`` method returns the text of exactly one class member
    (or a whole file for the ``*_stub`` methods).
    """

    def __init__(self, config: GenerationConfig) -> None:
        self._config: GenerationConfig = config
        self._indent: str = config.indent
        self._double_indent: str = self._indent * 2

    # ===================================================================
    # Shared building blocks
    # ===================================================================

    def _method(
        self,
        name: str,
        params: str,
        return_type: str,
        statements: List[str],
    ) -> str:
        lines: List[str] = [f"public function {name}({params}): {return_type}", "{"]
        for statement in statements:
            lines.append(f"{self._indent}{statement}")
        lines.append("}")
        return "\n".join(lines)

    def render_getter(self, prop: str, return_type: str) -> str:
        return self._method(
            f"get{ucfirst(prop)}", "", return_type, [f"return $this->{prop};"]
        )

    def render_setter(self, prop: str, param_type: str) -> str:
        return self._method(
            f"set{ucfirst(prop)}",
            f"{param_type} ${prop}",
            "self",
            [f"$this->{prop} = ${prop};", "return $this;"],
        )

    # ===================================================================
    # 1. Scalar fields
    # ===================================================================

    def render_field_property(
        self,
        name: str,
        db_type: str,
        php_type: str,
        nullable: bool = False,
    ) -> str:
        """``#[Field(type: 'x')]`` followed by the typed property."""
        args: List[str] = [f"type: '{db_type}'"]
        if nullable:
            args.append("nullable: true")
        declared: str = _nullable(php_type, nullable)
        default: str = " = null" if nullable else ""
        return "\n".join([
            f"#[Field({', '.join(args)})]",
            f"public {declared} ${name}{default};",
        ])

    def render_field_accessors(
        self, name: str, php_type: str, nullable: bool = False
    ) -> List[str]:
        declared: str = _nullable(php_type, nullable)
        return [
            self.render_getter(name, declared),
            self.render_setter(name, declared),
        ]

    # ===================================================================
    # 2. Relations
    # ===================================================================

    def render_relation_attribute(
        self,
        kind: RelationKind,
        target: str,
        is_owning_side: bool,
        other_prop: Optional[str] = None,
        join_table: Optional[JoinTable] = None,
        inverse_one_to_one: bool = False,
        nullable: bool = False,
    ) -> str:
        """
        ``#[Kind(targetEntity: T::class, ...)]``.

        Extra arguments, in order: ``inversedBy``/``mappedBy``, then
        ``joinTable`` (owning many-to-many only), then ``nullable``.
        """
        args: List[str] = [f"targetEntity: {target}::class"]
        if other_prop:
            if kind is RelationKind.ONE_TO_ONE and inverse_one_to_one:
                args.append(f"mappedBy: '{other_prop}'")
            elif is_owning_side:
                args.append(f"inversedBy: '{other_prop}'")
            else:
                args.append(f"mappedBy: '{other_prop}'")
        if kind is RelationKind.MANY_TO_MANY and is_owning_side and join_table:
            args.append(
                "joinTable: new JoinTable("
                f"name: '{join_table.name}', "
                f"joinColumn: '{join_table.join_column}', "
                f"inverseColumn: '{join_table.inverse_column}')"
            )
        if nullable and not kind.is_collection:
            args.append("nullable: true")
        return f"#[{kind.attribute}({', '.join(args)})]"

    def render_relation_property(
        self, prop: str, kind: RelationKind, target: str, attribute: str
    ) -> str:
        if kind.is_collection:
            return "\n".join([
                f"/** @var {target}[] */",
                attribute,
                f"public array ${prop};",
            ])
        return "\n".join([attribute, f"public ?{target} ${prop} = null;"])

    def render_collection_accessors(self, prop: str, target: str) -> List[str]:
        """``add<T>``, ``remove<T>`` and ``get<Prop>`` for a collection."""
        add: str = self._method(
            f"add{target}",
            f"{target} $item",
            "self",
            [f"$this->{prop}[] = $item;", "return $this;"],
        )
        remove: str = self._method(
            f"remove{target}",
            f"{target} $item",
            "self",
            [
                f"$this->{prop} = array_values(array_filter("
                f"$this->{prop}, fn($i) => $i !== $item));",
                "return $this;",
            ],
        )
        getter: str = self.render_getter(prop, "array")
        return [add, remove, getter]

    def render_reference_accessors(self, prop: str, target: str) -> List[str]:
        """``get<Prop>``, ``set<Prop>`` and ``remove<Prop>`` for a to-one."""
        remove: str = self._method(
            f"remove{ucfirst(prop)}",
            "",
            "self",
            [f"$this->{prop} = null;", "return $this;"],
        )
        return [
            self.render_getter(prop, f"?{target}"),
            self.render_setter(prop, f"?{target}"),
            remove,
        ]

    @staticmethod
    def render_collection_init(prop: str) -> str:
        return f"$this->{prop} = [];"

    # ===================================================================
    # 3. Entity stub
    # ===================================================================

    def entity_stub(self, name: str, namespace: Optional[str] = None) -> str:
        """A new ``#[Entity]`` class with an auto-increment ``id``."""
        ns: str = namespace or self._config.entity_namespace
        attr_ns: str = self._config.attribute_namespace
        i: str = self._indent
        ii: str = self._double_indent

        lines: List[str] = ["<?php", "declare(strict_types=1);", ""]
        lines.append(f"namespace {ns};")
        lines.append("")
        for attribute in ENTITY_ATTRIBUTE_IMPORTS:
            lines.append(f"use {attr_ns}\\{attribute};")
        lines.append("")
        lines.append("#[Entity]")
        lines.append(f"class {name}")
        lines.append("{")
        lines.append(f"{i}#[Field(type: 'INT', autoIncrement: true, primaryKey: true)]")
        lines.append(f"{i}public int $id;")
        lines.append("")
        lines.append(f"{i}public function __construct()")
        lines.append(f"{i}{{")
        lines.append(f"{i}}}")
        lines.append("")
        lines.append(f"{i}public function getId(): int")
        lines.append(f"{i}{{")
        lines.append(f"{ii}return $this->id;")
        lines.append(f"{i}}}")
        lines.append("}")
        lines.append("")

        content: str = "\n".join(lines)
        logger.debug("Rendered entity stub for %s\\%s.", ns, name)
        return content

    # ===================================================================
    # 4. Repository stub
    # ===================================================================

    def repository_stub(self, entity: str) -> str:
        """``<Entity>Repository`` with typed ``findAll``/``findOneBy``."""
        cfg: GenerationConfig = self._config
        base_fqn: str = cfg.repository_base_class
        base_short: str = base_fqn.rsplit("\\", 1)[-1]
        i: str = self._indent
        ii: str = self._double_indent

        lines: List[str] = ["<?php", "declare(strict_types=1);", ""]
        lines.append(f"namespace {cfg.repository_namespace};")
        lines.append("")
        lines.append(f"use {base_fqn};")
        lines.append(f"use {cfg.entity_fqn(entity)};")
        lines.append("")
        lines.append("/**")
        lines.append(f" * @extends {base_short}<{entity}>")
        lines.append(" */")
        lines.append(f"class {entity}Repository extends {base_short}")
        lines.append("{")
        lines.append(f"{i}/** @var non-empty-string */")
        lines.append(f"{i}protected string $table = '{entity.lower()}';")
        lines.append(f"{i}protected string $entityClass = {entity}::class;")
        lines.append("")
        lines.append(f"{i}/**")
        lines.append(f"{i} * @param array<string,mixed> $criteria")
        lines.append(f"{i} * @return {entity}[]")
        lines.append(f"{i} */")
        lines.append(f"{i}public function findAll(")
        lines.append(f"{ii}array $criteria = [],")
        lines.append(f"{ii}bool $loadRelations = true")
        lines.append(f"{i}): array {{")
        lines.append(f"{ii}/** @var {entity}[] $rows */")
        lines.append(f"{ii}$rows = parent::findAll($criteria, $loadRelations);")
        lines.append(f"{ii}return $rows;")
        lines.append(f"{i}}}")
        lines.append("")
        lines.append(f"{i}/**")
        lines.append(f"{i} * @param array<string,mixed> $criteria")
        lines.append(f"{i} */")
        lines.append(f"{i}public function findOneBy(")
        lines.append(f"{ii}array $criteria,")
        lines.append(f"{ii}bool $loadRelations = true")
        lines.append(f"{i}): ?{entity} {{")
        lines.append(f"{ii}/** @var ?{entity} $row */")
        lines.append(f"{ii}$row = parent::findOneBy($criteria, $loadRelations);")
        lines.append(f"{ii}return $row;")
        lines.append(f"{i}}}")
        lines.append("}")
        lines.append("")
        return "\n".join(lines)


__all__: List[str] = [
    "PhpTemplates",
    "ENTITY_ATTRIBUTE_IMPORTS",
]
