# File: entigen/cli.py
"""
EntiGen - Command-Line Interface
=================================

Non-interactive CLI built with the standard-library ``argparse`` module.
Subcommands come from the static ``COMMANDS`` registry below.

Usage examples::

    # Add a field and a bidirectional relation to Post
    entigen make Post --field title:string \\
        --relation comments:oneToMany:Comment:post

    # Let the generator pick property names ('*' = default inverse name)
    entigen make Post --relation :manyToMany:Tag:*

    # Apply / validate every entity of a plan file
    entigen apply plan.yaml
    entigen validate plan.yaml

    # Inspect
    entigen list
    entigen types

Exit codes:
    0 - success
    1 - validation error
    2 - generation error (parse / mutation / lock)
    3 - export error (save / inverse side)
    4 - input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, NoReturn, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from entigen.errors import StructuralParseError, ValidationError
from entigen.generator import (
    EntityGenerator,
    GenerationReport,
    load_plan_file,
    parse_raw_plan,
)
from entigen.models import EntityPlan, FieldSpec, GenerationConfig, RelationSpec
from entigen.registries import FIELD_TYPES, RELATION_HELP, RELATION_KINDS, RelationKind
from entigen.source import ClassSource
from entigen.storage import EntityStore
from entigen.validators import ValidationResult

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root entigen logger based on verbosity level.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity >= 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("entigen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Inline spec parsing (make)
# ---------------------------------------------------------------------------


def parse_field_arg(text: str) -> FieldSpec:
    """
    ``NAME:TYPE[:nullable]`` -> ``FieldSpec``.

    Raises:
        ValueError: malformed argument.
        ValidationError: unknown field type.
    """
    parts: List[str] = text.split(":")
    if len(parts) not in (2, 3) or not parts[0]:
        raise ValueError(f"Invalid --field '{text}', expected NAME:TYPE[:nullable].")
    if len(parts) == 3 and parts[2] != "nullable":
        raise ValueError(f"Invalid --field '{text}': third part must be 'nullable'.")
    field_type = FIELD_TYPES.require(parts[1])
    return FieldSpec(name=parts[0], db_type=field_type, nullable=len(parts) == 3)


def parse_relation_arg(text: str, inverse_sides: Sequence[str] = ()) -> RelationSpec:
    """
    ``PROP:KIND:TARGET[:OTHER]`` -> ``RelationSpec``.

    An empty ``PROP`` asks for the suggested name.  A fourth part requests
    the inverse side; ``*`` (or empty) uses the default reciprocal name.

    Raises:
        ValueError: malformed argument.
        ValidationError: unknown relation kind.
    """
    parts: List[str] = text.split(":")
    if len(parts) not in (3, 4) or not parts[2]:
        raise ValueError(
            f"Invalid --relation '{text}', expected PROP:KIND:TARGET[:OTHER]."
        )
    kind: RelationKind = RELATION_KINDS.require(parts[1])
    prop: Optional[str] = parts[0] or None
    generate_inverse: bool = len(parts) == 4
    other: Optional[str] = None
    if generate_inverse and parts[3] not in ("", "*"):
        other = parts[3]

    owning: Optional[bool] = None
    if prop is not None and prop in inverse_sides:
        owning = False
    return RelationSpec(
        property_name=prop,
        kind=kind,
        target=parts[2],
        owning=owning,
        other_prop=other,
        generate_inverse=generate_inverse,
    )


# ---------------------------------------------------------------------------
# Config override builder
# ---------------------------------------------------------------------------


def _build_config_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a config override dictionary from CLI arguments."""
    overrides: Dict[str, Any] = {}

    if args.entity_dir is not None:
        overrides["entity_dir"] = args.entity_dir
    if args.repository_dir is not None:
        overrides["repository_dir"] = args.repository_dir
    if args.namespace is not None:
        overrides["entity_namespace"] = args.namespace
    if args.no_repository:
        overrides["generate_repository"] = False
    if args.no_lock:
        overrides["lock_files"] = False
    if args.dry_run:
        overrides["dry_run"] = True

    return overrides


def _config_from_args(args: argparse.Namespace) -> GenerationConfig:
    return GenerationConfig.model_validate(_build_config_overrides(args))


def _load_plans(
    args: argparse.Namespace,
) -> Tuple[List[EntityPlan], GenerationConfig]:
    """Load a plan file with CLI overrides applied to its ``config`` section."""
    raw: Dict[str, Any] = load_plan_file(Path(args.plan))
    config_section: Any = raw.get("config")
    if not isinstance(config_section, dict):
        config_section = {}
    config_section.update(_build_config_overrides(args))
    raw["config"] = config_section
    return parse_raw_plan(raw)


def _exit_code_for(report: GenerationReport) -> int:
    if report.success:
        return EXIT_SUCCESS
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    if report.export_errors:
        return EXIT_EXPORT_ERROR
    return EXIT_GENERATION_ERROR


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_make(args: argparse.Namespace) -> int:
    try:
        fields: List[FieldSpec] = [parse_field_arg(f) for f in args.field]
        relations: List[RelationSpec] = [
            parse_relation_arg(r, args.inverse_side) for r in args.relation
        ]
    except ValidationError as exc:
        logger.error("%s", exc)
        return EXIT_VALIDATION_ERROR
    except (ValueError, PydanticValidationError) as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    known_props = {r.property_name for r in relations if r.property_name}
    for name in args.inverse_side:
        if name not in known_props:
            logger.error("--inverse-side '%s' does not name a --relation.", name)
            return EXIT_INPUT_ERROR

    plan = EntityPlan(name=args.entity, fields=fields, relations=relations)
    report: GenerationReport = EntityGenerator(_config_from_args(args)).generate(plan)
    print(report.summary())
    return _exit_code_for(report)


def _cmd_apply(args: argparse.Namespace) -> int:
    try:
        plans, config = _load_plans(args)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load plan: %s", exc)
        return EXIT_INPUT_ERROR

    reports: List[GenerationReport] = EntityGenerator(config).generate_all(plans)
    for report in reports:
        print(report.summary())
    return max((_exit_code_for(r) for r in reports), default=EXIT_SUCCESS)


def _cmd_validate(args: argparse.Namespace) -> int:
    try:
        plans, config = _load_plans(args)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load plan: %s", exc)
        return EXIT_INPUT_ERROR

    generator: EntityGenerator = EntityGenerator(config)
    valid: bool = True
    print(f"\n{'='*50}")
    print("  Plan Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {Path(args.plan).name}")
    print(f"  Entities: {len(plans)}")
    for plan in plans:
        result: ValidationResult = generator.validate(plan)
        valid = valid and result.is_valid
        print(f"\n  {plan.name}:")
        for line in result.format_report().splitlines():
            print(f"    {line}")
    if valid:
        print("\n  ✅ All validations passed!")
    print(f"{'='*50}\n")
    return EXIT_SUCCESS if valid else EXIT_VALIDATION_ERROR


def _cmd_list(args: argparse.Namespace) -> int:
    store: EntityStore = EntityStore(_config_from_args(args))
    entities: List[str] = store.list_entities()
    if not entities:
        print(f"No entities in {store.config.entity_dir}")
        return EXIT_SUCCESS

    for name in entities:
        try:
            source: ClassSource = ClassSource.parse(
                store.read(name) or "", path=str(store.path_for(name))
            )
        except StructuralParseError as exc:
            print(f"  {name:<24s} (unparseable: {exc.reason})")
            continue
        print(
            f"  {name:<24s} {len(source.fields())} field(s), "
            f"{len(source.relations())} relation(s)"
        )
    return EXIT_SUCCESS


def _cmd_types(args: argparse.Namespace) -> int:
    print("Field types:")
    for field_type in FIELD_TYPES.all():
        print(f"  {field_type.value:<16s} -> {FIELD_TYPES.php_type(field_type)}")
    print("\nRelation kinds:")
    for kind in RELATION_KINDS.all():
        inverse: RelationKind = RELATION_KINDS.inverse(kind)
        print(f"  {kind.value:<12s} (inverse: {inverse.value})")
        for line in RELATION_HELP.get(kind, ()):
            print(f"      {line}")
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Static command registry
# ---------------------------------------------------------------------------

Handler = Callable[[argparse.Namespace], int]

COMMANDS: Dict[str, Tuple[Handler, str]] = {
    "make": (_cmd_make, "Create or update one entity from inline specs."),
    "apply": (_cmd_apply, "Generate every entity of a plan file."),
    "validate": (_cmd_validate, "Validate a plan file without touching files."),
    "list": (_cmd_list, "List entities in the entity directory."),
    "types": (_cmd_types, "Show field types and relation kinds."),
}


def _configure_make(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("entity", metavar="ENTITY", help="Entity short name.")
    parser.add_argument(
        "--field",
        action="append",
        default=[],
        metavar="NAME:TYPE[:nullable]",
        help="Scalar field to add (repeatable).",
    )
    parser.add_argument(
        "--relation",
        action="append",
        default=[],
        metavar="PROP:KIND:TARGET[:OTHER]",
        help=(
            "Relation to add (repeatable). OTHER requests the inverse side; "
            "'*' uses the default name. Empty PROP uses the suggested name."
        ),
    )
    parser.add_argument(
        "--inverse-side",
        action="append",
        default=[],
        metavar="PROP",
        help="Mark relation PROP as the inverse side (oneToOne/manyToMany).",
    )


def _configure_plan(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("plan", metavar="PLAN_FILE", help="YAML or JSON plan file.")


_CONFIGURERS: Dict[str, Callable[[argparse.ArgumentParser], None]] = {
    "make": _configure_make,
    "apply": _configure_plan,
    "validate": _configure_plan,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from entigen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="entigen",
        description=(
            "EntiGen - incremental entity class generator.\n\n"
            "Adds fields and bidirectional relations to PHP entity classes, "
            "keeping both sides of every relation consistent."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s make Post --field title:string\n"
            "  %(prog)s make Post --relation comments:oneToMany:Comment:post\n"
            "  %(prog)s --dry-run apply plan.yaml\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"EntiGen v{__version__}",
    )

    config_group = parser.add_argument_group("configuration overrides")
    config_group.add_argument(
        "--entity-dir", default=None, metavar="DIR", help="Entity directory."
    )
    config_group.add_argument(
        "--repository-dir", default=None, metavar="DIR", help="Repository directory."
    )
    config_group.add_argument(
        "--namespace", default=None, metavar="NS", help="Entity namespace."
    )
    config_group.add_argument(
        "--no-repository",
        action="store_true",
        default=False,
        help="Do not create repository stubs for new entities.",
    )
    config_group.add_argument(
        "--no-lock",
        action="store_true",
        default=False,
        help="Do not guard files with lock files.",
    )
    config_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Run the full pipeline but don't write files to disk.",
    )

    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True
    for name, (_handler, help_text) in COMMANDS.items():
        sub = subparsers.add_parser(name, help=help_text, description=help_text)
        configure = _CONFIGURERS.get(name)
        if configure is not None:
            configure(sub)

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, dispatch to a command and return its exit code."""
    parser: argparse.ArgumentParser = _build_parser()
    try:
        args: argparse.Namespace = parser.parse_args(argv)
    except SystemExit as exc:
        # argparse exits 2 on usage errors; --help/--version exit 0
        return EXIT_SUCCESS if exc.code in (0, None) else EXIT_INPUT_ERROR

    _setup_logging(-1 if args.quiet else args.verbose)

    try:
        config_check: GenerationConfig = _config_from_args(args)
    except PydanticValidationError as exc:
        logger.error("Invalid configuration: %s", exc)
        return EXIT_INPUT_ERROR
    logger.info("Entity dir: %s", config_check.entity_dir)

    handler, _help = COMMANDS[args.command]
    exit_code: int = handler(args)
    if exit_code != EXIT_SUCCESS:
        logger.error("'%s' failed with exit code %d.", args.command, exit_code)
    return exit_code


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    sys.exit(run(argv))


__all__: List[str] = [
    "cli_main",
    "run",
    "COMMANDS",
    "parse_field_arg",
    "parse_relation_arg",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("entigen.cli loaded.")
