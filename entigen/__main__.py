# File: entigen/__main__.py
"""
EntiGen - Module entry point.

Allows running the generator directly via::

    python -m entigen make Post --field title:string

This module simply delegates to the CLI entry point defined in ``entigen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from entigen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()
