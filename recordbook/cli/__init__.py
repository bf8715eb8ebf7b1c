"""
cli — command-line interface for recordbook.

Entry points
────────────
  python -m recordbook   (via recordbook/__main__.py)
  recordbook             (via pyproject.toml [project.scripts])

Subcommands: list | add | rename | delete | export | import | gui
"""

from recordbook.cli.main import build_parser, cmd_list, cmd_export, cmd_import, main

__all__ = ["build_parser", "cmd_list", "cmd_export", "cmd_import", "main"]
