"""Reflib CLI - Main entry point.

Provides the ``reflib`` command-line interface.

Usage:
    reflib check smith2020 jones2021
    reflib check --all --fix
    reflib check --all --format json --no-save
    reflib duplicates candidate.json
"""

import typer

from reflib_cli.commands.check import check
from reflib_cli.commands.duplicates import duplicates

# ---------------------------------------------------------------------------
# Root Typer app
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="reflib",
    help="Check a reference library for retractions, stale metadata and duplicates.",
    add_completion=False,
)

app.command(name="check")(check)
app.command(name="duplicates")(duplicates)


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
