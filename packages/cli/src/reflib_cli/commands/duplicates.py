"""Duplicates command for reflib.

Reports which library records a candidate CSL-JSON item would duplicate.
"""

import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

from reflib_cli._shared import OutputFormat, open_library, setup_logging, to_json
from reflib_check import detect_duplicate
from reflib_common import ReflibError
from reflib_contracts import BibliographicRecord, DuplicateResult


def load_candidates(path: Path) -> list[BibliographicRecord]:
    """Read one CSL item or an array of items from ``path``.

    Raises:
        ReflibError: If the file is unreadable or not CSL-JSON.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ReflibError(f"Cannot read {path}: {e}") from e

    items: list[Any] = data if isinstance(data, list) else [data]
    candidates = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ReflibError(f"Item {index} in {path} is not a JSON object")
        item.setdefault("id", f"candidate-{index}")
        try:
            candidates.append(BibliographicRecord.model_validate(item))
        except ValidationError as e:
            raise ReflibError(f"Invalid CSL-JSON item {index} in {path}: {e}") from e
    return candidates


def format_duplicate_result(candidate: BibliographicRecord, result: DuplicateResult) -> str:
    if not result.is_duplicate:
        return f"{candidate.id}: no duplicates"

    lines = [f"{candidate.id}: {len(result.matches)} duplicate(s)"]
    for match in result.matches:
        title = match.existing.title or "(untitled)"
        lines.append(f"  [{match.type.value}] {match.existing.id}: {title}")
    return "\n".join(lines)


def duplicates(
    candidate_file: Path = typer.Argument(
        ...,
        help="CSL-JSON file with one item or an array of items",
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.text,
        "--format",
        "-f",
        help="Output format",
    ),
    library_path: Optional[str] = typer.Option(
        None,
        "--library",
        "-l",
        help="Library file (default from LIBRARY_PATH)",
    ),
):
    """Find library records that a new reference would duplicate.

    Examples:

        reflib duplicates new-paper.json

        reflib duplicates import-batch.json --format json
    """
    setup_logging()

    try:
        library = open_library(library_path)
        candidates = load_candidates(candidate_file)
        existing = library.get_all()
        results = [(c, detect_duplicate(c, existing)) for c in candidates]
    except ReflibError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if format == OutputFormat.json:
        payload = {
            "results": [
                {"id": candidate.id, **result.model_dump(mode="json", by_alias=True)}
                for candidate, result in results
            ]
        }
        typer.echo(to_json(payload))
        return

    for candidate, result in results:
        typer.echo(format_duplicate_result(candidate, result))
