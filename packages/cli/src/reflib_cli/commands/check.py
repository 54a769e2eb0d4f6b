"""Check command for reflib.

Checks references against Crossref (DOI) and PubMed (PMID) for retractions,
expressions of concern, published versions and drifted metadata, then
optionally walks the findings interactively (``--fix``).
"""

import asyncio
from functools import partial
from typing import Optional

import typer

from reflib_cli._shared import OutputFormat, open_library, setup_logging, to_json
from reflib_cli.presenter import TerminalChoicePresenter
from reflib_check import (
    CheckOptions,
    CrossrefClient,
    FixActionRegistry,
    PubmedClient,
    ReferenceChecker,
    check_references,
    run_fix_interaction,
    status_label,
)
from reflib_common import ReflibError, get_settings
from reflib_contracts import (
    CheckOperationResult,
    CheckResult,
    CheckStatus,
    FixInteractionResult,
)
from reflib_storage import JsonLibrary


def format_check_result(result: CheckResult) -> list[str]:
    if result.status == CheckStatus.SKIPPED:
        return [f"  [SKIPPED] {result.id}"]
    if result.status == CheckStatus.OK:
        return [f"  [OK] {result.id}"]

    lines = []
    for finding in result.findings:
        lines.append(f"  [{status_label(finding.type)}] {result.id}: {finding.message}")
        for diff in (finding.details.field_diffs or []) if finding.details else []:
            lines.append(f"      {diff.field}: {diff.local!r} -> {diff.remote!r}")
    return lines


def format_check_report(operation: CheckOperationResult) -> str:
    lines = []
    for result in operation.results:
        lines.extend(format_check_result(result))
    summary = operation.summary
    lines.append("")
    lines.append(
        f"Checked {summary.total}: {summary.ok} ok, "
        f"{summary.warnings} warnings, {summary.skipped} skipped"
    )
    return "\n".join(lines)


def format_fix_summary(result: FixInteractionResult) -> str:
    line = (
        f"Fix summary: {result.total_findings} findings, "
        f"{result.applied} applied, {result.skipped} skipped"
    )
    if result.removed:
        line += f", removed: {', '.join(result.removed)}"
    return line


def check(
    identifiers: Optional[list[str]] = typer.Argument(
        None,
        help="Citation ids to check",
    ),
    all_records: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Check every reference in the library",
    ),
    fix: bool = typer.Option(
        False,
        "--fix",
        help="Interactively resolve findings after checking",
    ),
    metadata: Optional[bool] = typer.Option(
        None,
        "--metadata/--no-metadata",
        help="Compare local metadata with the remote record (default from config)",
    ),
    skip_days: Optional[int] = typer.Option(
        None,
        "--skip-days",
        help="Skip references checked within N days (0 checks everything)",
    ),
    save: bool = typer.Option(
        True,
        "--save/--no-save",
        help="Store results in each reference's custom.check field",
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
    """Check references for retractions, new versions and metadata drift.

    Examples:

        reflib check vaswani2017

        reflib check --all --fix

        reflib check --all --no-save --format json
    """
    if not identifiers and not all_records:
        typer.echo("Error: Specify citation ids or --all", err=True)
        raise typer.Exit(1)

    setup_logging()
    settings = get_settings()
    options = CheckOptions(
        identifiers=list(identifiers or []),
        all=all_records,
        skip_days=settings.check_skip_days if skip_days is None else skip_days,
        save=save,
    )
    check_metadata = settings.check_metadata if metadata is None else metadata

    # With --format json, stdout carries only the JSON document.
    json_output = format == OutputFormat.json
    interactive_echo = partial(typer.echo, err=json_output)

    async def _check(library: JsonLibrary) -> CheckOperationResult:
        async with CrossrefClient(
            mailto=settings.crossref_mailto, timeout=settings.http_timeout
        ) as crossref, PubmedClient(
            email=settings.pubmed_email,
            api_key=settings.pubmed_api_key,
            timeout=settings.http_timeout,
        ) as pubmed:
            checker = ReferenceChecker(crossref, pubmed, check_metadata=check_metadata)
            return await check_references(library, checker, options)

    async def _fix(library: JsonLibrary, results: list[CheckResult]) -> FixInteractionResult:
        async with CrossrefClient(
            mailto=settings.crossref_mailto, timeout=settings.http_timeout
        ) as crossref:
            return await run_fix_interaction(
                results,
                library=library,
                find_item=library.find,
                presenter=TerminalChoicePresenter(
                    prompt=partial(typer.prompt, err=json_output), echo=interactive_echo
                ),
                registry=FixActionRegistry(fetch_metadata=crossref.fetch_metadata),
                on_message=interactive_echo,
                on_error=lambda message: typer.echo(message, err=True),
            )

    try:
        library = open_library(library_path)
        operation = asyncio.run(_check(library))

        if json_output and not fix:
            typer.echo(to_json(operation.model_dump(mode="json")))
            return

        interactive_echo(format_check_report(operation))

        fix_result: Optional[FixInteractionResult] = None
        if fix and operation.summary.warnings:
            interactive_echo()
            fix_result = asyncio.run(_fix(library, operation.results))
            interactive_echo()

        if json_output:
            payload = {
                "check": operation.model_dump(mode="json"),
                "fix": fix_result.model_dump(mode="json") if fix_result else None,
            }
            typer.echo(to_json(payload))
        elif fix_result is not None:
            typer.echo(format_fix_summary(fix_result))

    except ReflibError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
