"""Tests for CLI commands.

Remote providers are never contacted: the check and fix entry points are
patched where the command module imports them.
"""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from reflib_cli.main import app
from reflib_contracts import (
    CheckFinding,
    CheckFindingType,
    CheckOperationResult,
    CheckResult,
    CheckStatus,
    CheckSummary,
    FieldDiff,
    FindingDetails,
    FixInteractionResult,
)

pytestmark = pytest.mark.unit

CHECKED_AT = datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc)


@pytest.fixture
def operation() -> CheckOperationResult:
    return CheckOperationResult(
        results=[
            CheckResult(
                id="smith2020",
                uuid="u-smith",
                status=CheckStatus.WARNING,
                findings=[
                    CheckFinding(
                        type=CheckFindingType.RETRACTED,
                        message="This article was retracted on 2021-06-02",
                    ),
                    CheckFinding(
                        type=CheckFindingType.METADATA_OUTDATED,
                        message="Remote metadata has been updated since import",
                        details=FindingDetails(
                            updated_fields=["page"],
                            field_diffs=[FieldDiff(field="page", local=None, remote="1-10")],
                        ),
                    ),
                ],
                checked_at=CHECKED_AT,
            ),
            CheckResult(id="jones2021", status=CheckStatus.OK, checked_at=CHECKED_AT),
        ],
        summary=CheckSummary(total=2, ok=1, warnings=1, skipped=0),
    )


# ============================================================================
# check
# ============================================================================


class TestCheckCommand:
    """Tests for the check command."""

    def test_requires_ids_or_all(self, cli_runner):
        """Test check without ids or --all exits 1."""
        result = cli_runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "Specify citation ids or --all" in result.output

    def test_text_report(self, cli_runner, library_file, operation):
        """Test the text report lists findings, diffs and the summary."""
        with patch(
            "reflib_cli.commands.check.check_references",
            new=AsyncMock(return_value=operation),
        ):
            result = cli_runner.invoke(app, ["check", "--all", "--library", str(library_file)])

        assert result.exit_code == 0
        assert "[RETRACTED] smith2020: This article was retracted on 2021-06-02" in result.stdout
        assert "[OUTDATED] smith2020" in result.stdout
        assert "page: None -> '1-10'" in result.stdout
        assert "[OK] jones2021" in result.stdout
        assert "Checked 2: 1 ok, 1 warnings, 0 skipped" in result.stdout

    def test_json_report(self, cli_runner, library_file, operation):
        """Test --format json prints the operation as JSON."""
        with patch(
            "reflib_cli.commands.check.check_references",
            new=AsyncMock(return_value=operation),
        ):
            result = cli_runner.invoke(
                app, ["check", "--all", "--format", "json", "--library", str(library_file)]
            )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["summary"] == {"total": 2, "ok": 1, "warnings": 1, "skipped": 0}
        assert payload["results"][0]["findings"][0]["type"] == "retracted"

    def test_options_forwarded(self, cli_runner, library_file, operation):
        """Test command options reach check_references."""
        mock_check = AsyncMock(return_value=operation)
        with patch("reflib_cli.commands.check.check_references", new=mock_check):
            result = cli_runner.invoke(
                app,
                [
                    "check",
                    "smith2020",
                    "jones2021",
                    "--skip-days",
                    "0",
                    "--no-save",
                    "--library",
                    str(library_file),
                ],
            )

        assert result.exit_code == 0
        library, checker, options = mock_check.await_args.args
        assert options.identifiers == ["smith2020", "jones2021"]
        assert options.all is False
        assert options.skip_days == 0
        assert options.save is False
        assert library.find("smith2020") is not None
        assert checker.check_metadata is True

    def test_config_defaults_used(self, cli_runner, library_file, operation, monkeypatch):
        """Test unset options fall back to settings."""
        monkeypatch.setenv("CHECK_SKIP_DAYS", "30")
        monkeypatch.setenv("CHECK_METADATA", "false")
        mock_check = AsyncMock(return_value=operation)
        with patch("reflib_cli.commands.check.check_references", new=mock_check):
            cli_runner.invoke(app, ["check", "--all", "--library", str(library_file)])

        _, checker, options = mock_check.await_args.args
        assert options.skip_days == 30
        assert checker.check_metadata is False

    def test_unknown_reference(self, cli_runner, library_file):
        """Test an unknown id exits 1 with an error."""
        result = cli_runner.invoke(app, ["check", "ghost", "--library", str(library_file)])

        assert result.exit_code == 1
        assert "Error: Reference not found: ghost" in result.output

    def test_corrupt_library(self, cli_runner, tmp_path):
        """Test an unreadable library exits 1."""
        path = tmp_path / "broken.json"
        path.write_text("not json", encoding="utf-8")

        result = cli_runner.invoke(app, ["check", "--all", "--library", str(path)])

        assert result.exit_code == 1
        assert "Error: Cannot read library" in result.output

    def test_fix_runs_interaction(self, cli_runner, library_file, operation):
        """Test --fix runs the fix loop and prints its summary."""
        mock_fix = AsyncMock(
            return_value=FixInteractionResult(
                total_findings=2, applied=1, skipped=0, removed=["smith2020"]
            )
        )
        with patch(
            "reflib_cli.commands.check.check_references",
            new=AsyncMock(return_value=operation),
        ), patch("reflib_cli.commands.check.run_fix_interaction", new=mock_fix):
            result = cli_runner.invoke(
                app, ["check", "--all", "--fix", "--library", str(library_file)]
            )

        assert result.exit_code == 0
        assert mock_fix.await_args.args[0] == operation.results
        assert mock_fix.await_args.kwargs["find_item"].__self__ is (
            mock_fix.await_args.kwargs["library"]
        )
        assert "Fix summary: 2 findings, 1 applied, 0 skipped, removed: smith2020" in (
            result.stdout
        )

    def test_fix_json_output_is_one_document(
        self, cli_runner, library_file, operation, capsys
    ):
        """Test --format json --fix keeps the report and transcript off stdout."""
        mock_fix = AsyncMock(return_value=FixInteractionResult(total_findings=2, applied=1))
        with patch(
            "reflib_cli.commands.check.check_references",
            new=AsyncMock(return_value=operation),
        ), patch("reflib_cli.commands.check.run_fix_interaction", new=mock_fix):
            result = cli_runner.invoke(
                app,
                ["check", "--all", "--fix", "--format", "json", "--library", str(library_file)],
            )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["check"]["summary"] == {"total": 2, "ok": 1, "warnings": 1, "skipped": 0}
        assert payload["fix"] == {"total_findings": 2, "applied": 1, "skipped": 0, "removed": []}
        assert "Checked 2: 1 ok, 1 warnings, 0 skipped" in result.stderr

        mock_fix.await_args.kwargs["on_message"]("  Added tag")
        captured = capsys.readouterr()
        assert captured.err == "  Added tag\n"
        assert captured.out == ""

    def test_fix_json_output_without_warnings(self, cli_runner, library_file):
        """Test the fix entry is null when there was nothing to fix."""
        clean = CheckOperationResult(
            results=[CheckResult(id="jones2021", status=CheckStatus.OK)],
            summary=CheckSummary(total=1, ok=1),
        )
        with patch(
            "reflib_cli.commands.check.check_references",
            new=AsyncMock(return_value=clean),
        ):
            result = cli_runner.invoke(
                app,
                ["check", "--all", "--fix", "--format", "json", "--library", str(library_file)],
            )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["fix"] is None
        assert payload["check"]["summary"]["ok"] == 1

    def test_fix_skipped_without_warnings(self, cli_runner, library_file):
        """Test --fix does nothing when there are no warnings."""
        clean = CheckOperationResult(
            results=[CheckResult(id="jones2021", status=CheckStatus.OK)],
            summary=CheckSummary(total=1, ok=1),
        )
        mock_fix = AsyncMock()
        with patch(
            "reflib_cli.commands.check.check_references",
            new=AsyncMock(return_value=clean),
        ), patch("reflib_cli.commands.check.run_fix_interaction", new=mock_fix):
            result = cli_runner.invoke(
                app, ["check", "--all", "--fix", "--library", str(library_file)]
            )

        assert result.exit_code == 0
        mock_fix.assert_not_awaited()


# ============================================================================
# duplicates
# ============================================================================


class TestDuplicatesCommand:
    """Tests for the duplicates command."""

    def test_doi_duplicate(self, cli_runner, library_file, tmp_path):
        """Test a DOI duplicate is reported in text."""
        candidate = tmp_path / "candidate.json"
        candidate.write_text(
            json.dumps({"id": "new", "DOI": "https://doi.org/10.1000/ABC"}), encoding="utf-8"
        )

        result = cli_runner.invoke(
            app, ["duplicates", str(candidate), "--library", str(library_file)]
        )

        assert result.exit_code == 0
        assert "new: 1 duplicate(s)" in result.stdout
        assert "[doi] smith2020: Machine Learning for Reference Management" in result.stdout

    def test_array_json_output(self, cli_runner, library_file, tmp_path):
        """Test an array of candidates reported as JSON."""
        candidate = tmp_path / "batch.json"
        candidate.write_text(
            json.dumps(
                [
                    {
                        "title": "Machine learning for reference management",
                        "author": [{"family": "Smith", "given": "J."}],
                        "issued": {"date-parts": [[2020, 1]]},
                    },
                    {"id": "fresh", "title": "Unrelated"},
                ]
            ),
            encoding="utf-8",
        )

        result = cli_runner.invoke(
            app,
            ["duplicates", str(candidate), "--format", "json", "--library", str(library_file)],
        )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)["results"]
        assert payload[0]["id"] == "candidate-1"
        assert payload[0]["is_duplicate"] is True
        assert payload[0]["matches"][0]["type"] == "title-author-year"
        assert payload[0]["matches"][0]["existing"]["id"] == "smith2020"
        assert payload[1] == {"id": "fresh", "is_duplicate": False, "matches": []}

    def test_no_duplicates(self, cli_runner, library_file, tmp_path):
        """Test a candidate without duplicates."""
        candidate = tmp_path / "candidate.json"
        candidate.write_text(json.dumps({"id": "new", "PMID": "999"}), encoding="utf-8")

        result = cli_runner.invoke(
            app, ["duplicates", str(candidate), "--library", str(library_file)]
        )

        assert result.exit_code == 0
        assert "new: no duplicates" in result.stdout

    def test_invalid_candidate_file(self, cli_runner, library_file, tmp_path):
        """Test non-object candidates exit 1."""
        candidate = tmp_path / "candidate.json"
        candidate.write_text("[1, 2]", encoding="utf-8")

        result = cli_runner.invoke(
            app, ["duplicates", str(candidate), "--library", str(library_file)]
        )

        assert result.exit_code == 1
        assert "is not a JSON object" in result.output
