"""Shared fixtures for CLI tests."""

import json
import logging

import pytest
import structlog
from typer.testing import CliRunner

from reflib_common.config import get_settings


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_settings(monkeypatch, tmp_path):
    """Keep log output off stdout assertions and ignore any local .env."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.setenv("LOG_FORMAT", "json")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    # Commands bind log output to the runner's streams, which close after invoke.
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def library_file(tmp_path):
    path = tmp_path / "library.json"
    path.write_text(
        json.dumps(
            [
                {
                    "id": "smith2020",
                    "type": "article-journal",
                    "title": "Machine Learning for Reference Management",
                    "author": [{"family": "Smith", "given": "John"}],
                    "issued": {"date-parts": [[2020]]},
                    "DOI": "10.1000/abc",
                    "custom": {"uuid": "u-smith"},
                },
                {
                    "id": "jones2021",
                    "title": "Another Study",
                    "PMID": "123456",
                    "custom": {"uuid": "u-jones"},
                },
            ]
        ),
        encoding="utf-8",
    )
    return path
