"""
Tests for the serginho click CLI.
"""

import json
from unittest.mock import patch

from click.testing import CliRunner

from serginho.cli import cli
from serginho.routing.orchestrator import Orchestrator


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("serve", "ask", "classify"):
        assert command in result.output


def test_classify():
    result = CliRunner().invoke(cli, ["classify", "Como criar uma função em React?"])
    assert result.exit_code == 0
    assert result.output.strip() == "intent=technical tier=expert"


def test_ask_prints_result(fake_providers):
    orchestrator = Orchestrator(list(fake_providers.values()))
    with patch("serginho.cli.create_orchestrator", return_value=orchestrator), \
            patch("serginho.cli.configure_logging"):
        result = CliRunner().invoke(cli, ["ask", "oi", "--session", "cli"])

    assert result.exit_code == 0, result.output
    body = json.loads(result.stdout)
    assert body["provider"] == "llama-8b"
    assert body["source"] == "sequential"
    assert [e.prompt for e in orchestrator.sessions.get("cli")] == ["oi"]
    assert all(p.closed for p in fake_providers.values())


def test_ask_hybrid(fake_providers):
    orchestrator = Orchestrator(list(fake_providers.values()))
    with patch("serginho.cli.create_orchestrator", return_value=orchestrator), \
            patch("serginho.cli.configure_logging"):
        result = CliRunner().invoke(cli, ["ask", "oi", "--hybrid"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["source"] == "parallel"


def test_ask_reports_total_failure(fake_providers):
    for provider in fake_providers.values():
        provider.fail = True
    orchestrator = Orchestrator(list(fake_providers.values()))
    with patch("serginho.cli.create_orchestrator", return_value=orchestrator), \
            patch("serginho.cli.configure_logging"):
        result = CliRunner().invoke(cli, ["ask", "oi"])

    assert result.exit_code == 1
