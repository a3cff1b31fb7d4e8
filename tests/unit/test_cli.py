"""Tests for the command-line interface."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from ecoaudit.audit.orchestrator import build_audit_result
from ecoaudit.audit.payload import AuditPayload
from ecoaudit.cli import cli
from ecoaudit.errors import AnalysisFailed, NavigationFailed
from ecoaudit.protocols import PageMetrics
from ecoaudit.scoring import ScoreCalculator

URL = "https://example.com/"


@pytest.fixture
def config_file(tmp_path, fake_browser_path):
    path = tmp_path / "ecoaudit.yaml"
    path.write_text(
        f"browser:\n"
        f"  executable_path: {fake_browser_path}\n"
        f"  settle_seconds: 0\n"
        f"monitoring:\n"
        f"  log_file: {tmp_path / 'logs' / 'cli.log'}\n"
    )
    return path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def quick_result():
    return ScoreCalculator.compute(PageMetrics(dom_elements=120, requests=8, size_kb=300.0), URL)


def invoke(runner, config_file, *args):
    return runner.invoke(cli, ["--config", str(config_file), *args])


class TestQuickCommand:
    def test_json_output(self, runner, config_file, quick_result):
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_quick", new=AsyncMock(return_value=quick_result)):
            result = invoke(runner, config_file, "quick", URL, "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["url"] == URL
        assert data["grade"] == quick_result.grade.value
        assert data["requests"] == 8

    def test_table_output(self, runner, config_file, quick_result):
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_quick", new=AsyncMock(return_value=quick_result)):
            result = invoke(runner, config_file, "quick", URL)

        assert result.exit_code == 0, result.output
        assert "Grade" in result.output
        assert quick_result.grade.label in result.output

    def test_output_file(self, runner, config_file, quick_result, tmp_path):
        output = tmp_path / "out" / "quick.json"
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_quick", new=AsyncMock(return_value=quick_result)):
            result = invoke(runner, config_file, "quick", URL, "--output", str(output))

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text())["score"] == quick_result.score

    def test_error_exits_with_status_1(self, runner, config_file):
        error = NavigationFailed("net::ERR_NAME_NOT_RESOLVED")
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_quick", new=AsyncMock(side_effect=error)):
            result = invoke(runner, config_file, "quick", URL)

        assert result.exit_code == 1
        assert "Navigation failed: net::ERR_NAME_NOT_RESOLVED" in result.output


class TestFullCommand:
    @pytest.fixture
    def audit_result(self, make_payload):
        requests = [{"url": "https://cdn.example.com/a.js", "domain": "cdn.example.com", "protocol": "h2"}]
        return build_audit_result(AuditPayload.model_validate(make_payload(requests=requests)))

    def test_json_output(self, runner, config_file, audit_result):
        mock = AsyncMock(return_value=audit_result)
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_full", new=mock):
            result = invoke(runner, config_file, "full", URL, "--html", "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["ecoindex"]["score"] == audit_result.ecoindex.score
        assert data["lighthouse"]["bestPractices"] == 100
        assert data["analytics"]["domainStats"]["domains"][0]["domain"] == "cdn.example.com"
        assert mock.await_args.kwargs["include_html"] is True

    def test_table_output(self, runner, config_file, audit_result):
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_full", new=AsyncMock(return_value=audit_result)):
            result = invoke(runner, config_file, "full", URL)

        assert result.exit_code == 0, result.output
        assert "Performance" in result.output
        assert "Requests by domain" in result.output

    def test_analysis_failure(self, runner, config_file):
        error = AnalysisFailed("LH_FAILED", "Chrome crashed")
        with patch("ecoaudit.pipeline.AnalysisPipeline.analyze_full", new=AsyncMock(side_effect=error)):
            result = invoke(runner, config_file, "full", URL)

        assert result.exit_code == 1
        assert "Analysis failed: [LH_FAILED] Chrome crashed" in result.output


class TestConfigCommand:
    def test_prints_effective_config(self, runner, config_file):
        result = invoke(runner, config_file, "config")

        assert result.exit_code == 0, result.output
        assert '"settle_seconds": 0.0' in result.output

    def test_invalid_config(self, runner, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("audit:\n  timeout_seconds: -5\n")
        result = runner.invoke(cli, ["--config", str(path), "config"])

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output
