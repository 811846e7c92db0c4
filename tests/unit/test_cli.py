"""
CLI tests. Only offline paths: repair, and acquire on an unrecognized URL.
"""

import json

import pytest
from typer.testing import CliRunner

from storycraft.cli.main import app


PITCH = "A retro music video reimagined as a heartfelt short film about keeping promises."


@pytest.fixture
def runner():
    return CliRunner()


class TestRepairCommand:
    """Tests for `storycraft repair`"""

    def test_valid_record(self, runner, tmp_path):
        raw = tmp_path / "response.txt"
        raw.write_text('```json\n{"generatedPitch": "' + PITCH + '", "analysis": {"keyTopics": []}}\n```', encoding="utf-8")
        result = runner.invoke(app, ["repair", str(raw)])
        assert result.exit_code == 0
        assert PITCH in result.output

    def test_unrepairable(self, runner, tmp_path):
        raw = tmp_path / "response.txt"
        raw.write_text("Sorry, no JSON today.", encoding="utf-8")
        result = runner.invoke(app, ["repair", str(raw)])
        assert result.exit_code == 1
        assert "All parsing strategies failed" in result.output

    def test_rejected_input(self, runner, tmp_path):
        raw = tmp_path / "response.txt"
        raw.write_text("{" + "x" * 60_000 + "}", encoding="utf-8")
        assert runner.invoke(app, ["repair", str(raw)]).exit_code == 2

    def test_stdin(self, runner):
        payload = json.dumps({
            "analysis": {"keyTopics": ["music"], "sentiment": "positive", "coreMessage": "c", "targetAudience": "t"},
            "generatedPitch": PITCH,
        })
        result = runner.invoke(app, ["repair", "-"], input=payload)
        assert result.exit_code == 0


def test_acquire_invalid_url_exits_with_soft_error(runner):
    result = runner.invoke(app, ["acquire", "not-a-url"])
    assert result.exit_code == 2
    assert "invalid_reference" in result.output
