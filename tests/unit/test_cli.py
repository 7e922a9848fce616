"""
Tests for the command line interface.
"""

import json

from typer.testing import CliRunner

from vigil.cli.main import app
from vigil.cli.watchers import check_watcher

runner = CliRunner()


class TestCheckWatcher:
    """Tests for check_watcher."""

    def test_valid(self, make_record) -> None:
        """Test a complete watcher has no problems."""
        watcher_id, schedule, problems = check_watcher(make_record("w1"))

        assert watcher_id == "w1"
        assert schedule == "5"
        assert problems == []

    def test_fractional_interval(self, make_record) -> None:
        """Test a non-integral interval is reported."""
        _, _, problems = check_watcher(make_record("w1", trigger={"schedule": {"interval": 2.5}}))

        assert any("schedule" in p for p in problems)

    def test_missing_condition(self, make_record) -> None:
        """Test an alert watcher without a condition is reported."""
        _, _, problems = check_watcher(make_record("w1", condition=None))

        assert problems == ["search request or condition missing"]

    def test_report_watcher_needs_no_search(self, make_record) -> None:
        """Test report-only watchers are fine without a search."""
        record = make_record("r1", report=True, input={}, condition=None, actions={"daily": {"report": {}}})

        assert check_watcher(record)[2] == []


class TestValidateCommand:
    """Tests for `vigil watchers validate`."""

    def test_all_valid(self, tmp_path, make_record) -> None:
        """Test exit code 0 when every watcher is valid."""
        path = tmp_path / "watchers.json"
        path.write_text(json.dumps([make_record("w1"), make_record("w2")]))

        result = runner.invoke(app, ["watchers", "validate", str(path)])

        assert result.exit_code == 0
        assert "All 2 watcher(s) valid" in result.output

    def test_with_problems(self, tmp_path, make_record) -> None:
        """Test exit code 1 when a watcher has problems."""
        path = tmp_path / "watchers.json"
        path.write_text(json.dumps([
            make_record("w1"),
            make_record("w2", trigger={"schedule": {"later": "whenever"}}),
        ]))

        result = runner.invoke(app, ["watchers", "validate", str(path)])

        assert result.exit_code == 1
        assert "1 of 2 watcher(s) have problems" in result.output

    def test_missing_file(self, tmp_path) -> None:
        """Test a missing file exits with an error."""
        result = runner.invoke(app, ["watchers", "validate", str(tmp_path / "nope.json")])

        assert result.exit_code == 1


class TestFireCommand:
    """Tests for `vigil watchers fire`."""

    def test_unknown_watcher(self, tmp_path, make_record) -> None:
        """Test firing an unknown id exits with an error."""
        path = tmp_path / "watchers.json"
        path.write_text(json.dumps([make_record("w1")]))

        result = runner.invoke(app, ["watchers", "fire", str(path), "nope"])

        assert result.exit_code == 1
        assert "Watcher not found" in result.output

    def test_disabled_watcher(self, tmp_path, make_record) -> None:
        """Test firing a disabled watcher reports the outcome without searching."""
        path = tmp_path / "watchers.json"
        path.write_text(json.dumps([make_record("w1", disable=True)]))

        result = runner.invoke(app, ["watchers", "fire", str(path), "w1"])

        assert result.exit_code == 0
        assert "w1: disabled" in result.output
