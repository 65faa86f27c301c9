"""
CLI integration tests.

Runs the click commands end to end against a JSON cost export on disk.
"""

import json

import pytest
from click.testing import CliRunner

from src.main import cli
from tests.conftest import SUB_B


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.integration
class TestSummaryCommand:
    """Test cases for the summary command."""

    def test_summary_table(self, runner, json_export_file):
        result = runner.invoke(cli, ["summary", str(json_export_file)])

        assert result.exit_code == 0, result.output
        assert "Cost Summary" in result.output
        assert "Total Cost: 337.50 USD" in result.output
        assert "Subscriptions: 2" in result.output
        assert "Trend: +100.0% (up)" in result.output

    def test_summary_json(self, runner, json_export_file):
        result = runner.invoke(cli, ["summary", str(json_export_file), "--format", "json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["total_local"] == pytest.approx(337.5)
        assert data["trend_direction"] == "up"

    def test_subscription_scope(self, runner, json_export_file):
        result = runner.invoke(cli, ["summary", str(json_export_file), "-s", SUB_B])

        assert result.exit_code == 0, result.output
        assert "Total Cost: 130.50 USD" in result.output
        assert "Subscriptions: 1" in result.output

    def test_inverted_date_range(self, runner, json_export_file):
        result = runner.invoke(
            cli,
            ["summary", str(json_export_file), "--start-date", "2024-03-03", "--end-date", "2024-03-01"],
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_missing_file(self, runner, temp_dir):
        result = runner.invoke(cli, ["summary", str(temp_dir / "missing.json")])
        assert result.exit_code == 2

    def test_malformed_file(self, runner, temp_dir):
        path = temp_dir / "broken.json"
        path.write_text("{oops", encoding="utf-8")

        result = runner.invoke(cli, ["summary", str(path)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output


@pytest.mark.integration
class TestBreakdownCommand:
    """Test cases for the breakdown command."""

    def test_category_breakdown(self, runner, json_export_file):
        result = runner.invoke(cli, ["breakdown", str(json_export_file)])

        assert result.exit_code == 0, result.output
        assert "Daily cost by category" in result.output
        assert "1. Virtual Machines: 292.50 USD (86.7%)" in result.output
        assert "Other" not in result.output

    def test_top_n_adds_other(self, runner, json_export_file):
        result = runner.invoke(cli, ["breakdown", str(json_export_file), "--top-n", "1"])

        assert result.exit_code == 0, result.output
        assert "2. Other: 45.00 USD" in result.output

    def test_json_output(self, runner, json_export_file):
        result = runner.invoke(
            cli, ["breakdown", str(json_export_file), "--view", "resource", "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["view"] == "resource"
        assert data["datasets"][-1]["is_other"] is True

    def test_empty_selection(self, runner, json_export_file):
        result = runner.invoke(cli, ["breakdown", str(json_export_file), "--category", "Quantum"])

        assert result.exit_code == 0, result.output
        assert "No data for the current selection" in result.output

    def test_picks_are_exclusive_across_dimensions(self, runner, json_export_file):
        result = runner.invoke(
            cli, ["breakdown", str(json_export_file), "--category", "Storage", "--meter", "D2s v3"]
        )
        assert result.exit_code == 2
        assert "exclusive" in result.output

    def test_unknown_resource_warns(self, runner, json_export_file):
        result = runner.invoke(
            cli, ["breakdown", str(json_export_file), "--resource", "/subscriptions/x/nothing"]
        )
        assert result.exit_code == 0, result.output
        assert "Warning: no cost lines for resource" in result.output


@pytest.mark.integration
class TestTrendAndDrilldown:
    """Test cases for the trend and drilldown commands."""

    def test_trend(self, runner, json_export_file):
        result = runner.invoke(cli, ["trend", str(json_export_file), "--category", "Storage"])

        assert result.exit_code == 0, result.output
        lines = [line for line in result.output.splitlines() if line.startswith("2024-")]
        assert len(lines) == 3
        assert "7.00" in lines[0]

    def test_trend_json(self, runner, json_export_file):
        result = runner.invoke(
            cli, ["trend", str(json_export_file), "--start-date", "2024-03-02", "--format", "json"]
        )

        assert result.exit_code == 0, result.output
        assert [entry["day"] for entry in json.loads(result.output)] == ["2024-03-02", "2024-03-03"]

    def test_drilldown_follows_picks(self, runner, json_export_file):
        result = runner.invoke(
            cli, ["drilldown", str(json_export_file), "--category", "Storage", "--depth", "1"]
        )

        assert result.exit_code == 0, result.output
        assert "Storage: 31.50 USD (6 items)" in result.output
        assert "Bandwidth" not in result.output

    def test_drilldown_depth_bounds(self, runner, json_export_file):
        result = runner.invoke(cli, ["drilldown", str(json_export_file), "--depth", "9"])
        assert result.exit_code == 2


@pytest.mark.integration
class TestConfigInfo:
    """Test cases for the config-info command."""

    def test_config_info(self, runner):
        result = runner.invoke(cli, ["config-info"])

        assert result.exit_code == 0, result.output
        assert "Top-N entities: 15" in result.output
        assert "EUR: 1.1" in result.output
