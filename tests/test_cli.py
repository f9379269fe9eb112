"""
Tests for the command line interface.
"""
import pytest
from click.testing import CliRunner

from richness_report.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestBuildCommand:
    """Tests for `richness-report build`."""

    def test_build_writes_report(self, runner, polygon_file, occurrence_file, tmp_path):
        """The report file is written and the record summary printed."""
        output = tmp_path / "report.html"

        result = runner.invoke(main, [
            "build", "-p", str(polygon_file), "-o", str(occurrence_file),
            "--output", str(output), "--title", "CLI Report",
        ])

        assert result.exit_code == 0, result.output
        assert output.exists()
        assert "<title>CLI Report</title>" in output.read_text(encoding="utf-8")
        assert "1 of 2 occurrences fall in 2 conservation areas" in result.output

    def test_missing_source_exits_with_error(self, runner, tmp_path, occurrence_file):
        """Pipeline errors are reported by name with exit code 1."""
        result = runner.invoke(main, [
            "build", "-p", str(tmp_path / "missing.geojson"), "-o", str(occurrence_file),
            "--output", str(tmp_path / "report.html"),
        ])

        assert result.exit_code == 1
        assert "LoadError" in result.output
        assert not (tmp_path / "report.html").exists()

    def test_custom_column_names(self, runner, polygon_file, tmp_path):
        """Column options map non-default occurrence headers."""
        occurrences = tmp_path / "renamed.csv"
        occurrences.write_text("taxon,x,y\nEpidendrum sp.,-84.5,9.5\n")

        result = runner.invoke(main, [
            "build", "-p", str(polygon_file), "-o", str(occurrences),
            "--species-column", "taxon", "--lon-column", "x", "--lat-column", "y",
            "--output", str(tmp_path / "report.html"),
        ])

        assert result.exit_code == 0, result.output
        assert "1 of 1 occurrences" in result.output


class TestSummaryCommand:
    """Tests for `richness-report summary`."""

    def test_summary_prints_table(self, runner, polygon_file, occurrence_file):
        """Richness per area and record counts are printed."""
        result = runner.invoke(main, [
            "summary", "-p", str(polygon_file), "-o", str(occurrence_file),
        ])

        assert result.exit_code == 0, result.output
        assert "Conservation area" in result.output
        assert "Area1" in result.output
        assert "Area2" in result.output
        assert "Outside all areas:  1" in result.output
        assert "Epidendrum sp.: 1" in result.output

    def test_invalid_top_species(self, runner, polygon_file, occurrence_file):
        """A top-species value below one is rejected."""
        result = runner.invoke(main, [
            "summary", "-p", str(polygon_file), "-o", str(occurrence_file),
            "--top-species", "0",
        ])

        assert result.exit_code == 2


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
