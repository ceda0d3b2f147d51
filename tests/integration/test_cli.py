"""
Integration tests for the refgraph command line.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from refgraph import __version__
from refgraph.main import cli

SERVICE = """
package app;

public class Service {
    public int work(int n) {
        return n * 2;
    }

    public int twice(int n) {
        return work(work(n));
    }
}
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(write_project) -> Path:
    return write_project({"app/Service.java": SERVICE})


class TestAnalyzeCommand:
    """Tests for `refgraph analyze`."""

    def test_writes_reports(self, runner: CliRunner, project: Path):
        """Test a default run writes both reports to the project root."""
        result = runner.invoke(cli, ["-p", str(project), "analyze", "--no-graph"])
        assert result.exit_code == 0, result.output
        assert "Analysis Summary" in result.output
        assert (project / "method-references.txt").exists()
        assert (project / "class-references.txt").exists()

    def test_output_dir_and_workers(self, runner: CliRunner, project: Path, tmp_path: Path):
        """Test that --output-dir redirects the reports."""
        out = tmp_path / "reports"
        result = runner.invoke(cli, ["-p", str(project), "analyze", "-o", str(out), "-w", "2"])
        assert result.exit_code == 0, result.output
        assert (out / "method-references.txt").read_text().startswith("Method Reference Analysis Results")
        assert not (project / "method-references.txt").exists()

    def test_graph_then_edges(self, runner: CliRunner, project: Path, tmp_path: Path):
        """Test projecting into a database and listing its edges."""
        db = tmp_path / "graph.db"
        result = runner.invoke(cli, ["-p", str(project), "analyze", "--graph", "--db", str(db)])
        assert result.exit_code == 0, result.output
        assert "Edges projected" in result.output
        assert db.exists()

        listed = runner.invoke(cli, ["-p", str(project), "edges", "--db", str(db)])
        assert listed.exit_code == 0, listed.output
        assert "Edges (1)" in listed.output

    def test_missing_build_descriptor(self, runner: CliRunner, tmp_path: Path):
        """Test that a project without pom.xml exits with an error."""
        (tmp_path / "src" / "main" / "java").mkdir(parents=True)
        result = runner.invoke(cli, ["-p", str(tmp_path), "analyze"])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_worker_count(self, runner: CliRunner, project: Path):
        """Test that worker counts outside 1..64 are rejected by the CLI."""
        result = runner.invoke(cli, ["-p", str(project), "analyze", "-w", "0"])
        assert result.exit_code == 2


class TestOtherCommands:
    """Tests for the listing commands."""

    def test_definitions(self, runner: CliRunner, project: Path):
        """Test that the definition table lists project types."""
        result = runner.invoke(cli, ["-p", str(project), "definitions"])
        assert result.exit_code == 0, result.output
        assert "app.Service" in result.output
        assert not (project / "method-references.txt").exists()

    def test_edges_missing_database(self, runner: CliRunner, project: Path, tmp_path: Path):
        """Test that listing edges without a database fails."""
        result = runner.invoke(cli, ["-p", str(project), "edges", "--db", str(tmp_path / "absent.db")])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_version(self, runner: CliRunner):
        """Test that --version prints the package version."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_file(self, runner: CliRunner, project: Path):
        """Test that --config supplies report names."""
        config = project / "custom.toml"
        config.write_text('[reports]\nmethod_report_name = "calls.txt"\n')
        result = runner.invoke(cli, ["-c", str(config), "-p", str(project), "analyze"])
        assert result.exit_code == 0, result.output
        assert (project / "calls.txt").exists()

    def test_config_file_names_project(self, runner: CliRunner, project: Path, tmp_path: Path):
        """Test that the project root named in a config file is used without -p."""
        config = tmp_path / "refgraph.toml"
        config.write_text(f'project_root = "{project.as_posix()}"\n')
        result = runner.invoke(cli, ["-c", str(config), "definitions"])
        assert result.exit_code == 0, result.output
        assert "app.Service" in result.output


class TestConfigurationErrors:
    """Tests for configuration problems reported by the CLI."""

    def test_invalid_value_exits(self, runner: CliRunner, project: Path):
        """Test that an invalid config value prints an error and exits with 1."""
        config = project / "bad.toml"
        config.write_text('log_level = "LOUD"\n')
        result = runner.invoke(cli, ["-c", str(config), "-p", str(project), "analyze"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "log_level" in result.output

    def test_unparsable_file_exits(self, runner: CliRunner, project: Path):
        """Test that a config file with a syntax error prints an error and exits with 1."""
        config = project / "bad.json"
        config.write_text("{")
        result = runner.invoke(cli, ["-c", str(config), "-p", str(project), "analyze"])
        assert result.exit_code == 1
        assert "Cannot parse" in result.output
