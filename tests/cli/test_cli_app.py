"""Tests for the phenospine CLI."""

import pytest
from typer.testing import CliRunner

from phenospine import __version__
from phenospine.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from rebinding logging handlers to the runner's streams."""
    calls = []
    monkeypatch.setattr("phenospine.cli.app.configure_logging", lambda **kwargs: calls.append(kwargs))
    return calls


class TestVersion:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"phenospine {__version__}" in result.output


class TestRun:
    def test_run(self, cohort_dir):
        result = runner.invoke(app, ["run", str(cohort_dir / "cohort.yaml")])
        assert result.exit_code == 0, result.output
        assert "kif21a-P001" in result.output
        assert "Wrote 2 phenopackets" in result.output
        assert (cohort_dir / "out" / "kif21a-P002.json").exists()

    def test_run_with_out_and_logging_options(self, cohort_dir, tmp_path_factory, quiet_logging):
        out = tmp_path_factory.mktemp("cli-out")
        result = runner.invoke(
            app,
            ["run", str(cohort_dir / "cohort.yaml"), "--out", str(out), "--log-level", "DEBUG", "--json-logs"],
        )
        assert result.exit_code == 0, result.output
        assert len(list(out.iterdir())) == 2
        assert quiet_logging == [{"level": "DEBUG", "json_format": True}]

    def test_run_failure(self, cohort_dir):
        csv = cohort_dir / "patients.csv"
        csv.write_text(csv.read_text(encoding="utf-8").replace("Ptosis", "Droopy eyelid"), encoding="utf-8")
        result = runner.invoke(app, ["run", str(cohort_dir / "cohort.yaml")])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_config(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestValidate:
    def test_validate(self, cohort_dir):
        result = runner.invoke(app, ["validate", str(cohort_dir / "cohort.yaml")])
        assert result.exit_code == 0, result.output
        assert "OK patients: 3 rows" in result.output
        assert not (cohort_dir / "out").exists()

    def test_validate_reports_schema_errors(self, cohort_dir):
        config = cohort_dir / "cohort.yaml"
        config.write_text(
            config.read_text(encoding="utf-8").replace("[sex_mapping]", "[shout]"), encoding="utf-8"
        )
        result = runner.invoke(app, ["validate", str(config)])
        assert result.exit_code == 1
        assert "Unknown strategies" in result.output
