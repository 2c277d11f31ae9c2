"""Integration tests for CLI commands using CliRunner."""

import os
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from affinity_intake.cli.main import cli
from affinity_intake.persistence import RunStore


@pytest.fixture
def test_config(tmp_path):
    """Config without identity settings; the CLI does not need them."""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(f"""
duckdb_path: {tmp_path / "runs.duckdb"}
cache_dir: {tmp_path / "cache"}
model_version: v1
""")
    return config_path


@pytest.fixture
def inputs(tmp_path):
    """Targets named by Ensembl ID so no remote lookup is needed."""
    ligands = tmp_path / "ligands.csv"
    ligands.write_text("name,smiles\nethanol,CCO\nethylamine,CCN\n")
    targets = tmp_path / "targets.csv"
    targets.write_text("name,sequence\nENSG00000141510,MEEPQSDPSV\nENSG00000012048,\n")
    return ligands, targets


def _submit(runner, test_config, inputs, *extra):
    ligands, targets = inputs
    return runner.invoke(cli, [
        "--config", str(test_config),
        "submit",
        "--ligands", str(ligands),
        "--targets", str(targets),
        "--user-id", "alice",
        *extra,
    ])


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("info", "init-db", "submit", "runs", "serve"):
        assert command in result.output


def test_info_reports_missing_settings(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "info"])

    assert result.exit_code == 0
    assert "Model Version: v1" in result.output
    assert "Config Hash:" in result.output
    assert "identity.url" in result.output
    assert "EFO_0000565 (Leukemia)" in result.output


def test_init_db(test_config, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(test_config), "init-db"])

    assert result.exit_code == 0
    assert "0 runs" in result.output
    assert (tmp_path / "runs.duckdb").exists()


def test_submit(test_config, inputs, tmp_path):
    runner = CliRunner()
    result = _submit(runner, test_config, inputs, "--memo", "cli batch")

    assert result.exit_code == 0, result.output
    assert "Total:  4" in result.output
    assert "Queued: 2" in result.output
    assert "Failed: 2" in result.output

    with RunStore(tmp_path / "runs.duckdb") as store:
        df, total = store.list_runs("alice")
    assert total == 4
    assert set(df["memo"].to_list()) == {"cli batch"}


def test_submit_model_version_override(test_config, inputs, tmp_path):
    runner = CliRunner()
    result = _submit(runner, test_config, inputs, "--model-version", "v9")

    assert result.exit_code == 0, result.output
    with RunStore(tmp_path / "runs.duckdb") as store:
        versions = store.execute_query("SELECT DISTINCT model_version FROM runs")
    assert versions["model_version"].to_list() == ["v9"]


def test_submit_rejects_unknown_indication(test_config, inputs):
    runner = CliRunner()
    result = _submit(runner, test_config, inputs, "--indication", "EFO_0000000")

    assert result.exit_code == 1
    assert "Invalid indication" in result.output


def test_submit_requires_model_version(tmp_path, inputs):
    config_path = tmp_path / "no_version.yaml"
    config_path.write_text(f"""
duckdb_path: {tmp_path / "runs.duckdb"}
cache_dir: {tmp_path / "cache"}
""")

    runner = CliRunner()
    result = _submit(runner, config_path, inputs)

    assert result.exit_code == 1
    assert "model_version" in result.output


def test_runs_lists_submitted(test_config, inputs):
    runner = CliRunner()
    _submit(runner, test_config, inputs)

    result = runner.invoke(cli, [
        "--config", str(test_config),
        "runs", "--user-id", "alice", "--sort", "status_asc",
    ])

    assert result.exit_code == 0, result.output
    assert "4 runs" in result.output
    assert "sequence_missing" in result.output
    assert "ethanol" in result.output


def test_runs_invalid_sort(test_config):
    runner = CliRunner()
    result = runner.invoke(cli, [
        "--config", str(test_config),
        "runs", "--user-id", "alice", "--sort", "smiles",
    ])

    assert result.exit_code == 2


def test_serve_starts_uvicorn(test_config, monkeypatch):
    monkeypatch.setenv("AFFINITY_INTAKE_CONFIG", "placeholder")
    monkeypatch.delenv("AFFINITY_INTAKE_CONFIG")

    with patch("affinity_intake.cli.serve_cmd.uvicorn.run") as mock_run:
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", str(test_config), "serve", "--port", "9000"])

    assert result.exit_code == 0, result.output
    args, kwargs = mock_run.call_args
    assert args[0] == "affinity_intake.api.main:create_logged_app"
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
    assert os.environ["AFFINITY_INTAKE_CONFIG"] == str(test_config)
