"""Тесты CLI `loom`."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from loom.cli import cli


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def workdir(tmp_path, runner):
    with runner.isolated_filesystem(temp_dir=tmp_path) as path:
        Path("targets.txt").write_text("a.com\nA.com \nb.com\n\nc.com\n", encoding="utf-8")
        Path("echo.py").write_text("import sys\nprint(sys.argv[-1])\n", encoding="utf-8")
        yield Path(path)


def _echo_args() -> list[str]:
    return ["--script", sys.executable, "--args", os.path.abspath("echo.py")]


class TestCli:
    def test_help(self, runner):
        result = runner.invoke(cli, ["-h"])
        assert result.exit_code == 0
        assert "--threads" in result.output
        assert "--dry-run" in result.output

    def test_script_required(self, runner, workdir):
        result = runner.invoke(cli, [])
        assert result.exit_code == 2

    def test_threads_must_be_positive(self, runner, workdir):
        result = runner.invoke(cli, ["-s", "x", "-n", "0"])
        assert result.exit_code == 2

    def test_missing_target_file(self, runner, workdir):
        result = runner.invoke(cli, ["-s", "x", "-t", "missing.txt"])
        assert result.exit_code == 1
        assert "does not exist" in result.output
        assert not Path("results.csv").exists()

    def test_runs_every_unique_target(self, runner, workdir):
        result = runner.invoke(cli, _echo_args() + ["-n", "2"])
        assert result.exit_code == 0, result.output
        lines = Path("results.csv").read_text(encoding="ascii").splitlines()
        assert sorted(lines) == ["a.com", "b.com", "c.com"]

    def test_truncates_previous_results(self, runner, workdir):
        Path("results.csv").write_text("stale\n", encoding="ascii")
        result = runner.invoke(cli, _echo_args())
        assert result.exit_code == 0, result.output
        assert "stale" not in Path("results.csv").read_text(encoding="ascii")

    def test_append_keeps_previous_results(self, runner, workdir):
        Path("results.csv").write_text("stale\n", encoding="ascii")
        result = runner.invoke(cli, _echo_args() + ["--append"])
        assert result.exit_code == 0, result.output
        lines = Path("results.csv").read_text(encoding="ascii").splitlines()
        assert lines[0] == "stale"
        assert sorted(lines[1:]) == ["a.com", "b.com", "c.com"]

    def test_custom_output_file(self, runner, workdir):
        result = runner.invoke(cli, _echo_args() + ["-o", "out.csv"])
        assert result.exit_code == 0, result.output
        assert Path("out.csv").exists()

    def test_blank_output_file_uses_default(self, runner, workdir):
        result = runner.invoke(cli, _echo_args() + ["-o", ""])
        assert result.exit_code == 0, result.output
        assert Path("results.csv").exists()

    def test_dry_run_writes_nothing(self, runner, workdir):
        result = runner.invoke(cli, ["-s", "/no/such/script", "-m", "-v"])
        assert result.exit_code == 0, result.output
        assert Path("results.csv").read_bytes() == b""
        assert "Целей: 3  потоков: 4" in result.output
        for target in ("a.com", "b.com", "c.com"):
            assert f"/no/such/script {target}" in result.output

    def test_spawn_failure_exits_nonzero(self, runner, workdir):
        result = runner.invoke(cli, ["-s", str(workdir / "no-such-script")])
        assert result.exit_code == 1
        assert result.output.count("FAILED") == 3
        assert Path("results.csv").read_bytes() == b""
