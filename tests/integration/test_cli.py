"""CLI tests using click's runner."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from shopboard import __version__
from shopboard.cli.commands.root import cli
from shopboard.debug_log import teardown_debug_logging

if TYPE_CHECKING:
    from pathlib import Path

pytestmark = pytest.mark.integration

WIDE = {"COLUMNS": "240"}


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == f"shopboard {__version__}"


def test_show_is_the_default_command(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--backend", "memory"], env=WIDE)
    assert result.exit_code == 0, result.output
    assert "Work orders (6)" in result.output
    assert "In Progress (1/10)" in result.output
    assert "WO-004" in result.output


def test_show_applies_filters(runner: CliRunner) -> None:
    result = runner.invoke(
        cli, ["--backend", "memory", "show", "--make", "toyota", "--priority", "high"], env=WIDE
    )
    assert result.exit_code == 0, result.output
    assert "Work orders (1)" in result.output
    assert "WO-001" in result.output
    assert "WO-006" not in result.output


def test_move_by_work_order_number(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--backend", "memory", "move", "WO-003", "approved"])
    assert result.exit_code == 0, result.output
    assert "Moved WO-003 to Approved" in result.output


def test_rejected_move_exits_with_error(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--backend", "memory", "move", "WO-002", "pending"])
    assert result.exit_code == 1
    assert "Cannot move work order from completed to pending" in result.output


def test_unknown_work_order(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--backend", "memory", "move", "WO-999", "approved"])
    assert result.exit_code == 1
    assert "Work order WO-999 not found" in result.output


def test_assign_and_unassign(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--backend", "memory", "assign", "WO-003", "mech-tom"])
    assert result.exit_code == 0, result.output
    assert "Assigned WO-003 to Tom Wilson" in result.output

    result = runner.invoke(cli, ["--backend", "memory", "assign", "WO-001", "none"])
    assert result.exit_code == 0, result.output
    assert "Assigned WO-001 to nobody" in result.output


def test_sqlite_database_keeps_moves(runner: CliRunner, tmp_path: Path) -> None:
    db = str(tmp_path / "shop.db")
    result = runner.invoke(cli, ["--db", db, "move", "WO-004", "in_progress"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(cli, ["--db", db, "show"], env=WIDE)
    assert result.exit_code == 0, result.output
    assert "In Progress (2/10)" in result.output


def test_watch_stops_after_duration(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--backend", "memory", "watch", "--duration", "0.05"], env=WIDE)
    assert result.exit_code == 0, result.output
    assert "Work orders (6)" in result.output


def test_config_prints_toml_and_paths(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("[columns.assigned]\nwip_limit = 3\n", encoding="utf-8")

    result = runner.invoke(cli, ["--config", str(config_path), "config", "--paths"])
    assert result.exit_code == 0, result.output
    assert "[columns.assigned]" in result.output
    assert f"config file: {config_path}" in result.output


def test_config_set_wip_keeps_comments(runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("# shop floor limits\n[sync]\npoll_interval = 20\n", encoding="utf-8")

    result = runner.invoke(
        cli, ["--config", str(config_path), "config", "--set-wip", "in_progress", "4"]
    )
    assert result.exit_code == 0, result.output
    assert "Updated in_progress WIP limit" in result.output

    content = config_path.read_text(encoding="utf-8")
    assert content.startswith("# shop floor limits")
    assert "wip_limit = 4" in content


def test_debug_flag_exports_logs(runner: CliRunner, tmp_path: Path) -> None:
    try:
        result = runner.invoke(
            cli,
            ["--debug", "--backend", "memory", "move", "WO-003", "approved"],
            env={"SHOPBOARD_DATA_DIR": str(tmp_path)},
        )
    finally:
        teardown_debug_logging()
    assert result.exit_code == 0, result.output
    assert "log entries" in result.output
    assert (tmp_path / "debug.log").read_text(encoding="utf-8").startswith(
        "# Shopboard Debug Log Export"
    )
