from __future__ import annotations

import struct
from pathlib import Path

import pytest

from tdxbacktest import cli
from tdxbacktest.data import tdx_reader
from tdxbacktest.cli import apply_cli_overrides, build_parser
from tdxbacktest.config import Settings

DAY = struct.Struct("<IIIIIfII")


def _write_day_file(path: Path, days: list[int]) -> None:
    path.write_bytes(b"".join(DAY.pack(day, 1000, 1010, 990, 1005, 1.0, 100, 0) for day in days))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("tdxbacktest.config.load_dotenv", lambda *args, **kwargs: None)
    for key in ("TDX_DATA_DIR", "TDX_EXTENSION", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)


def test_cli_overrides_produce_expected_settings() -> None:
    args = build_parser().parse_args(
        ["--data-dir", "vipdoc/sz/lday", "--extension", "lc1", "--log-level", "debug", "--list"]
    )

    settings = apply_cli_overrides(Settings(), args)

    assert settings.data_dir == "vipdoc/sz/lday"
    assert settings.extension == ".lc1"
    assert settings.log_level == "DEBUG"


def test_cli_requires_exactly_one_action() -> None:
    parser = build_parser()

    with pytest.raises(ValueError, match="exactly one"):
        apply_cli_overrides(Settings(), parser.parse_args([]))
    with pytest.raises(ValueError, match="exactly one"):
        apply_cli_overrides(Settings(), parser.parse_args(["--list", "--show", "sh600000"]))


def test_cli_since_requires_show() -> None:
    args = build_parser().parse_args(["--list", "--since", "2024-01-01"])

    with pytest.raises(ValueError, match="--since"):
        apply_cli_overrides(Settings(), args)


def test_main_lists_assets(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write_day_file(tmp_path / "sh600000.day", [20240102])
    _write_day_file(tmp_path / "sz000001.day", [20240102])

    code = cli.main(["--data-dir", str(tmp_path), "--list"])

    assert code == 0
    assert capsys.readouterr().out.split() == ["sh600000", "sz000001"]


def test_main_prints_last_date(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write_day_file(tmp_path / "sh600000.day", [20240102, 20240103])

    code = cli.main(["--data-dir", str(tmp_path), "--last-date", "sh600000"])

    assert code == 0
    assert capsys.readouterr().out.strip() == "2024-01-03T00:00:00"


def test_main_shows_rows_since_date(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _write_day_file(tmp_path / "sh600000.day", [20240102, 20240103, 20240104])

    code = cli.main(
        ["--data-dir", str(tmp_path), "--show", "sh600000", "--since", "2024-01-03"]
    )

    output = capsys.readouterr().out
    assert code == 0
    assert "2024-01-03" in output
    assert "2024-01-04" in output
    assert "2024-01-02" not in output


def test_main_reports_missing_asset(tmp_path: Path) -> None:
    assert cli.main(["--data-dir", str(tmp_path), "--last-date", "missing"]) == 1


@pytest.mark.parametrize("action", ["--last-date", "--show"])
def test_main_reports_corrupt_record(tmp_path: Path, action: str) -> None:
    _write_day_file(tmp_path / "sh600000.day", [20240102, 20241399])

    assert cli.main(["--data-dir", str(tmp_path), action, "sh600000"]) == 1


def test_main_reports_truncated_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_day_file(tmp_path / "sh600000.day", [20240102, 20240103])
    monkeypatch.setattr(tdx_reader, "record_count", lambda handle: 3)

    assert cli.main(["--data-dir", str(tmp_path), "--last-date", "sh600000"]) == 1


def test_main_reports_configuration_error(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(["--extension", ".csv", "--list"])

    assert code == 2
    assert "Configuration error" in capsys.readouterr().out
