"""Command-line interface for browsing TDX asset data."""

from __future__ import annotations

import argparse
import sys
from datetime import date

import pandas as pd

from tdxbacktest.config import Settings
from tdxbacktest.data.base import AssetRepository
from tdxbacktest.data.tdx_repository import TdxFileRepository
from tdxbacktest.errors import TdxBacktestError
from tdxbacktest.logging.logger import HumanLogger


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description="Inspect TDX binary bar files")
    parser.add_argument("--data-dir", type=str, help="Directory holding TDX bar files")
    parser.add_argument("--extension", type=str, help="Bar file extension (.day, .5, .lc5, .lc1)")
    parser.add_argument("--log-level", type=str, help="Logging level")
    parser.add_argument("--list", action="store_true", help="List asset names, then exit")
    parser.add_argument("--last-date", type=str, metavar="NAME", help="Print the latest bar date")
    parser.add_argument("--show", type=str, metavar="NAME", help="Print bars for an asset")
    parser.add_argument(
        "--since", type=date.fromisoformat, help="With --show: first date YYYY-MM-DD"
    )
    parser.add_argument("--rows", type=int, default=20, help="With --show: trailing rows to print")
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI values onto environment-derived settings."""
    overrides: dict[str, object] = {}
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.extension:
        overrides["extension"] = args.extension
    if args.log_level:
        overrides["log_level"] = args.log_level.strip().upper()

    selected = [flag for flag in (args.list, args.last_date, args.show) if flag]
    if len(selected) != 1:
        raise ValueError("Use exactly one action flag: --list, --last-date, or --show")
    if args.since is not None and not args.show:
        raise ValueError("--since requires --show")
    if args.rows <= 0:
        raise ValueError("--rows must be positive")
    return settings.with_overrides(**overrides)


def run(settings: Settings, args: argparse.Namespace) -> int:
    """Execute the selected action against the configured repository."""
    logger = HumanLogger(level=settings.log_level)
    repository: AssetRepository = TdxFileRepository(settings.data_dir, settings.extension)
    try:
        if args.list:
            names = repository.assets()
            logger.assets(settings.data_dir, names)
            for name in names:
                print(name)
        elif args.last_date:
            print(repository.last_date(args.last_date).isoformat())
        else:
            frame = repository.get_bars(args.show)
            if args.since is not None:
                frame = frame[frame.index >= pd.Timestamp(args.since)]
            print(frame.tail(args.rows).to_string())
    except (OSError, TdxBacktestError) as exc:
        logger.error(str(exc))
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = apply_cli_overrides(Settings.from_env(), args)
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        return 2
    return run(settings, args)


if __name__ == "__main__":
    sys.exit(main())
