"""mainframe: a fast and lightweight visual system monitor.

Reports live CPU and GPU usage, temperature, memory consumption and disks
in the terminal.

Usage:
    mainframe
    mainframe --poll-rate 2 --refresh-rate 30 --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from mainframe.app import MainframeApp
from mainframe.config import color_thresholds, dump_default_config, load_config
from mainframe.logging_setup import configure_logging, install_crash_hooks
from mainframe.polling import ALL_TARGETS, PsutilSampler
from mainframe.state import SharedState
from mainframe.terminal import CursesTerminal, TerminalError
from mainframe.ui import VERSION

logger = logging.getLogger(__name__)


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a number: {text!r}") from e
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from e
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mainframe",
        description=(
            "A fast and lightweight visual system monitor. Reports live data "
            "about cpu and gpu usage, temperature, memory consumption, and more."
        ),
    )
    parser.add_argument(
        "-p",
        "--poll-rate",
        type=_positive_float,
        default=None,
        metavar="HZ",
        help="Sensor polls per second (default: 3)",
    )
    parser.add_argument(
        "-r",
        "--refresh-rate",
        type=_positive_float,
        default=None,
        metavar="HZ",
        help="Screen redraws per second (default: 20)",
    )
    parser.add_argument(
        "--history",
        type=_positive_int,
        default=None,
        metavar="N",
        help="Samples kept for trend lines (default: 120)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--dump-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Write logs here (default: ~/.local/state/mainframe/mainframe.log)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log verbosity (default: WARNING)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def resolve_settings(args: argparse.Namespace, config: dict[str, Any]) -> dict[str, Any]:
    """Command-line flags win over config file values."""
    log_cfg = config.get("logging", {})
    log_file = args.log_file
    if log_file is None and log_cfg.get("file"):
        log_file = Path(log_cfg["file"]).expanduser()

    settings: dict[str, Any] = {
        "poll_rate": args.poll_rate or float(config["poll_rate"]),
        "refresh_rate": args.refresh_rate or float(config["refresh_rate"]),
        "history_size": args.history or int(config["history_size"]),
        "thresholds": color_thresholds(config),
        "log_level": args.log_level or str(log_cfg.get("level", "WARNING")),
        "log_file": log_file,
    }
    for key in ("poll_rate", "refresh_rate", "history_size"):
        if settings[key] <= 0:
            raise ValueError(f"{key} must be positive, got {settings[key]}")
    return settings


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return

    config = load_config(args.config)
    try:
        settings = resolve_settings(args, config)
        configure_logging(settings["log_level"], settings["log_file"])
    except (ValueError, KeyError, OSError) as e:
        print(f"mainframe: invalid settings: {e}", file=sys.stderr)
        raise SystemExit(1) from e
    install_crash_hooks()

    sampler = PsutilSampler().with_targets(ALL_TARGETS)
    shared = SharedState(
        settings["history_size"],
        info=sampler.get_static_info(),
        disks=sampler.get_disk_info(),
    )
    app = MainframeApp(
        sampler,
        CursesTerminal(),
        shared,
        poll_rate=settings["poll_rate"],
        refresh_rate=settings["refresh_rate"],
        thresholds=settings["thresholds"],
    )

    try:
        app.run()
    except KeyboardInterrupt:
        pass
    except TerminalError as e:
        logger.error("terminal failure: %s", e)
        print(f"mainframe: terminal error: {e}", file=sys.stderr)
        raise SystemExit(1) from e


if __name__ == "__main__":
    main()
