"""Configuration loading for mainframe.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/mainframe/config.toml → defaults only.
"""

from __future__ import annotations

import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "poll_rate": 3.0,
    "refresh_rate": 20.0,
    "history_size": 120,
    "colors": {"warn": 0.6, "critical": 0.85},
    "logging": {"level": "WARNING", "file": ""},
}

_DEFAULT_PATH = Path.home() / ".config" / "mainframe" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = {k: dict(v) if isinstance(v, dict) else v for k, v in base.items()}
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def _read_toml(path: Path) -> dict[str, Any]:
    return tomllib.loads(path.read_text(encoding="utf-8"))


def _warn_unknown_keys(user_config: dict[str, Any], source: Path) -> None:
    for key, value in user_config.items():
        if key not in DEFAULT_CONFIG:
            print(f"mainframe: warning: unknown key {key!r} in {source}", file=sys.stderr)
        elif isinstance(value, dict) and isinstance(DEFAULT_CONFIG[key], dict):
            for sub in sorted(value.keys() - DEFAULT_CONFIG[key].keys()):
                print(
                    f"mainframe: warning: unknown key '{key}.{sub}' in {source}",
                    file=sys.stderr,
                )


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/mainframe/config.toml.

    Returns:
        Merged configuration dict. Unknown keys are kept but reported on
        stderr.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    user_config: dict[str, Any] = {}
    if path is not None:
        if not path.is_file():
            print(f"mainframe: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = _read_toml(path)
        except tomllib.TOMLDecodeError as e:
            print(f"mainframe: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        _warn_unknown_keys(user_config, path)
    elif _DEFAULT_PATH.is_file():
        try:
            user_config = _read_toml(_DEFAULT_PATH)
        except tomllib.TOMLDecodeError:
            print(
                f"mainframe: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )
        else:
            _warn_unknown_keys(user_config, _DEFAULT_PATH)

    return _deep_merge(DEFAULT_CONFIG, user_config)


def color_thresholds(config: dict[str, Any]) -> tuple[float, float]:
    """Return the (warn, critical) ratios used to colour bar charts."""
    colors = config.get("colors", DEFAULT_CONFIG["colors"])
    warn = float(colors.get("warn", DEFAULT_CONFIG["colors"]["warn"]))
    critical = float(colors.get("critical", DEFAULT_CONFIG["colors"]["critical"]))
    if not 0.0 < warn < critical:
        raise ValueError(
            f"colour thresholds must satisfy 0 < warn < critical, got {warn}, {critical}"
        )
    return warn, critical


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# mainframe configuration",
        "# Place this file at ~/.config/mainframe/config.toml",
        "",
        "# Sensor polls per second",
        f"poll_rate = {DEFAULT_CONFIG['poll_rate']}",
        "# Screen redraws per second",
        f"refresh_rate = {DEFAULT_CONFIG['refresh_rate']}",
        "# Samples kept for trend lines",
        f"history_size = {DEFAULT_CONFIG['history_size']}",
        "",
        "[colors]",
        f"warn = {DEFAULT_CONFIG['colors']['warn']}",
        f"critical = {DEFAULT_CONFIG['colors']['critical']}",
        "",
        "[logging]",
        f'level = "{DEFAULT_CONFIG["logging"]["level"]}"',
        "# Empty means ~/.local/state/mainframe/mainframe.log",
        f'file = "{DEFAULT_CONFIG["logging"]["file"]}"',
    ]
    return "\n".join(lines) + "\n"
