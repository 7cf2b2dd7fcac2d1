from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .keymap import Keybindings
from .paths import config_path, data_path, download_root, log_path
from .ui.colors import AppColors
from .ui.geometry import BIG_SCROLL_AMOUNT, DETAILS_PANEL_LENGTH

DOWNLOAD_MODES = ("always", "ask-selected", "ask-unselected", "never")
LOG_LEVELS = ("debug", "info", "warning", "error", "off")
DEFAULT_PLAY_COMMAND = "vlc %s"

# settings that may come from the environment, the config file or a flag
SETTINGS = (
    "data_path",
    "download_path",
    "log_file",
    "log_level",
    "play_command",
    "download_new_episodes",
    "simultaneous_downloads",
    "max_retries",
    "details_threshold",
    "big_scroll_divisor",
)
INT_SETTINGS = frozenset(
    {"simultaneous_downloads", "max_retries", "details_threshold", "big_scroll_divisor"}
)
PATH_SETTINGS = frozenset({"data_path", "download_path", "log_file"})


@dataclass
class AppConfig:
    config_path: Path
    data_path: Path
    download_path: Path
    log_file: Path | None
    log_level: str = "info"
    play_command: str = DEFAULT_PLAY_COMMAND
    download_new_episodes: str = "ask-unselected"
    simultaneous_downloads: int = 3
    max_retries: int = 3
    details_threshold: int = DETAILS_PANEL_LENGTH
    big_scroll_divisor: int = BIG_SCROLL_AMOUNT
    keybindings: Keybindings = field(default_factory=Keybindings.default)
    colors: AppColors = field(default_factory=AppColors)
    sync_only: bool = False


def default_settings() -> dict[str, Any]:
    return {
        "data_path": data_path(),
        "download_path": download_root(),
        "log_file": log_path(),
        "log_level": "info",
        "play_command": DEFAULT_PLAY_COMMAND,
        "download_new_episodes": "ask-unselected",
        "simultaneous_downloads": 3,
        "max_retries": 3,
        "details_threshold": DETAILS_PANEL_LENGTH,
        "big_scroll_divisor": BIG_SCROLL_AMOUNT,
    }


def settings_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    settings: dict[str, Any] = {}
    for name in SETTINGS:
        value = environ.get(f"PODTERM_{name.upper()}")
        if value:
            settings[name] = value
    return settings


def load_config_file(path: Path) -> tuple[dict[str, Any], str | None]:
    if not path.exists():
        return {}, None
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        return {}, f"Failed to read config: {path} ({exc})"
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return {}, f"Config file is not valid JSON: {path}"
    if not isinstance(data, dict):
        return {}, f"Config file must be a JSON object: {path}"
    return data, None


def _as_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _as_path(name: str, value: Any) -> Path | None:
    if value is None or value == "":
        return None
    if not isinstance(value, (str, Path)):
        raise ValueError(f"{name} must be a path")
    return Path(value).expanduser()


def build_config(
    path: Path,
    settings: Mapping[str, Any],
    file_data: Mapping[str, Any],
    sync_only: bool = False,
) -> AppConfig:
    values: dict[str, Any] = {}
    for name in SETTINGS:
        value = settings.get(name)
        if name in INT_SETTINGS:
            values[name] = _as_int(name, value)
        elif name in PATH_SETTINGS:
            values[name] = _as_path(name, value)
        else:
            values[name] = str(value).strip()

    if values["simultaneous_downloads"] < 1:
        raise ValueError("simultaneous_downloads must be >= 1")
    if values["max_retries"] < 1:
        raise ValueError("max_retries must be >= 1")
    if values["details_threshold"] < 0:
        raise ValueError("details_threshold must be >= 0")
    if values["big_scroll_divisor"] < 1:
        raise ValueError("big_scroll_divisor must be >= 1")
    if values["download_new_episodes"] not in DOWNLOAD_MODES:
        raise ValueError(
            f"download_new_episodes must be one of: {', '.join(DOWNLOAD_MODES)}"
        )
    values["log_level"] = values["log_level"].lower()
    if values["log_level"] not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
    if not values["play_command"]:
        raise ValueError("play_command must not be empty")
    if values["data_path"] is None or values["download_path"] is None:
        raise ValueError("data_path and download_path must not be empty")

    keybindings = file_data.get("keybindings", {})
    if not isinstance(keybindings, dict):
        raise ValueError("'keybindings' must be an object of action -> keys")
    colors = file_data.get("colors", {})
    if not isinstance(colors, dict):
        raise ValueError("'colors' must be an object of slot -> style")

    return AppConfig(
        config_path=path,
        keybindings=Keybindings.default().with_overrides(keybindings),
        colors=AppColors().with_overrides(colors),
        sync_only=sync_only,
        **values,
    )


def parse_args(argv: list[str], environ: Mapping[str, str] | None = None) -> AppConfig:
    parser = argparse.ArgumentParser(
        prog="podterm",
        description="Terminal podcast manager.",
    )
    parser.add_argument("--config", help="Path to the JSON config file.")
    parser.add_argument("--data-path", dest="data_path")
    parser.add_argument("--download-path", dest="download_path")
    parser.add_argument("--log-file", dest="log_file")
    parser.add_argument("--log-level", dest="log_level", choices=LOG_LEVELS)
    parser.add_argument(
        "--play-command",
        dest="play_command",
        help="Player command; %%s is replaced by the file path or URL.",
    )
    parser.add_argument(
        "--download-new-episodes",
        dest="download_new_episodes",
        choices=DOWNLOAD_MODES,
    )
    parser.add_argument("--simultaneous-downloads", dest="simultaneous_downloads", type=int)
    parser.add_argument("--max-retries", dest="max_retries", type=int)
    parser.add_argument("--details-threshold", dest="details_threshold", type=int)
    parser.add_argument("--big-scroll-divisor", dest="big_scroll_divisor", type=int)
    parser.add_argument(
        "--sync",
        action="store_true",
        help="Sync every podcast once, print a summary and exit.",
    )

    args = parser.parse_args(argv)
    environ = os.environ if environ is None else environ

    path = Path(args.config or environ.get("PODTERM_CONFIG") or config_path()).expanduser()
    file_data, error = load_config_file(path)
    if error:
        raise ValueError(error)

    settings = default_settings()
    settings.update(settings_from_env(environ))
    for name in SETTINGS:
        if name in file_data:
            settings[name] = file_data[name]
    for name in SETTINGS:
        value = getattr(args, name)
        if value is not None:
            settings[name] = value

    return build_config(path, settings, file_data, sync_only=args.sync)
