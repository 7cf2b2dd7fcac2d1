from __future__ import annotations

from pathlib import Path

from platformdirs import user_config_path, user_data_path, user_log_path

APP_NAME = "podterm"


def config_path() -> Path:
    return user_config_path(APP_NAME) / "config.json"


def data_path() -> Path:
    return user_data_path(APP_NAME) / "podcasts.json"


def download_root() -> Path:
    return user_data_path(APP_NAME) / "downloads"


def log_path() -> Path:
    return user_log_path(APP_NAME) / "podterm.log"
