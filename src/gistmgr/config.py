"""Persisted user configuration, file locations and logging setup."""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict, dataclass, fields
from typing import Any, Optional

from pygments.styles import get_all_styles

from gistmgr.errors import StorageError, ValidationError

APP_NAME: str = "gistmgr"
CONFIG_FILENAME: str = "config.json"
DB_FILENAME: str = "gistmgr.db"
LOG_FILENAME: str = "gistmgr.log"

DEFAULT_THEME: str = "nord"
THEME_DEFAULT_ALIAS: str = "default"

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def user_config_dir() -> str:
    """Per-user config directory for gistmgr (not created here)."""
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or os.path.expanduser("~")
    elif sys.platform == "darwin":
        base = os.path.expanduser("~/Library/Application Support")
    else:
        base = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return os.path.join(base, APP_NAME)


@dataclass
class Config:
    """
    JSON config file. Every set() rewrites the whole file.

    `config_path` is the directory holding config.json, the store and the log.
    """

    access_token: str = ""
    config_path: str = ""
    theme: str = THEME_DEFAULT_ALIAS
    client_id: str = ""
    client_secret: str = ""

    @property
    def file_path(self) -> str:
        return os.path.join(self.config_path, CONFIG_FILENAME)

    @property
    def db_path(self) -> str:
        return os.path.join(self.config_path, DB_FILENAME)

    @property
    def log_path(self) -> str:
        return os.path.join(self.config_path, LOG_FILENAME)

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)

    def set(self, name: str, value: Any) -> None:
        """Set one field and write the file."""
        names = {f.name for f in fields(self)}
        if name not in names:
            raise ValidationError(f"No such config field: {name}", details={"field": name})
        if not isinstance(value, str):
            raise ValidationError(
                f"Config field {name} must be a string",
                details={"field": name, "type": type(value).__name__},
            )
        setattr(self, name, value)
        self.save()

    def clear_secrets(self) -> None:
        self.set("access_token", "")

    def save(self) -> None:
        data = json.dumps(asdict(self), indent=2)
        try:
            os.makedirs(self.config_path, exist_ok=True)
            fd = os.open(self.file_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(data)
        except OSError as exc:
            raise StorageError(
                "Failed to write config file",
                details={"path": self.file_path},
                cause=exc,
            ) from exc

    @classmethod
    def load(cls, config_dir: str) -> Config:
        path = os.path.join(config_dir, CONFIG_FILENAME)
        try:
            with open(path, "r", encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError) as exc:
            raise StorageError(
                "Failed to read config file",
                details={"path": path},
                cause=exc,
            ) from exc

        if not isinstance(data, dict):
            raise StorageError("Config file is not a JSON object", details={"path": path})

        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known and isinstance(v, str)}
        cfg = cls(**values)
        cfg.config_path = config_dir
        return cfg


def init_config(config_dir: Optional[str] = None) -> Config:
    """Load the config file, creating it with defaults on first run."""
    config_dir = config_dir or user_config_dir()
    path = os.path.join(config_dir, CONFIG_FILENAME)
    if os.path.exists(path):
        return Config.load(config_dir)

    cfg = Config(config_path=config_dir)
    cfg.save()
    return cfg


def available_themes() -> list[str]:
    return sorted(get_all_styles())


def resolve_theme(name: str) -> str:
    """Map a configured theme to a known highlight style (nord when unset or unknown)."""
    if not name or name == THEME_DEFAULT_ALIAS:
        return DEFAULT_THEME
    if name not in set(get_all_styles()):
        return DEFAULT_THEME
    return name


def setup_logging(config_dir: str, level: int = logging.INFO) -> logging.Handler:
    """
    Send gistmgr logs to gistmgr.log in the config directory.

    The terminal belongs to the interface, so nothing is written to stderr.
    Calling it again replaces the previous handler.
    """
    os.makedirs(config_dir, exist_ok=True)
    handler = logging.FileHandler(os.path.join(config_dir, LOG_FILENAME), encoding="utf-8")
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root = logging.getLogger(APP_NAME)
    for old in list(root.handlers):
        if getattr(old, "_gistmgr_handler", False):
            root.removeHandler(old)
            old.close()
    handler._gistmgr_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
    return handler
