"""Configuration management via .env file."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

log = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "http://localhost:8000/api"
DEFAULT_DEVICE_TAG = "desktop"


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


@dataclass
class AppConfig:
    # Paths
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "shelfsync")
    config_dir: Path = field(default_factory=lambda: _xdg_config_home() / "shelfsync")
    db_path: Path = field(init=False)

    # Remote service
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: Optional[float] = None  # None = wait indefinitely
    device_tag: str = DEFAULT_DEVICE_TAG

    log_level: str = "INFO"
    log_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.db_path = self.data_dir / "shelfsync.db"
        self.log_path = self.data_dir / "shelfsync.log"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def root_url(self) -> str:
        """Base URL without the trailing /api prefix (health lives there)."""
        base = self.api_base_url.rstrip("/")
        if base.endswith("/api"):
            base = base[: -len("/api")]
        return base

    def missing_settings(self) -> list[str]:
        missing = []
        if not self.api_base_url.strip():
            missing.append("SHELFSYNC_API_BASE_URL")
        if not self.device_tag.strip():
            missing.append("SHELFSYNC_DEVICE_TAG")
        return missing


def _parse_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        log.warning("Ignoring invalid SHELFSYNC_REQUEST_TIMEOUT=%r", raw)
        return None
    return value if value > 0 else None


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load config from .env file. Searches CWD then config dir."""
    search_paths = [
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "shelfsync" / ".env",
        Path.home() / ".env",
    ]
    for p in search_paths:
        if p and p.exists():
            load_dotenv(p)
            break

    config = AppConfig(
        api_base_url=os.getenv("SHELFSYNC_API_BASE_URL", DEFAULT_API_BASE_URL),
        request_timeout=_parse_timeout(os.getenv("SHELFSYNC_REQUEST_TIMEOUT")),
        device_tag=os.getenv("SHELFSYNC_DEVICE_TAG", DEFAULT_DEVICE_TAG),
        log_level=os.getenv("SHELFSYNC_LOG_LEVEL", "INFO").upper(),
    )

    missing = config.missing_settings()
    if missing:
        log.warning("Missing configuration values: %s", ", ".join(missing))

    return config
