"""Configuration management via .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_BASE_URL = "http://localhost:8000/api"
DEFAULT_ASSET_ROOT = "http://localhost:8000/pbb_book_pages"
DEFAULT_REQUEST_TIMEOUT = 30.0


def _xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def _xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


@dataclass
class AppConfig:
    # Paths
    data_dir: Path = field(default_factory=lambda: _xdg_data_home() / "pagebase")
    config_dir: Path = field(default_factory=lambda: _xdg_config_home() / "pagebase")

    # Remote library
    api_base_url: str = DEFAULT_API_BASE_URL
    asset_root: str = DEFAULT_ASSET_ROOT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    # Browsing defaults
    default_bucket: str = "A"

    log_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.log_path = self.data_dir / "pagebase.log"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config(env_path: Optional[Path] = None) -> AppConfig:
    """Load config from .env file. Searches CWD then config dir."""
    search_paths = [
        env_path,
        Path.cwd() / ".env",
        _xdg_config_home() / "pagebase" / ".env",
        Path.home() / ".env",
    ]
    for p in search_paths:
        if p and p.exists():
            load_dotenv(p)
            break

    return AppConfig(
        api_base_url=os.getenv("PAGEBASE_API_URL", DEFAULT_API_BASE_URL),
        asset_root=os.getenv("PAGEBASE_ASSET_ROOT", DEFAULT_ASSET_ROOT),
        request_timeout=_float_env(
            "PAGEBASE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT
        ),
        default_bucket=os.getenv("PAGEBASE_DEFAULT_BUCKET", "A"),
    )
