"""Tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from pagebase.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_ASSET_ROOT,
    AppConfig,
    load_config,
)


class TestAppConfig:
    def test_defaults(self, tmp_path: Path):
        config = AppConfig(data_dir=tmp_path / "data", config_dir=tmp_path / "config")
        assert config.api_base_url == DEFAULT_API_BASE_URL
        assert config.asset_root == DEFAULT_ASSET_ROOT
        assert config.request_timeout == 30.0
        assert config.default_bucket == "A"
        assert config.log_path == tmp_path / "data" / "pagebase.log"

    def test_dirs_created(self, tmp_path: Path):
        data = tmp_path / "data"
        conf = tmp_path / "config"
        AppConfig(data_dir=data, config_dir=conf)
        assert data.exists()
        assert conf.exists()


@pytest.mark.usefixtures("clean_env")
class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def _xdg_dirs(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))

    def test_load_from_env_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "PAGEBASE_API_URL=https://library.test/api\n"
            "PAGEBASE_ASSET_ROOT=https://cdn.test/pages\n"
            "PAGEBASE_REQUEST_TIMEOUT=5\n"
            "PAGEBASE_DEFAULT_BUCKET=G\n"
        )
        config = load_config(env_path=env_file)
        assert config.api_base_url == "https://library.test/api"
        assert config.asset_root == "https://cdn.test/pages"
        assert config.request_timeout == 5.0
        assert config.default_bucket == "G"

    def test_bad_timeout_falls_back(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("PAGEBASE_REQUEST_TIMEOUT=soon\n")
        config = load_config(env_path=env_file)
        assert config.request_timeout == 30.0

    def test_environment_wins_over_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("PAGEBASE_API_URL", "https://override.test")
        env_file = tmp_path / ".env"
        env_file.write_text("PAGEBASE_API_URL=https://file.test\n")
        config = load_config(env_path=env_file)
        assert config.api_base_url == "https://override.test"
