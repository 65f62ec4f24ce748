import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from simplecache.core.cache_engine import CacheEngine
from simplecache.domain.models.common import CacheSettings
from simplecache.infrastructure.config import settings as config_settings


class FakeClock:
    """Manually advanced wall clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def settings(cache_root: Path) -> CacheSettings:
    return CacheSettings(base_dir=cache_root, init_dir="app")


@pytest.fixture
def engine(settings: CacheSettings, clock: FakeClock) -> CacheEngine:
    return CacheEngine(settings, clock=clock)


@pytest.fixture
def entry_files():
    """Lists committed entry files below a directory."""
    def _list(root: Path):
        return sorted(p for p in root.rglob("*.cache") if p.is_file())
    return _list


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path: Path):
    """Keeps tests away from the developer's env vars, .env and YAML config."""
    for name in list(os.environ):
        if name.startswith(config_settings.ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_settings, "DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml")
    monkeypatch.setattr(config_settings, "find_dotenv_path", lambda: None)
    config_settings.clear_test_config()
    config_settings._config = {}
    config_settings._loaded = False
    yield
    config_settings.clear_test_config()
    config_settings._config = {}
    config_settings._loaded = False
