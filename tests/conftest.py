import os

import pytest

from judo.config import DatabaseRegistry
from judo.state import open_app
from judo.storage import Storage


@pytest.fixture(autouse=True)
def isolated_dirs(tmp_path, monkeypatch):
    """Point XDG config/data dirs into tmp_path so nothing touches $HOME."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("JUDO_CONFIG", raising=False)


@pytest.fixture
def storage():
    s = Storage("sqlite::memory:")
    yield s
    s.close()


@pytest.fixture
def config_path(tmp_path):
    return os.path.join(str(tmp_path), "config", "judo", "judo.toml")


@pytest.fixture
def registry(config_path):
    return DatabaseRegistry.load(config_path)


@pytest.fixture
def app(registry):
    state = open_app(registry)
    yield state
    state.close()
