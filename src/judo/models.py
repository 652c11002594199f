"""Data models and constants for judo."""

import os
from dataclasses import dataclass, field
from typing import List, Literal

DEFAULT_DB_NAME = "dojo"
DEFAULT_DB_FILE = "judo.db"
CONFIG_FILE = "judo.toml"

Direction = Literal["up", "down"]


def config_dir() -> str:
    """Return the judo configuration directory (XDG aware)."""
    base = os.environ.get("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return os.path.join(base, "judo")


def data_dir() -> str:
    """Return the directory holding judo database files (XDG aware)."""
    base = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
    return os.path.join(base, "judo")


def default_config_path() -> str:
    return os.environ.get("JUDO_CONFIG") or os.path.join(config_dir(), CONFIG_FILE)


def sqlite_locator(path: str) -> str:
    """Build a connection string for a SQLite database file."""
    return f"sqlite:{path}"


@dataclass
class TodoItem:
    """A single entry of a todo list."""

    id: int
    list_id: int
    name: str
    is_done: bool
    ordering: int


@dataclass
class TodoList:
    """A named, ordered todo list. ``items`` is filled by snapshot loads."""

    id: int
    name: str
    ordering: int
    items: List[TodoItem] = field(default_factory=list)


@dataclass
class DatabaseEntry:
    """A named database known to the registry."""

    name: str
    connection_str: str
    is_default: bool = False
