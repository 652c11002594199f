"""judo - todo lists in the terminal, backed by SQLite."""

__version__ = "1.0.0"

from .models import TodoList, TodoItem, DatabaseEntry
from .errors import JudoError, ValidationError, NotFoundError, StorageError, ConfigError
from .storage import Storage
from .config import Config, DatabaseRegistry, read_config, write_config
from .core import Selection
from .editing import EditBuffer
from .state import AppState, Screen, dispatch, open_app

__all__ = [
    "TodoList",
    "TodoItem",
    "DatabaseEntry",
    "JudoError",
    "ValidationError",
    "NotFoundError",
    "StorageError",
    "ConfigError",
    "Storage",
    "Config",
    "DatabaseRegistry",
    "read_config",
    "write_config",
    "Selection",
    "EditBuffer",
    "AppState",
    "Screen",
    "dispatch",
    "open_app",
]
