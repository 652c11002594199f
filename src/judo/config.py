"""Configuration file and database registry.

The config file is TOML::

    default = "dojo"

    [[dbs]]
    name = "dojo"
    connection_str = "sqlite:/home/me/.local/share/judo/judo.db"
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field, replace
from typing import List, Optional

import tomli_w

from .errors import ConfigError, NotFoundError, ValidationError
from .models import (
    DEFAULT_DB_FILE,
    DEFAULT_DB_NAME,
    DatabaseEntry,
    data_dir,
    default_config_path,
    sqlite_locator,
)
from .storage import Storage

logger = logging.getLogger(__name__)


@dataclass
class Config:
    default: str
    dbs: List[DatabaseEntry] = field(default_factory=list)
    # Top-level keys judo does not use (e.g. a [colours] table), written back untouched.
    extra: dict = field(default_factory=dict)

    @classmethod
    def create_default(cls) -> "Config":
        path = os.path.join(data_dir(), DEFAULT_DB_FILE)
        return cls(
            default=DEFAULT_DB_NAME,
            dbs=[DatabaseEntry(DEFAULT_DB_NAME, sqlite_locator(path))],
        )


def parse_config(raw: dict) -> Config:
    """Validate a decoded TOML document and build a Config from it."""
    default = raw.get("default")
    if not isinstance(default, str) or not default:
        raise ConfigError("'default' must be a non-empty string")
    dbs_raw = raw.get("dbs")
    if not isinstance(dbs_raw, list) or not dbs_raw:
        raise ConfigError("'dbs' must be a non-empty array of tables")

    dbs: List[DatabaseEntry] = []
    seen = set()
    for i, entry in enumerate(dbs_raw):
        if not isinstance(entry, dict):
            raise ConfigError(f"dbs[{i}] must be a table")
        name = entry.get("name")
        conn = entry.get("connection_str")
        if not isinstance(name, str) or not name:
            raise ConfigError(f"dbs[{i}].name must be a non-empty string")
        if not isinstance(conn, str) or not conn:
            raise ConfigError(f"dbs[{i}].connection_str must be a non-empty string")
        if name in seen:
            raise ConfigError(f"Multiple databases with name '{name}' found")
        seen.add(name)
        dbs.append(DatabaseEntry(name, conn, is_default=(name == default)))

    if default not in seen:
        raise ConfigError(f"Default database '{default}' not found")
    extra = {k: v for k, v in raw.items() if k not in ("default", "dbs")}
    return Config(default=default, dbs=dbs, extra=extra)


def read_config(path: str) -> Config:
    """Load the config file, creating a default one when it is missing."""
    if not os.path.exists(path):
        config = Config.create_default()
        os.makedirs(data_dir(), exist_ok=True)
        write_config(path, config)
        logger.debug("Created default config at %s", path)
        return parse_config(_to_raw(config))
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    return parse_config(raw)


def _to_raw(config: Config) -> dict:
    return {
        **config.extra,
        "default": config.default,
        "dbs": [{"name": db.name, "connection_str": db.connection_str} for db in config.dbs],
    }


def write_config(path: str, config: Config) -> None:
    try:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        with open(path, "wb") as f:
            tomli_w.dump(_to_raw(config), f)
    except OSError as e:
        raise ConfigError(f"Cannot write config file {path}: {e}") from e


def validate_db_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ValidationError("Database name cannot be empty")
    if os.sep in name or (os.altsep and os.altsep in name):
        raise ValidationError("Database name cannot contain path separators")
    return name


class DatabaseRegistry:
    """Known databases plus which one is the default; persisted on every change."""

    def __init__(self, config: Config, path: str):
        self.config = config
        self.path = path

    @classmethod
    def load(cls, path: Optional[str] = None) -> "DatabaseRegistry":
        path = path or default_config_path()
        return cls(read_config(path), path)

    @property
    def default(self) -> str:
        return self.config.default

    def list_databases(self) -> List[DatabaseEntry]:
        return [
            DatabaseEntry(db.name, db.connection_str, is_default=(db.name == self.config.default))
            for db in self.config.dbs
        ]

    def names(self) -> List[str]:
        return [db.name for db in self.config.dbs]

    def get(self, name: str) -> DatabaseEntry:
        for db in self.list_databases():
            if db.name == name:
                return db
        raise NotFoundError(f"Unknown database '{name}'")

    def _commit(self, config: Config) -> None:
        """Write ``config`` to disk, then adopt it; a failed write changes nothing."""
        write_config(self.path, config)
        self.config = config

    def add_database(
        self, name: str, locator: Optional[str] = None, set_default: bool = False
    ) -> DatabaseEntry:
        """Register a database; without a locator a file in the data dir is used.

        The database file is created (and its schema initialised) right away.
        """
        name = validate_db_name(name)
        if name in self.names():
            raise ValidationError(f"Database '{name}' already exists")
        if locator is None:
            os.makedirs(data_dir(), exist_ok=True)
            locator = sqlite_locator(os.path.join(data_dir(), f"{name}.db"))
        Storage(locator).close()
        self._commit(
            replace(
                self.config,
                default=name if set_default else self.config.default,
                dbs=self.config.dbs + [DatabaseEntry(name, locator)],
            )
        )
        logger.debug("Registered database %s at %s", name, locator)
        return self.get(name)

    def set_default(self, name: str) -> None:
        self.get(name)
        self._commit(replace(self.config, default=name, dbs=list(self.config.dbs)))
        logger.debug("Default database is now %s", name)

    def remove_database(self, name: str) -> None:
        """Forget a database. The file on disk is left alone."""
        self.get(name)
        if name == self.config.default:
            raise ValidationError(f"Cannot remove the default database '{name}'")
        self._commit(
            replace(
                self.config,
                dbs=[db for db in self.config.dbs if db.name != name],
            )
        )

    def open(self, name: Optional[str] = None) -> Storage:
        """Open storage for a database (the default one if no name is given)."""
        entry = self.get(name or self.config.default)
        return Storage(entry.connection_str)
