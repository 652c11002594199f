"""Exception types raised by judo."""


class JudoError(Exception):
    """Base class for every error judo reports to the user."""


class ValidationError(JudoError):
    """Input rejected before reaching storage (e.g. an empty name)."""


class NotFoundError(JudoError):
    """A list, item or database that does not exist was referenced."""


class StorageError(JudoError):
    """The backing database failed (I/O, connection, constraint)."""


class ConfigError(JudoError):
    """The configuration file is missing, unreadable or malformed."""
