"""Failures an install attempt can run into.

Everything except ``RegionalResourceError`` is fatal for one attempt and
triggers the rollback in the orchestrator.
"""


class InstallationError(Exception):
    """Base class for install attempt failures."""


class FilePermissionError(InstallationError):
    """A directory or file the store writes to after install is not writable."""

    def __init__(self, messages):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class ConfigurationError(InstallationError):
    """The connection string could not be resolved."""


class DatabaseCreationError(InstallationError):
    pass


class DatabaseNotExistsError(InstallationError):
    pass


class SchemaError(InstallationError):
    pass


class SeedDataError(InstallationError):
    pass


class PluginPreparationError(InstallationError):
    pass


class RegionalResourceError(InstallationError):
    """Language pack or locale pattern could not be installed (never fatal)."""
