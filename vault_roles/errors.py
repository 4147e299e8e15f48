"""
Exception types shared across the application.
"""


class VaultRolesError(Exception):
    """Base class for all application errors."""


class ConfigurationError(VaultRolesError):
    """A required setting is missing or malformed."""


class ValidationError(VaultRolesError):
    """User-supplied input (names, permissions, server) was rejected."""


class DatabaseError(VaultRolesError):
    """The SQL Server could not be queried."""
