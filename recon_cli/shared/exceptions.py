"""Project-wide custom exceptions."""

from __future__ import annotations


class ReconError(Exception):
    """Base exception for the import reconciliation suite."""


class ConfigurationError(ReconError):
    """Raised when configuration loading or validation fails."""


class DatabaseError(ReconError):
    """Raised for database-related issues."""


class SchemaIntrospectionError(DatabaseError):
    """Raised when a schema snapshot cannot be read."""


class ImportDataError(ReconError):
    """Raised when an import batch cannot be loaded."""
