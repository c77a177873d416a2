"""
Exception classes for the bracket store.

Centralized location for all custom exceptions to avoid circular imports.
"""


class ValidationError(Exception):
    """Raised when a table name or snapshot payload is malformed."""
    pass


class ConfigurationError(Exception):
    """Raised when the store or a backend is configured incorrectly."""
    pass


class PersistenceError(Exception):
    """Raised from flush() when the last remote snapshot write failed."""
    pass
