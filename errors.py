"""Exceptions raised by the storage gateway.

Routes catch these at their boundary and turn them into a 500 response.
"""


class InventoryError(Exception):
    """Base class for inventory errors."""


class ValidationError(InventoryError):
    """A required form field is missing or cannot be parsed."""


class StorageError(InventoryError):
    """The SQLite statement could not be executed."""
