"""
Error kinds raised or surfaced by the rule content storage.

Driver errors are never wrapped: psycopg exceptions reach the caller as
raised, so callers matching on driver messages keep working. classify_error
maps any of them, and the storage's own exceptions, to a stable ErrorKind.
"""

from enum import Enum

import psycopg
from psycopg_pool import PoolClosed, PoolTimeout


class ErrorKind(str, Enum):
    """Stable error categories exposed next to the native error message."""

    CONNECTION = "connection"
    CONSTRAINT_VIOLATION = "constraint_violation"
    NOT_FOUND = "not_found"
    INVALID_STATUS = "invalid_status"
    ROW_DECODE = "row_decode"
    OTHER = "other"


class DatabaseClosedError(RuntimeError):
    """Raised when the connection pool is used before open() or after close()."""
    pass


class ItemNotFoundError(LookupError):
    """Raised when a point lookup or delete target does not exist."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item with ID {item_id} was not found in the storage")


class InvalidRuleErrorKeyStatusError(ValueError):
    """Raised when rule content carries a status other than active/inactive."""

    def __init__(self, status: str):
        self.status = status
        super().__init__(f"invalid rule error key status: '{status}'")


class RowDecodeError(ValueError):
    """Raised when a single result row does not fit the expected shape."""
    pass


def classify_error(error: BaseException) -> ErrorKind:
    """
    Classify an exception surfaced by the storage.

    Args:
        error: Exception raised by a storage operation

    Returns:
        ErrorKind of the exception
    """
    if isinstance(error, (DatabaseClosedError, PoolClosed, PoolTimeout)):
        return ErrorKind.CONNECTION
    if isinstance(error, ItemNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, InvalidRuleErrorKeyStatusError):
        return ErrorKind.INVALID_STATUS
    if isinstance(error, RowDecodeError):
        return ErrorKind.ROW_DECODE
    if isinstance(error, (psycopg.IntegrityError, psycopg.DataError)):
        return ErrorKind.CONSTRAINT_VIOLATION
    if isinstance(error, (psycopg.OperationalError, psycopg.InterfaceError)):
        return ErrorKind.CONNECTION
    return ErrorKind.OTHER
