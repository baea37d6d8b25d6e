"""
Unit tests for storage error kinds and classification.
"""

import psycopg
import pytest
from psycopg import errors as pg_errors
from psycopg_pool import PoolClosed

from src.storage.errors import (
    DatabaseClosedError,
    ErrorKind,
    InvalidRuleErrorKeyStatusError,
    ItemNotFoundError,
    RowDecodeError,
    classify_error,
)


@pytest.mark.unit
class TestErrorMessages:
    """Messages callers match on"""

    def test_item_not_found_message(self):
        error = ItemNotFoundError("module/error_key")

        assert str(error) == "Item with ID module/error_key was not found in the storage"
        assert error.item_id == "module/error_key"

    def test_invalid_status_message(self):
        error = InvalidRuleErrorKeyStatusError("bad")

        assert str(error) == "invalid rule error key status: 'bad'"
        assert isinstance(error, ValueError)

    def test_database_closed_is_runtime_error(self):
        assert issubclass(DatabaseClosedError, RuntimeError)


@pytest.mark.unit
class TestClassifyError:
    """Tests for classify_error"""

    @pytest.mark.parametrize(
        "error,kind",
        [
            (DatabaseClosedError("closed"), ErrorKind.CONNECTION),
            (PoolClosed("the pool is closed"), ErrorKind.CONNECTION),
            (psycopg.OperationalError("server closed the connection"), ErrorKind.CONNECTION),
            (psycopg.InterfaceError("the connection is closed"), ErrorKind.CONNECTION),
            (pg_errors.ForeignKeyViolation("violates foreign key constraint"), ErrorKind.CONSTRAINT_VIOLATION),
            (pg_errors.CheckViolation("violates check constraint"), ErrorKind.CONSTRAINT_VIOLATION),
            (pg_errors.InvalidTextRepresentation("invalid input syntax"), ErrorKind.CONSTRAINT_VIOLATION),
            (ItemNotFoundError("module"), ErrorKind.NOT_FOUND),
            (InvalidRuleErrorKeyStatusError("bad"), ErrorKind.INVALID_STATUS),
            (RowDecodeError("bad row"), ErrorKind.ROW_DECODE),
            (KeyError("Unknown"), ErrorKind.OTHER),
        ],
    )
    def test_classification(self, error, kind):
        assert classify_error(error) is kind

    def test_kinds_are_strings(self):
        assert ErrorKind.NOT_FOUND.value == "not_found"
        assert ErrorKind("constraint_violation") is ErrorKind.CONSTRAINT_VIOLATION
