"""
Pytest configuration and fixtures for the rule content storage tests

This module provides shared fixtures for unit and integration tests.
"""
import os
from contextlib import contextmanager
from typing import Generator
from unittest.mock import MagicMock

import pytest
from testcontainers.postgres import PostgresContainer

from src.storage.connection import DatabaseConnectionPool
from tests.db_helpers import make_pool

PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container and apply the storage schema

    Yields:
        PostgresContainer instance with initialized database
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_storage",
        password="test_password",
        dbname="test_rules",
    ) as postgres:
        init_sql_path = os.path.join(PROJECT_ROOT, "docker", "init-db.sql")
        with open(init_sql_path) as f:
            init_sql = f.read()

        pool = make_pool(postgres)
        pool.open()
        try:
            with pool.transaction() as conn:
                conn.execute(init_sql)
        finally:
            pool.close()

        yield postgres


@pytest.fixture(scope="session")
def db_pool(postgres_container) -> Generator[DatabaseConnectionPool, None, None]:
    """Session-wide open pool on the test container."""
    pool = make_pool(postgres_container)
    pool.open()
    yield pool
    pool.close()


@pytest.fixture(scope="function")
def clean_db(db_pool) -> DatabaseConnectionPool:
    """
    Provide a clean database by truncating all tables before each test

    Returns:
        Open DatabaseConnectionPool on the clean database
    """
    db_pool.execute_command(
        "TRUNCATE TABLE cluster_rule_user_feedback, cluster_rule_toggle, "
        "rule_error_key, rule, report CASCADE"
    )
    return db_pool


@pytest.fixture(scope="function")
def closed_pool() -> DatabaseConnectionPool:
    """A pool that was never opened, standing in for a closed store."""
    return DatabaseConnectionPool(host="localhost", password="unused")


# =======================
# MOCK FIXTURES
# =======================

class MockDatabase:
    """
    A DatabaseConnectionPool whose psycopg pool is replaced by mocks.

    Attributes:
        pool: DatabaseConnectionPool under test
        conn: Mocked connection handed out by every transaction
        cursor: Mocked cursor returned by every conn.cursor()
    """

    def __init__(self):
        self.pool = DatabaseConnectionPool(host="localhost", password="unused")
        self.conn = MagicMock(name="connection")
        self.cursor = MagicMock(name="cursor")
        self.conn.cursor.return_value.__enter__.return_value = self.cursor

        @contextmanager
        def connection():
            yield self.conn

        self.pool._pool = MagicMock(name="psycopg_pool")
        self.pool._pool.connection.side_effect = connection

    def executed_sql(self) -> list[str]:
        """SQL text of every cursor.execute call, whitespace-normalized."""
        return [" ".join(c.args[0].split()) for c in self.cursor.execute.call_args_list]


@pytest.fixture(scope="function")
def mock_db() -> MockDatabase:
    return MockDatabase()


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture(scope="session", autouse=True)
def test_env_vars():
    """
    Set test environment variables

    This fixture loads config/test.env and sets environment variables
    """
    from dotenv import load_dotenv

    env_path = os.path.join(PROJECT_ROOT, "config", "test.env")

    if os.path.exists(env_path):
        load_dotenv(env_path, override=True)
