"""Shared fixtures for the test suite."""

import pytest

from household_engine.database import crud


@pytest.fixture
def db_conn():
    """In-memory database with the full schema and foreign keys enabled."""
    conn = crud.connect(":memory:")
    crud.create_tables(conn)
    yield conn
    conn.close()


@pytest.fixture
def household(db_conn):
    return crud.get_or_create_household(db_conn, "user-1", "Test")
