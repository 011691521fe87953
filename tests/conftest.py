"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from pathlib import Path

import pytest

from notedb import NoteDB
from notedb.core.storage import initialize_database
from notedb.managers.base import ConnectionContext


@pytest.fixture
def temp_dir():
    """Create a temporary directory, removed after the test."""
    temp = tempfile.mkdtemp()
    yield Path(temp)
    shutil.rmtree(temp)


@pytest.fixture
def context(temp_dir):
    """Connection context on a freshly initialized database file."""
    db_path = temp_dir / "notes.db"
    initialize_database(db_path)
    return ConnectionContext(db_path)


@pytest.fixture
def db(temp_dir):
    """NoteDB instance on a fresh database file."""
    return NoteDB(temp_dir / "notes.db")
