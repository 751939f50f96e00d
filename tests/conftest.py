"""
Shared fixtures: a fresh SQLite database per test.
"""

import pytest

from tcoin_validation.core.db import Database


@pytest.fixture
def db(tmp_path):
    """Create an initialized database in a temporary directory."""
    database = Database(f"sqlite:///{tmp_path / 'validation.db'}")
    database.init_schema()
    return database
