import pytest

from database import initialize_database
from library import Library


@pytest.fixture
def db_file(tmp_path):
    # One database file per test (tmp_path is unique per test)
    return str(tmp_path / "test.db")


@pytest.fixture
def pool(db_file):
    pool = initialize_database(db_file, pool_size=2)
    yield pool
    pool.close()


@pytest.fixture
def lib(pool):
    return Library(pool)
