import sqlite3
from concurrent.futures import ThreadPoolExecutor

import pytest

from book import Book
from library import ConnectivityFailure, ConstraintViolation, Library


def test_insert_list_and_get(lib):
    assert lib.list_all() == []

    new_id = lib.insert("Ulysses", "James Joyce")

    assert isinstance(new_id, int)
    assert lib.list_all() == [Book("Ulysses", "James Joyce", id=new_id)]
    assert lib.get_by_id(new_id) == [Book("Ulysses", "James Joyce", id=new_id)]


def test_list_keeps_insertion_order(lib):
    first = lib.insert("Programming Pearls", "Jon Bentley")
    second = lib.insert("The Little Book of Semaphores", "Allen B. Downey")

    assert [b.id for b in lib.list_all()] == [first, second]


def test_ids_are_fresh(lib):
    first = lib.insert("A", "B")
    lib.delete_by_id(first)
    second = lib.insert("A", "B")
    assert second != first


def test_get_missing_returns_empty_list(lib):
    assert lib.get_by_id(999) == []


def test_update_by_id(lib):
    book_id = lib.insert("Old Title", "Old Author")

    assert lib.update_by_id(book_id, "New Title", "New Author") == 1

    # A second Library over the same pool sees the persisted change
    found = Library(lib.pool).get_by_id(book_id)[0]
    assert found.id == book_id
    assert found.title == "New Title"
    assert found.author == "New Author"


def test_update_missing_affects_nothing(lib):
    assert lib.update_by_id(42, "Title", "Author") == 0
    assert lib.list_all() == []


def test_delete_by_id(lib):
    book_id = lib.insert("Test", "Author")
    assert lib.delete_by_id(book_id) == 1
    assert lib.delete_by_id(book_id) == 0  # Already gone
    assert lib.get_by_id(book_id) == []


def test_parameters_are_bound_not_interpolated(lib):
    title = "Robert'); DROP TABLE books;--"
    book_id = lib.insert(title, "Bobby Tables")
    assert lib.get_by_id(book_id)[0].title == title
    assert len(lib.list_all()) == 1


@pytest.mark.parametrize("title,author", [(None, "Author"), ("Title", None)])
def test_insert_missing_field_is_constraint_violation(lib, title, author):
    with pytest.raises(ConstraintViolation, match="NOT NULL"):
        lib.insert(title, author)
    assert lib.list_all() == []


def test_constraint_violation_keeps_driver_error(lib):
    with pytest.raises(ConstraintViolation) as excinfo:
        lib.insert(None, None)
    assert isinstance(excinfo.value.__cause__, sqlite3.IntegrityError)


def test_missing_table_is_connectivity_failure(lib):
    with lib.pool.connection() as conn:
        conn.execute("DROP TABLE books")
        conn.commit()

    with pytest.raises(ConnectivityFailure, match="no such table"):
        lib.list_all()


def test_closed_pool_is_connectivity_failure(lib):
    lib.pool.close()
    with pytest.raises(ConnectivityFailure):
        lib.get_by_id(1)


@pytest.mark.parametrize("book_id", [2 ** 63, 99999999999999999999, -(2 ** 63) - 1])
def test_ids_outside_integer_range_are_absent(lib, book_id):
    lib.insert("Test", "Author")

    assert lib.get_by_id(book_id) == []
    assert lib.update_by_id(book_id, "Title", "Author") == 0
    assert lib.delete_by_id(book_id) == 0
    assert len(lib.list_all()) == 1


def test_unencodable_text_is_constraint_violation(lib):
    with pytest.raises(ConstraintViolation):
        lib.insert("\ud800", "Author")
    assert lib.list_all() == []


def test_concurrent_inserts_share_the_pool(lib):
    # The pool holds two connections, so busy workers open overflow ones
    with ThreadPoolExecutor(max_workers=8) as executor:
        ids = list(executor.map(lambda n: lib.insert(f"Book {n}", "Author"), range(20)))

    assert len(set(ids)) == 20
    assert sorted(b.id for b in lib.list_all()) == sorted(ids)
