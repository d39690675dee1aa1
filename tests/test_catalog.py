from bookshare.services import catalog
from bookshare.services.loans import borrow_book, return_book
from bookshare.utils.timezone import as_utc

from conftest import seed_book, seed_copy, seed_loan, days_ago


def _gatsby(db):
    book = seed_book(db, isbn="9780743273565", title="The Great Gatsby", author="F. Scott Fitzgerald")
    seed_copy(db, "gatsby-1", book.id, location_id=1, copy_number=1)
    seed_copy(db, "gatsby-2", book.id, location_id=2, copy_number=2)
    return book


def test_search_counts_availability(db):
    _gatsby(db)
    seed_loan(db, "gatsby-1", 42)

    results = catalog.search_books(db, "gatsby", 10)

    assert len(results) == 1
    assert results[0]["title"] == "The Great Gatsby"
    assert results[0]["totalCopies"] == 2
    assert results[0]["availableCopies"] == 1


def test_search_matches_author_case_insensitively(db):
    _gatsby(db)
    seed_book(db, isbn="isbn-2", title="Tender Is the Night", author="F. Scott Fitzgerald")
    seed_book(db, isbn="isbn-3", title="Dune", author="Frank Herbert")

    results = catalog.search_books(db, "FITZGERALD", 10)

    assert [r["title"] for r in results] == ["Tender Is the Night", "The Great Gatsby"]


def test_search_book_without_copies(db):
    seed_book(db, isbn="isbn-2", title="Dune", author="Frank Herbert")

    results = catalog.search_books(db, "dune", 10)

    assert results[0]["totalCopies"] == 0
    assert results[0]["availableCopies"] == 0


def test_search_ignores_returned_loans(db):
    _gatsby(db)
    seed_loan(db, "gatsby-1", 42, borrowed_at=days_ago(20), returned_at=days_ago(5))

    results = catalog.search_books(db, "gatsby", 10)

    assert results[0]["availableCopies"] == 2


def test_search_respects_limit_and_is_stable(db):
    for i in range(5):
        seed_book(db, isbn=f"isbn-{i}", title=f"Volume {i}", author="Anon")

    first = catalog.search_books(db, "volume", 3)
    second = catalog.search_books(db, "volume", 3)

    assert len(first) == 3
    assert first == second


def test_search_treats_wildcards_literally(db):
    seed_book(db, isbn="isbn-1", title="100% Cotton", author="Anon")
    seed_book(db, isbn="isbn-2", title="Cotton Fields", author="Anon")

    results = catalog.search_books(db, "100%", 10)

    assert [r["title"] for r in results] == ["100% Cotton"]


def test_availability_tracks_borrow_and_return(db):
    book = _gatsby(db)

    borrow_book(db, "gatsby-2", 7)
    details = catalog.get_book_details(db, book.id)
    assert details["availableCopies"] == 1
    assert details["totalCopies"] - details["availableCopies"] == 1

    return_book(db, "gatsby-2", 7)
    details = catalog.get_book_details(db, book.id)
    assert details["availableCopies"] == 2


def test_book_details_lists_copies_with_locations(db):
    book = _gatsby(db)
    loan = seed_loan(db, "gatsby-2", 42)

    details = catalog.get_book_details(db, book.id)

    assert details["isbn"] == "9780743273565"
    assert [c["copyNumber"] for c in details["copies"]] == [1, 2]
    first, second = details["copies"]
    assert first["isAvailable"] is True
    assert first["dueDate"] is None
    assert first["location"] == {"id": 1, "name": "Saga"}
    assert second["isAvailable"] is False
    assert second["dueDate"] == as_utc(loan.due_date)
    assert second["location"]["name"] == "Elm"


def test_book_details_by_isbn(db):
    _gatsby(db)

    assert catalog.get_book_details_by_isbn(db, "9780743273565")["title"] == "The Great Gatsby"
    assert catalog.get_book_details_by_isbn(db, "unknown") is None


def test_book_details_missing(db):
    assert catalog.get_book_details(db, 999) is None


def test_copy_details_with_open_loan(db):
    _gatsby(db)
    loan = seed_loan(db, "gatsby-1", 42)

    details = catalog.get_copy_details(db, "gatsby-1")

    assert details["qrCodeId"] == "gatsby-1"
    assert details["book"]["title"] == "The Great Gatsby"
    assert details["isAvailable"] is False
    assert details["currentLoan"]["id"] == loan.id


def test_copy_details_available(db):
    _gatsby(db)
    seed_loan(db, "gatsby-1", 42, borrowed_at=days_ago(10), returned_at=days_ago(1))

    details = catalog.get_copy_details(db, "gatsby-1")

    assert details["isAvailable"] is True
    assert details["currentLoan"] is None
    assert catalog.get_copy_details(db, "missing") is None


def test_user_active_loans_newest_first(db):
    _gatsby(db)
    other = seed_book(db, isbn="isbn-2", title="Dune", author="Frank Herbert")
    seed_copy(db, "dune-1", other.id)
    seed_loan(db, "gatsby-1", 42, borrowed_at=days_ago(5))
    seed_loan(db, "dune-1", 42, borrowed_at=days_ago(1))
    seed_loan(db, "gatsby-2", 42, borrowed_at=days_ago(30), returned_at=days_ago(20))
    seed_loan(db, "gatsby-2", 99)

    loans = catalog.get_user_active_loans(db, 42)

    assert [l["qrCodeId"] for l in loans] == ["dune-1", "gatsby-1"]
    assert loans[0]["title"] == "Dune"
    assert loans[1]["copyNumber"] == 1


def test_list_locations_seeded(db):
    assert [l.name for l in catalog.list_locations(db)] == ["Saga", "Elm", "Cendana"]
