"""Read-only catalog queries.

Availability is computed on every call from open loans (``returned_at IS
NULL``). The ``status`` column of a copy is returned for display but never
decides whether the copy is available.
"""
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload
from bookshare.models.book import Book, BookCopy, Location
from bookshare.models.loan import Loan
from bookshare.utils.timezone import as_utc


def list_books(db: Session) -> List[Book]:
    return db.query(Book).order_by(Book.id).all()


def list_locations(db: Session) -> List[Location]:
    return db.query(Location).order_by(Location.id).all()


def _open_loans_by_copy(db: Session, qr_code_ids: List[str]) -> Dict[str, Loan]:
    if not qr_code_ids:
        return {}
    loans = db.query(Loan).filter(
        Loan.qr_code_id.in_(qr_code_ids),
        Loan.returned_at.is_(None)
    ).all()
    return {loan.qr_code_id: loan for loan in loans}


def _describe_copy(book_copy: BookCopy, open_loan: Optional[Loan]):
    return {
        "qrCodeId": book_copy.qr_code_id,
        "copyNumber": book_copy.copy_number,
        "status": book_copy.status,
        "isAvailable": open_loan is None,
        "dueDate": as_utc(open_loan.due_date) if open_loan else None,
        "location": book_copy.location.to_dict() if book_copy.location else None,
    }


def _describe_book(db: Session, book: Book):
    copies = db.query(BookCopy).options(
        joinedload(BookCopy.location)
    ).filter(BookCopy.book_id == book.id).order_by(BookCopy.copy_number).all()
    open_loans = _open_loans_by_copy(db, [c.qr_code_id for c in copies])
    copies_info = [_describe_copy(c, open_loans.get(c.qr_code_id)) for c in copies]

    data = book.to_dict()
    data["totalCopies"] = len(copies_info)
    data["availableCopies"] = sum(1 for c in copies_info if c["isAvailable"])
    data["copies"] = copies_info
    return data


def get_book_details(db: Session, book_id: int):
    """Book with every copy, its location and its open-loan due date, or ``None``."""
    book = db.get(Book, book_id)
    if book is None:
        return None
    return _describe_book(db, book)


def get_book_details_by_isbn(db: Session, isbn: str):
    book = db.query(Book).filter(Book.isbn == isbn.strip()).first()
    if book is None:
        return None
    return _describe_book(db, book)


def get_copy_details(db: Session, qr_code_id: str):
    """What a scanned sticker refers to: the copy, its book and its open loan."""
    book_copy = db.query(BookCopy).options(
        joinedload(BookCopy.book),
        joinedload(BookCopy.location)
    ).filter(BookCopy.qr_code_id == qr_code_id).first()

    if book_copy is None:
        return None

    current_loan = db.query(Loan).filter(
        Loan.qr_code_id == qr_code_id,
        Loan.returned_at.is_(None)
    ).limit(1).first()

    data = book_copy.to_dict()
    data["isAvailable"] = current_loan is None
    data["location"] = book_copy.location.to_dict() if book_copy.location else None
    data["book"] = book_copy.book.to_dict()
    data["currentLoan"] = current_loan.to_dict() if current_loan else None
    return data


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_books(db: Session, query: str, limit: int = 10):
    """Case-insensitive substring match on title or author.

    Ordered by title then id so repeated calls return the same page.
    """
    pattern = _like_pattern(query.strip())
    open_loans = db.query(Loan.qr_code_id).filter(
        Loan.returned_at.is_(None)
    ).subquery()

    rows = db.query(
        Book,
        func.count(BookCopy.qr_code_id).label("total_copies"),
        func.count(open_loans.c.qr_code_id).label("copies_on_loan"),
    ).outerjoin(
        BookCopy, BookCopy.book_id == Book.id
    ).outerjoin(
        open_loans, open_loans.c.qr_code_id == BookCopy.qr_code_id
    ).filter(
        or_(
            Book.title.ilike(pattern, escape="\\"),
            Book.author.ilike(pattern, escape="\\")
        )
    ).group_by(Book.id).order_by(Book.title, Book.id).limit(limit).all()

    return [
        {
            "id": book.id,
            "isbn": book.isbn,
            "title": book.title,
            "author": book.author,
            "imageUrl": book.image_url,
            "totalCopies": total,
            "availableCopies": total - on_loan,
        }
        for book, total, on_loan in rows
    ]


def get_user_active_loans(db: Session, user_id: int):
    """Open loans of a user, most recently borrowed first."""
    loans = db.query(Loan).options(
        joinedload(Loan.copy).joinedload(BookCopy.book)
    ).filter(
        Loan.telegram_user_id == user_id,
        Loan.returned_at.is_(None)
    ).order_by(Loan.borrowed_at.desc(), Loan.id.desc()).all()

    return [
        {
            "loanId": loan.id,
            "qrCodeId": loan.qr_code_id,
            "bookId": loan.copy.book.id,
            "title": loan.copy.book.title,
            "author": loan.copy.book.author,
            "imageUrl": loan.copy.book.image_url,
            "copyNumber": loan.copy.copy_number,
            "borrowedAt": as_utc(loan.borrowed_at),
            "dueDate": as_utc(loan.due_date),
        }
        for loan in loans
    ]
