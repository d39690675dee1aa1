"""Borrow and return.

Nothing here takes a lock. The partial unique index ``idx_unique_active_loan``
admits at most one loan per copy with ``returned_at IS NULL``; a borrow is an
insert against it and a losing racer sees an ``IntegrityError``. Returns are a
conditional update that only matches an open loan, so a repeated return finds
nothing to update.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from bookshare.config import settings
from bookshare.models.book import Book, BookCopy
from bookshare.models.loan import Loan
from bookshare.services.errors import (
    AlreadyBorrowedBySelf,
    CopyNotFound,
    CurrentlyBorrowed,
    NoActiveLoanForUser,
    RaceLost,
)
from bookshare.utils.timezone import now_utc, as_utc, due_date_from

logger = logging.getLogger(__name__)


@dataclass
class BorrowResult:
    loan: Loan
    book: Book
    copy_number: int


@dataclass
class ReturnResult:
    book: Book
    borrowed_at: datetime
    returned_at: datetime


def find_open_loan(db: Session, qr_code_id: str) -> Optional[Loan]:
    return db.query(Loan).filter(
        Loan.qr_code_id == qr_code_id,
        Loan.returned_at.is_(None)
    ).first()


def _reject_open_loan(current: Loan, book_copy: BookCopy, user_id: int):
    if current.telegram_user_id == user_id:
        raise AlreadyBorrowedBySelf(current, book_copy.book, book_copy.copy_number)
    raise CurrentlyBorrowed(as_utc(current.due_date))


def borrow_book(
    db: Session,
    qr_code_id: str,
    user_id: int,
    username: Optional[str] = None,
) -> BorrowResult:
    """Open a loan on a copy for ``user_id``.

    Raises ``CopyNotFound``, ``AlreadyBorrowedBySelf`` (no write happened),
    ``CurrentlyBorrowed`` or ``RaceLost`` when another request opened a loan
    between our read and our insert.
    """
    book_copy = db.query(BookCopy).options(
        joinedload(BookCopy.book)
    ).filter(BookCopy.qr_code_id == qr_code_id).first()

    if book_copy is None:
        raise CopyNotFound()

    current = find_open_loan(db, qr_code_id)
    if current is not None:
        _reject_open_loan(current, book_copy, user_id)

    book = book_copy.book
    copy_number = book_copy.copy_number
    borrowed_at = now_utc()
    loan = Loan(
        qr_code_id=qr_code_id,
        telegram_user_id=user_id,
        telegram_username=username or None,
        borrowed_at=borrowed_at,
        due_date=due_date_from(borrowed_at, settings.loan_period_days),
    )
    db.add(loan)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        winner = find_open_loan(db, qr_code_id)
        if winner is None:
            logger.error(f"Loan insert for {qr_code_id} rejected without an open loan present")
            raise
        if winner.telegram_user_id == user_id:
            raise AlreadyBorrowedBySelf(winner, book, copy_number)
        logger.warning(f"Borrow race lost on {qr_code_id} by user {user_id}")
        raise RaceLost()

    db.refresh(loan)
    logger.info(f"User {user_id} borrowed {qr_code_id} (loan {loan.id})")
    return BorrowResult(loan=loan, book=book, copy_number=copy_number)


def return_book(db: Session, qr_code_id: str, user_id: int) -> ReturnResult:
    """Close the caller's open loan on a copy.

    Raises ``NoActiveLoanForUser`` if the caller holds no open loan on it.
    """
    loan = db.query(Loan).options(
        joinedload(Loan.copy).joinedload(BookCopy.book)
    ).filter(
        Loan.qr_code_id == qr_code_id,
        Loan.telegram_user_id == user_id,
        Loan.returned_at.is_(None)
    ).first()

    if loan is None:
        raise NoActiveLoanForUser()

    book = loan.copy.book
    borrowed_at = as_utc(loan.borrowed_at)
    returned_at = now_utc()

    updated = db.query(Loan).filter(
        Loan.id == loan.id,
        Loan.returned_at.is_(None)
    ).update({Loan.returned_at: returned_at}, synchronize_session=False)
    db.commit()

    if updated == 0:
        # A concurrent return from the same user got there first
        raise NoActiveLoanForUser()

    logger.info(f"User {user_id} returned {qr_code_id} (loan {loan.id})")
    return ReturnResult(book=book, borrowed_at=borrowed_at, returned_at=returned_at)
