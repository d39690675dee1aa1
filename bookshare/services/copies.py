import logging
from dataclasses import dataclass
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from bookshare.models.book import Book, BookCopy, Location
from bookshare.services.errors import (
    BookNotFound,
    CopyNumberTaken,
    LocationNotFound,
    MalformedQrInput,
    QrCodeAlreadyAssigned,
)
from bookshare.utils.qr import normalize_scanned_code

logger = logging.getLogger(__name__)


@dataclass
class ProvisionedCopy:
    qr_code_id: str
    copy_number: int
    book_id: int
    location_id: int

    def to_dict(self):
        return {
            "qrCodeId": self.qr_code_id,
            "copyNumber": self.copy_number,
            "bookId": self.book_id,
            "locationId": self.location_id,
        }


def add_book_copy(db: Session, book_id: int, location_id: int, qr_code_id: str) -> ProvisionedCopy:
    """Bind a new physical copy to a book and a location.

    Checks run in order: book, location, then global uniqueness of the code.
    The copy number is one more than the number of copies the book already has;
    the ``(book_id, copy_number)`` constraint rejects a concurrent duplicate.
    """
    if db.get(Book, book_id) is None:
        raise BookNotFound()

    if db.get(Location, location_id) is None:
        raise LocationNotFound()

    if db.get(BookCopy, qr_code_id) is not None:
        raise QrCodeAlreadyAssigned(qr_code_id)

    existing = db.query(func.count(BookCopy.qr_code_id)).filter(
        BookCopy.book_id == book_id
    ).scalar()
    copy_number = existing + 1

    db.add(BookCopy(
        qr_code_id=qr_code_id,
        book_id=book_id,
        location_id=location_id,
        copy_number=copy_number,
        status="available",
    ))

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if db.get(BookCopy, qr_code_id) is not None:
            logger.warning(f"QR code {qr_code_id} was assigned concurrently")
            raise QrCodeAlreadyAssigned(qr_code_id)
        logger.warning(f"Copy number {copy_number} of book {book_id} was taken concurrently")
        raise CopyNumberTaken()

    logger.info(f"Added copy {qr_code_id} (#{copy_number}) of book {book_id} at location {location_id}")
    return ProvisionedCopy(
        qr_code_id=qr_code_id,
        copy_number=copy_number,
        book_id=book_id,
        location_id=location_id,
    )


def provision_copy(db: Session, book_id: int, scanned_payload: str, location_id: int) -> ProvisionedCopy:
    """Add a copy from whatever the scanner produced: a bare code or a deep link."""
    qr_code_id = normalize_scanned_code(scanned_payload)
    if not qr_code_id:
        raise MalformedQrInput()
    return add_book_copy(db, book_id, location_id, qr_code_id)
