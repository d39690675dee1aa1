from datetime import datetime
from typing import Optional
from fastapi import status


class LibraryError(Exception):
    """Base class for outcomes the lending core reports to callers."""

    code = "library_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"success": False, "code": self.code, "error": self.message}


# Entity absence. Never accompanied by a write.
class NotFoundError(LibraryError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class CopyNotFound(NotFoundError):
    code = "copy_not_found"
    default_message = "Book copy not found"


class BookNotFound(NotFoundError):
    code = "book_not_found"
    default_message = "Book not found"


class LocationNotFound(NotFoundError):
    code = "location_not_found"
    default_message = "Location not found"


class NoActiveLoanForUser(LibraryError):
    # Same answer whether the copy was never borrowed, already returned or
    # borrowed by someone else.
    code = "no_active_loan"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No active loan found for this book"


# The write would break an invariant.
class ConflictError(LibraryError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class CurrentlyBorrowed(ConflictError):
    code = "currently_borrowed"

    def __init__(self, due_date: datetime):
        self.due_date = due_date
        super().__init__(f"This book is currently borrowed (due back {due_date:%Y-%m-%d})")

    def to_dict(self):
        data = super().to_dict()
        data["dueDate"] = self.due_date.isoformat()
        return data


class RaceLost(ConflictError):
    code = "race_lost"
    default_message = "This book was just borrowed by someone else, please try again"


class QrCodeAlreadyAssigned(ConflictError):
    code = "qr_code_already_assigned"

    def __init__(self, qr_code_id: str):
        self.qr_code_id = qr_code_id
        super().__init__(f"QR code {qr_code_id} is already assigned to a book copy")


class CopyNumberTaken(ConflictError):
    code = "copy_number_taken"
    default_message = "Another copy of this book was just added, please try again"


class InvalidInputError(LibraryError):
    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class MalformedQrInput(InvalidInputError):
    code = "malformed_qr_input"
    default_message = (
        "qrCodeId must be a copy code (COPY-XXXXXX) or a link including startapp=COPY-..."
    )


class AlreadyBorrowedBySelf(LibraryError):
    """The caller already holds the open loan. Nothing was written."""

    code = "already_borrowed"
    status_code = status.HTTP_200_OK
    default_message = "You have already borrowed this book"

    def __init__(self, loan, book=None, copy_number: Optional[int] = None):
        self.loan = loan
        self.book = book
        self.copy_number = copy_number
        super().__init__()

    def to_dict(self):
        data = super().to_dict()
        loan = self.loan.to_dict()
        data["outcome"] = "already_borrowed"
        data["loan"] = {
            "id": loan["id"],
            "borrowedAt": loan["borrowedAt"].isoformat(),
            "dueDate": loan["dueDate"].isoformat(),
        }
        if self.copy_number is not None:
            data["copyNumber"] = self.copy_number
        return data
