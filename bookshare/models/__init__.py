from .book import Location, Book, BookCopy
from .loan import Loan

__all__ = [
    "Location",
    "Book",
    "BookCopy",
    "Loan",
]
