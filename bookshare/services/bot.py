"""Telegram bot commands over the catalog.

Replies are plain text. Borrowing and returning happen in the mini app; the
bot only answers questions about the catalog and the user's loans.
"""
import logging
import re
from typing import List, Optional
from sqlalchemy.orm import Session
from bookshare.config import settings
from bookshare.services import catalog
from bookshare.services.auth import is_user_admin
from bookshare.services.telegram import TelegramClient
from bookshare.utils.qr import extract_book_code_from_link

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = (
    "Welcome to the community library!\n\n"
    "Scan the QR sticker inside a book to borrow or return it.\n"
    "Send any text to search the catalog by title or author.\n"
    "/book <isbn> shows a book and its copies.\n"
    "/mybooks lists the books you have borrowed."
)
BOOK_USAGE = "Usage: /book <isbn>"
BOOK_NOT_FOUND = "Book not found."
COPY_NOT_FOUND = "This QR code is not linked to any book yet."
NO_BORROWED_BOOKS = "You have no borrowed books."
USER_IDENTIFICATION_ERROR = "Could not identify you. Please try again."
GENERIC_ERROR = "Something went wrong. Please try again later."

MIN_SEARCH_LENGTH = 2

_BOOK_COMMAND = re.compile(r"^/book(?:@\w+)?\s*(.*)$", re.DOTALL)


def _date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def format_book_details(details: dict) -> str:
    lines = [
        f"{details['title']}",
        f"by {details['author']}",
        f"ISBN: {details['isbn']}",
        "",
        f"Available: {details['availableCopies']} of {details['totalCopies']}",
    ]
    for copy_info in details["copies"]:
        where = copy_info["location"]["name"] if copy_info["location"] else "unknown location"
        if copy_info["isAvailable"]:
            lines.append(f"  Copy #{copy_info['copyNumber']} ({where}): available")
        else:
            lines.append(f"  Copy #{copy_info['copyNumber']} ({where}): due back {_date(copy_info['dueDate'])}")
    if details.get("description"):
        lines.extend(["", details["description"]])
    return "\n".join(lines)


def format_copy_details(details: dict) -> str:
    book = details["book"]
    if details["isAvailable"]:
        state = "available"
    else:
        state = f"borrowed, due back {_date(details['currentLoan']['dueDate'])}"
    return f"{book['title']} by {book['author']}\nCopy #{details['copyNumber']}: {state}"


def format_my_books(loans: List[dict]) -> str:
    lines = [f"You have {len(loans)} borrowed book(s):", ""]
    for loan in loans:
        lines.append(f"{loan['title']} by {loan['author']} (copy #{loan['copyNumber']})")
        lines.append(f"  due back {_date(loan['dueDate'])}")
    return "\n".join(lines)


def format_search_results(results: List[dict], query: str) -> str:
    lines = [f"Results for \"{query}\":", ""]
    for result in results:
        lines.append(
            f"{result['title']} by {result['author']}"
            f" ({result['availableCopies']}/{result['totalCopies']} available)"
        )
        lines.append(f"  /book {result['isbn']}")
    return "\n".join(lines)


def format_no_search_results(query: str) -> str:
    return f"No books found for \"{query}\"."


class BotHandler:
    def __init__(self, db: Session, client: TelegramClient):
        self.db = db
        self.client = client

    def handle_update(self, update: dict) -> Optional[str]:
        """Answer one webhook update. Returns the text sent, if any."""
        message = update.get("message") or {}
        text = (message.get("text") or "").strip()
        chat_id = (message.get("chat") or {}).get("id")
        if not text or chat_id is None:
            return None

        sender = message.get("from") or {}
        reply_markup = None

        if text == "/start" or text.startswith("/start "):
            reply = WELCOME_MESSAGE
        elif text.startswith("/mybooks"):
            reply = self._my_books(sender.get("id"))
        elif _BOOK_COMMAND.match(text):
            reply, reply_markup = self._book(_BOOK_COMMAND.match(text).group(1).strip(), sender.get("id"))
        elif text.startswith("/"):
            return None
        else:
            reply = self._free_text(text)

        if reply is None:
            return None
        self.client.send_message(chat_id, reply, reply_markup=reply_markup)
        return reply

    def _my_books(self, user_id: Optional[int]) -> str:
        if user_id is None:
            return USER_IDENTIFICATION_ERROR
        loans = catalog.get_user_active_loans(self.db, user_id)
        if not loans:
            return NO_BORROWED_BOOKS
        return format_my_books(loans)

    def _book(self, isbn: str, user_id: Optional[int]):
        if not isbn:
            return BOOK_USAGE, None
        details = catalog.get_book_details_by_isbn(self.db, isbn)
        if not details:
            return BOOK_NOT_FOUND, None

        reply_markup = None
        if user_id is not None and settings.miniapp_url and is_user_admin(self.client, user_id):
            url = f"{settings.miniapp_url}?startapp=admin_{details['id']}"
            reply_markup = {"inline_keyboard": [[{"text": "Manage Book", "url": url}]]}
        return format_book_details(details), reply_markup

    def _free_text(self, text: str) -> Optional[str]:
        code = extract_book_code_from_link(text)
        if code:
            details = catalog.get_copy_details(self.db, code)
            return format_copy_details(details) if details else COPY_NOT_FOUND

        if len(text) < MIN_SEARCH_LENGTH:
            return None
        results = catalog.search_books(self.db, text, settings.search_limit)
        if not results:
            return format_no_search_results(text)
        return format_search_results(results, text)
