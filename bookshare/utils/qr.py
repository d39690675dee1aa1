"""Copy codes printed on book stickers.

A code is ``COPY-`` followed by six characters from an alphabet without the
look-alike glyphs 0, O, I and 1. Stickers carry a Telegram deep link such as
``https://t.me/<bot>/<app>?startapp=COPY-ABC234``; the code sits in the
``startapp`` query parameter.
"""
import re
from typing import Optional
from urllib.parse import urlsplit, parse_qs

BOOK_QR_PREFIX = "COPY-"
BOOK_QR_CODE_LENGTH = 6
BOOK_QR_CHARSET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
BOOK_QR_CODE_REGEX = re.compile(
    rf"^{re.escape(BOOK_QR_PREFIX)}[{BOOK_QR_CHARSET}]{{{BOOK_QR_CODE_LENGTH}}}$"
)
START_PARAM = "startapp"

_TELEGRAM_LINK_REGEX = re.compile(r"(^|//)t\.me/", re.IGNORECASE)


def is_valid_book_code(text: str) -> bool:
    return bool(BOOK_QR_CODE_REGEX.match(text.strip()))


def _start_param(query: str) -> Optional[str]:
    values = parse_qs(query).get(START_PARAM)
    if not values:
        return None
    return values[0].strip()


def extract_book_qr_param(text: str) -> Optional[str]:
    """Pull a valid copy code out of a deep link or a bare ``startapp=`` fragment.

    Returns ``None`` when there is no ``startapp`` parameter or its value does
    not match the code grammar.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return None

    if "?" in trimmed:
        candidate = trimmed if trimmed.lower().startswith("http") else f"https://{trimmed}"
        try:
            query = urlsplit(candidate).query
        except ValueError:
            query = trimmed.split("?", 1)[1]
    else:
        query = trimmed

    code = _start_param(query)
    if code and is_valid_book_code(code):
        return code
    return None


def extract_book_code_from_link(text: str) -> Optional[str]:
    """Like :func:`extract_book_qr_param` but only accepts ``t.me`` links."""
    trimmed = (text or "").strip()
    if not trimmed or not _TELEGRAM_LINK_REGEX.search(trimmed):
        return None
    return extract_book_qr_param(trimmed)


def normalize_scanned_code(payload: str) -> Optional[str]:
    """Accept a bare code or a link carrying one."""
    trimmed = (payload or "").strip()
    if is_valid_book_code(trimmed):
        return trimmed
    return extract_book_qr_param(trimmed)
