import pytest

from bookshare.config import settings
from bookshare.services.bot import (
    BOOK_NOT_FOUND,
    BOOK_USAGE,
    COPY_NOT_FOUND,
    NO_BORROWED_BOOKS,
    WELCOME_MESSAGE,
    BotHandler,
)

from conftest import seed_book, seed_copy, seed_loan


def _update(text, user_id=42, chat_id=42):
    return {
        "update_id": 1,
        "message": {
            "message_id": 10,
            "chat": {"id": chat_id, "type": "private"},
            "from": {"id": user_id, "is_bot": False, "first_name": "Ada"},
            "text": text,
        },
    }


@pytest.fixture
def bot(db, telegram):
    return BotHandler(db, telegram)


def test_start(bot, fake_telegram):
    assert bot.handle_update(_update("/start")) == WELCOME_MESSAGE
    assert fake_telegram.sent[0]["chat_id"] == 42
    assert fake_telegram.sent[0]["text"] == WELCOME_MESSAGE


def test_mybooks_empty(bot):
    assert bot.handle_update(_update("/mybooks")) == NO_BORROWED_BOOKS


def test_mybooks_lists_open_loans(bot, db):
    book = seed_book(db, title="Dune", author="Frank Herbert")
    seed_copy(db, "dune-1", book.id)
    seed_loan(db, "dune-1", 42)

    reply = bot.handle_update(_update("/mybooks"))

    assert "Dune by Frank Herbert" in reply
    assert "copy #1" in reply


def test_book_command(bot, db):
    book = seed_book(db, isbn="9780743273565", title="The Great Gatsby")
    seed_copy(db, "gatsby-1", book.id)
    seed_copy(db, "gatsby-2", book.id, copy_number=2)
    seed_loan(db, "gatsby-2", 7)

    reply = bot.handle_update(_update("/book 9780743273565"))

    assert "The Great Gatsby" in reply
    assert "Available: 1 of 2" in reply
    assert "Copy #2 (Saga): due back" in reply


def test_book_command_without_isbn(bot):
    assert bot.handle_update(_update("/book")) == BOOK_USAGE


def test_book_command_unknown_isbn(bot):
    assert bot.handle_update(_update("/book 000")) == BOOK_NOT_FOUND


def test_book_command_shows_manage_link_to_admins(bot, db, fake_telegram, monkeypatch):
    monkeypatch.setattr(settings, "miniapp_url", "https://t.me/library_bot/app")
    book = seed_book(db, isbn="isbn-1")

    bot.handle_update(_update("/book isbn-1"))

    button = fake_telegram.sent[-1]["reply_markup"]["inline_keyboard"][0][0]
    assert button["url"] == f"https://t.me/library_bot/app?startapp=admin_{book.id}"


def test_book_command_hides_manage_link_from_members(bot, db, fake_telegram, monkeypatch):
    monkeypatch.setattr(settings, "miniapp_url", "https://t.me/library_bot/app")
    fake_telegram.member_status = "left"
    seed_book(db, isbn="isbn-1")

    bot.handle_update(_update("/book isbn-1"))

    assert "reply_markup" not in fake_telegram.sent[-1]


def test_free_text_searches(bot, db):
    seed_book(db, title="The Great Gatsby", author="F. Scott Fitzgerald")

    reply = bot.handle_update(_update("gatsby"))

    assert "The Great Gatsby by F. Scott Fitzgerald (0/0 available)" in reply


def test_free_text_without_results(bot):
    assert "No books found" in bot.handle_update(_update("nothing here"))


def test_short_text_is_ignored(bot, fake_telegram):
    assert bot.handle_update(_update("a")) is None
    assert fake_telegram.sent == []


def test_unknown_command_is_ignored(bot, fake_telegram):
    assert bot.handle_update(_update("/unknown")) is None
    assert fake_telegram.sent == []


def test_copy_link_shows_copy(bot, db):
    book = seed_book(db, title="Dune", author="Frank Herbert")
    seed_copy(db, "COPY-ABCDEF", book.id)

    reply = bot.handle_update(_update("https://t.me/library_bot/app?startapp=COPY-ABCDEF"))

    assert reply == "Dune by Frank Herbert\nCopy #1: available"


def test_unlinked_copy_link(bot):
    assert bot.handle_update(_update("https://t.me/library_bot/app?startapp=COPY-ABCDEF")) == COPY_NOT_FOUND


def test_webhook_endpoint(client, fake_telegram):
    response = client.post("/api/bot", json=_update("/start"))

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert fake_telegram.sent[0]["text"] == WELCOME_MESSAGE


def test_webhook_secret(client, fake_telegram, monkeypatch):
    monkeypatch.setattr(settings, "webhook_secret", "s3cret")

    rejected = client.post("/api/bot", json=_update("/start"))
    accepted = client.post(
        "/api/bot",
        json=_update("/start"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )

    assert rejected.status_code == 401
    assert accepted.status_code == 200
    assert len(fake_telegram.sent) == 1
