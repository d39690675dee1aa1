import json
import os
import tempfile
from datetime import timedelta

import httpx
import pytest

# Settings are read at import time, so the environment has to be in place first
_TMP_DIR = tempfile.mkdtemp(prefix="bookshare-tests-")
os.environ["BOT_TOKEN"] = "test-bot-token"
os.environ["ADMIN_GROUP_ID"] = "-100123"
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP_DIR}/default.db"
os.environ["WEBHOOK_SECRET"] = ""
os.environ["MINIAPP_URL"] = ""

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from bookshare.config import settings
from bookshare.database import Base, build_engine, get_db, init_db
from bookshare.main import app
from bookshare.models import Book, BookCopy, Loan
from bookshare.services.auth import sign_init_data
from bookshare.services.telegram import TelegramClient, get_telegram_client
from bookshare.utils.timezone import now_utc, due_date_from


class FakeTelegram:
    """Bot API stand-in served through ``httpx.MockTransport``."""

    def __init__(self):
        self.member_status = "administrator"
        self.fail = False
        self.sent = []
        self.member_checks = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            raise httpx.ConnectError("Telegram unreachable", request=request)

        method = request.url.path.rsplit("/", 1)[-1]
        payload = json.loads(request.content or b"{}")

        if method == "getChatMember":
            self.member_checks.append(payload)
            if self.member_status is None:
                return httpx.Response(400, json={"ok": False, "description": "Bad Request: user not found"})
            return httpx.Response(200, json={
                "ok": True,
                "result": {
                    "status": self.member_status,
                    "user": {"id": payload.get("user_id"), "is_bot": False, "first_name": "Test"},
                },
            })
        if method == "sendMessage":
            self.sent.append(payload)
            return httpx.Response(200, json={"ok": True, "result": {"message_id": len(self.sent)}})
        return httpx.Response(404, json={"ok": False, "description": "Not Found"})


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path}/library_{os.getpid()}.db")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    # Locations 1, 2 and 3
    init_db(bind=engine, session_factory=factory)
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_telegram():
    return FakeTelegram()


@pytest.fixture
def telegram(fake_telegram):
    client = TelegramClient(settings.bot_token, transport=httpx.MockTransport(fake_telegram))
    yield client
    client.close()


@pytest.fixture
def client(session_factory, telegram):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_telegram_client] = lambda: telegram
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()


def auth_headers(user_id: int, first_name: str = "Test", username: str = None, auth_date: int = None):
    user = {"id": user_id, "first_name": first_name}
    if username:
        user["username"] = username
    init_data = sign_init_data({"user": user}, settings.bot_token, auth_date=auth_date)
    return {"Authorization": f"tma {init_data}"}


def seed_book(db, isbn="isbn-123", title="Book A", author="Author", description="Test", image_url=None):
    book = Book(isbn=isbn, title=title, author=author, description=description, image_url=image_url)
    db.add(book)
    db.commit()
    db.refresh(book)
    return book


def seed_copy(db, qr_code_id, book_id, location_id=1, copy_number=1, status="available"):
    book_copy = BookCopy(
        qr_code_id=qr_code_id,
        book_id=book_id,
        location_id=location_id,
        copy_number=copy_number,
        status=status,
    )
    db.add(book_copy)
    db.commit()
    return book_copy


def seed_loan(db, qr_code_id, user_id, username=None, borrowed_at=None, returned_at=None):
    borrowed_at = borrowed_at or now_utc()
    loan = Loan(
        qr_code_id=qr_code_id,
        telegram_user_id=user_id,
        telegram_username=username,
        borrowed_at=borrowed_at,
        due_date=due_date_from(borrowed_at, 14),
        returned_at=returned_at,
    )
    db.add(loan)
    db.commit()
    db.refresh(loan)
    return loan


def open_loan_count(db, qr_code_id):
    db.expire_all()
    return db.query(Loan).filter(
        Loan.qr_code_id == qr_code_id,
        Loan.returned_at.is_(None)
    ).count()


def days_ago(days):
    return now_utc() - timedelta(days=days)
