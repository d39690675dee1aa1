from sqlalchemy import Column, String, DateTime, Integer, BigInteger, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from bookshare.database import Base
from bookshare.utils.timezone import now_utc, as_utc

OPEN_LOAN_CLAUSE = text("returned_at IS NULL")

class Loan(Base):
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    qr_code_id = Column(String(64), ForeignKey("book_copies.qr_code_id"), nullable=False)
    telegram_user_id = Column(BigInteger, nullable=False, index=True)
    telegram_username = Column(String(255), nullable=True)
    borrowed_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    returned_at = Column(DateTime(timezone=True), nullable=True)
    # Owned by the reminder pipeline, nothing in this service writes it
    last_reminder_sent = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    copy = relationship("BookCopy", back_populates="loans")

    __table_args__ = (
        Index("idx_active_loans", "qr_code_id", "returned_at"),
        # At most one open loan per copy. Every borrow is an insert against this index.
        Index(
            "idx_unique_active_loan",
            "qr_code_id",
            unique=True,
            sqlite_where=OPEN_LOAN_CLAUSE,
            postgresql_where=OPEN_LOAN_CLAUSE,
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.returned_at is None

    def to_dict(self):
        return {
            "id": self.id,
            "qrCodeId": self.qr_code_id,
            "userId": self.telegram_user_id,
            "username": self.telegram_username,
            "borrowedAt": as_utc(self.borrowed_at),
            "dueDate": as_utc(self.due_date),
            "returnedAt": as_utc(self.returned_at),
        }
