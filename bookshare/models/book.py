from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from bookshare.database import Base
from bookshare.utils.timezone import now_utc, as_utc

class Location(Base):
    __tablename__ = "locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    # Relationships
    book_copies = relationship("BookCopy", back_populates="location")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
        }

class Book(Base):
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    isbn = Column(String(20), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    image_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    # Relationships
    copies = relationship("BookCopy", back_populates="book", order_by="BookCopy.copy_number")

    def to_summary(self):
        return {
            "id": self.id,
            "isbn": self.isbn,
            "title": self.title,
            "author": self.author,
            "imageUrl": self.image_url,
            "createdAt": as_utc(self.created_at),
        }

    def to_dict(self):
        data = self.to_summary()
        data["description"] = self.description
        return data

class BookCopy(Base):
    __tablename__ = "book_copies"

    # Printed on the sticker, the only external handle for a copy
    qr_code_id = Column(String(64), primary_key=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    copy_number = Column(Integer, nullable=False)
    # Display only. Availability comes from open loans, never from this column.
    status = Column(String(50), default="available")

    # Relationships
    book = relationship("Book", back_populates="copies")
    location = relationship("Location", back_populates="book_copies")
    loans = relationship("Loan", back_populates="copy")

    __table_args__ = (
        UniqueConstraint("book_id", "copy_number", name="uq_book_copy_number"),
    )

    def to_dict(self):
        return {
            "qrCodeId": self.qr_code_id,
            "bookId": self.book_id,
            "locationId": self.location_id,
            "copyNumber": self.copy_number,
            "status": self.status,
        }
