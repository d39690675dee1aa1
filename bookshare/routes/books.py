from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from bookshare.config import settings
from bookshare.database import get_db
from bookshare.schemas.book import (
    BookListResponse, BookSummary,
    BookDetailsResponse,
    CopyDetailsResponse,
    SearchResponse
)
from bookshare.services import catalog

router = APIRouter(prefix="/api", tags=["Catalog"])

@router.get("/books", response_model=BookListResponse)
async def list_books(db: Session = Depends(get_db)):
    """List every book in the catalog (without descriptions)."""
    books = catalog.list_books(db)
    return BookListResponse(books=[BookSummary(**book.to_summary()) for book in books])

@router.get("/books/search", response_model=SearchResponse)
async def search_books(
    q: str = Query(..., min_length=1, description="Search by title or author"),
    limit: int = Query(settings.search_limit, ge=1, le=settings.search_max_limit),
    db: Session = Depends(get_db)
):
    """Search books with availability counts."""
    results = catalog.search_books(db, q, limit)
    return SearchResponse(query=q, results=results)

@router.get("/books/isbn/{isbn}", response_model=BookDetailsResponse)
async def get_book_by_isbn(isbn: str, db: Session = Depends(get_db)):
    """Get book details and copy availability by ISBN."""
    details = catalog.get_book_details_by_isbn(db, isbn)
    if not details:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found"
        )
    return BookDetailsResponse(book=details)

@router.get("/books/{book_id}", response_model=BookDetailsResponse)
async def get_book(book_id: int, db: Session = Depends(get_db)):
    """Get book details with every copy, its location and availability."""
    details = catalog.get_book_details(db, book_id)
    if not details:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book not found"
        )
    return BookDetailsResponse(book=details)

@router.get("/copies/{qr_code_id}", response_model=CopyDetailsResponse)
async def get_copy(qr_code_id: str, db: Session = Depends(get_db)):
    """Get a book copy by its QR code, with its book and open loan."""
    details = catalog.get_copy_details(db, qr_code_id)
    if not details:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Book copy not found"
        )
    return CopyDetailsResponse(copy=details)
