import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from bookshare.database import get_db
from bookshare.schemas.auth import TelegramUser, MeResponse, UserResponse
from bookshare.schemas.book import (
    LocationListResponse, LocationResponse,
    AddCopyRequest, AddCopyResponse
)
from bookshare.schemas.loan import (
    BorrowResponse, ReturnResponse,
    ActiveLoanListResponse
)
from bookshare.services import catalog
from bookshare.services.auth import get_current_user, get_is_admin, require_admin
from bookshare.services.copies import provision_copy
from bookshare.services.loans import borrow_book, return_book

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/miniapp", tags=["Mini App"])

def _book_brief(book):
    return {
        "title": book.title,
        "author": book.author,
        "imageUrl": book.image_url,
    }

@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: TelegramUser = Depends(get_current_user),
    is_admin: bool = Depends(get_is_admin)
):
    """Get the verified Telegram user and whether they may manage copies."""
    return MeResponse(
        user=UserResponse(
            id=current_user.id,
            firstName=current_user.first_name,
            lastName=current_user.last_name,
            username=current_user.username,
            photoUrl=current_user.photo_url,
        ),
        isAdmin=is_admin,
    )

@router.get("/locations", response_model=LocationListResponse)
async def get_locations(
    current_user: TelegramUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get all locations copies can be placed at."""
    locations = catalog.list_locations(db)
    return LocationListResponse(locations=[LocationResponse(**loc.to_dict()) for loc in locations])

@router.get("/loans", response_model=ActiveLoanListResponse)
async def get_my_loans(
    current_user: TelegramUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's open loans, most recent first."""
    loans = catalog.get_user_active_loans(db, current_user.id)
    return ActiveLoanListResponse(loans=loans)

@router.post("/books/{qr_code_id}/borrow", response_model=BorrowResponse)
def borrow(
    qr_code_id: str,
    current_user: TelegramUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Borrow the copy behind a QR code."""
    result = borrow_book(db, qr_code_id, current_user.id, current_user.username)
    loan = result.loan.to_dict()
    return BorrowResponse(
        loan={"id": loan["id"], "borrowedAt": loan["borrowedAt"], "dueDate": loan["dueDate"]},
        book=_book_brief(result.book),
        copyNumber=result.copy_number,
    )

@router.post("/books/{qr_code_id}/return", response_model=ReturnResponse)
def return_copy(
    qr_code_id: str,
    current_user: TelegramUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Return the copy behind a QR code."""
    result = return_book(db, qr_code_id, current_user.id)
    return ReturnResponse(
        book=_book_brief(result.book),
        borrowedAt=result.borrowed_at,
        returnedAt=result.returned_at,
    )

@router.post("/books/{book_id}/copies", response_model=AddCopyResponse)
def add_copy(
    book_id: int,
    request: AddCopyRequest,
    current_user: TelegramUser = Depends(get_current_user),
    is_admin: bool = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Register a new physical copy of a book (admins only)."""
    logger.info(f"Admin {current_user.id} adding copy of book {book_id} at location {request.locationId}")
    provisioned = provision_copy(db, book_id, request.qrCodeId, request.locationId)
    return AddCopyResponse(copy=provisioned.to_dict())
