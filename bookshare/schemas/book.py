from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

class LocationResponse(BaseModel):
    id: int
    name: str

class LocationListResponse(BaseModel):
    locations: List[LocationResponse]

class BookSummary(BaseModel):
    id: int
    isbn: str
    title: str
    author: str
    imageUrl: Optional[str] = None
    createdAt: Optional[datetime] = None

class BookListResponse(BaseModel):
    books: List[BookSummary]

class CopyInfo(BaseModel):
    qrCodeId: str
    copyNumber: int
    status: Optional[str] = None
    isAvailable: bool
    dueDate: Optional[datetime] = None
    location: Optional[LocationResponse] = None

class BookDetails(BookSummary):
    description: str
    totalCopies: int
    availableCopies: int
    copies: List[CopyInfo]

class BookDetailsResponse(BaseModel):
    book: BookDetails

class OpenLoanInfo(BaseModel):
    id: int
    borrowedAt: datetime
    dueDate: datetime

class CopyDetails(BaseModel):
    qrCodeId: str
    bookId: int
    locationId: int
    copyNumber: int
    status: Optional[str] = None
    isAvailable: bool
    location: Optional[LocationResponse] = None
    book: BookSummary
    currentLoan: Optional[OpenLoanInfo] = None

class CopyDetailsResponse(BaseModel):
    copy_: CopyDetails = Field(..., alias="copy")

    class Config:
        populate_by_name = True

class SearchResult(BaseModel):
    id: int
    isbn: str
    title: str
    author: str
    imageUrl: Optional[str] = None
    totalCopies: int
    availableCopies: int

class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]

class AddCopyRequest(BaseModel):
    # Scanned payload: a bare COPY-XXXXXX code or a deep link carrying it
    qrCodeId: str = Field(..., min_length=1, max_length=2048)
    locationId: int = Field(..., gt=0)

class ProvisionedCopyResponse(BaseModel):
    qrCodeId: str
    copyNumber: int
    bookId: int
    locationId: int

class AddCopyResponse(BaseModel):
    success: bool = True
    copy_: ProvisionedCopyResponse = Field(..., alias="copy")

    class Config:
        populate_by_name = True
