from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

class LoanInfo(BaseModel):
    id: int
    borrowedAt: datetime
    dueDate: datetime

class BookBrief(BaseModel):
    title: str
    author: str
    imageUrl: Optional[str] = None

class BorrowResponse(BaseModel):
    success: bool = True
    outcome: str = "borrowed"
    loan: LoanInfo
    book: BookBrief
    copyNumber: int

class ReturnResponse(BaseModel):
    success: bool = True
    book: BookBrief
    borrowedAt: datetime
    returnedAt: datetime

class ActiveLoan(BaseModel):
    loanId: int
    qrCodeId: str
    bookId: int
    title: str
    author: str
    imageUrl: Optional[str] = None
    copyNumber: int
    borrowedAt: datetime
    dueDate: datetime

class ActiveLoanListResponse(BaseModel):
    loans: List[ActiveLoan]
