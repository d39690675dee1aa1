from .auth import TelegramUser, InitData, UserResponse, MeResponse
from .book import (
    LocationResponse, LocationListResponse,
    BookSummary, BookListResponse,
    CopyInfo, BookDetails, BookDetailsResponse,
    OpenLoanInfo, CopyDetails, CopyDetailsResponse,
    SearchResult, SearchResponse,
    AddCopyRequest, ProvisionedCopyResponse, AddCopyResponse
)
from .loan import LoanInfo, BookBrief, BorrowResponse, ReturnResponse, ActiveLoan, ActiveLoanListResponse

__all__ = [
    "TelegramUser", "InitData", "UserResponse", "MeResponse",
    "LocationResponse", "LocationListResponse",
    "BookSummary", "BookListResponse",
    "CopyInfo", "BookDetails", "BookDetailsResponse",
    "OpenLoanInfo", "CopyDetails", "CopyDetailsResponse",
    "SearchResult", "SearchResponse",
    "AddCopyRequest", "ProvisionedCopyResponse", "AddCopyResponse",
    "LoanInfo", "BookBrief", "BorrowResponse", "ReturnResponse", "ActiveLoan", "ActiveLoanListResponse",
]
