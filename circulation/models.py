"""
Data models for the catalog and the loan ledger.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from storage.models import BookKind, BookStatus, LoanState


class LoanRejection(str, Enum):
    """Reasons a loan operation is refused."""
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNSUPPORTED_KIND = "unsupported_kind"
    OUT_OF_STOCK = "out_of_stock"
    DUPLICATE_ACTIVE_LOAN = "duplicate_active_loan"
    NOT_FOUND_OR_ALREADY_RETURNED = "not_found_or_already_returned"


REJECTION_MESSAGES = {
    LoanRejection.NOT_FOUND: "No user or book matches the request.",
    LoanRejection.FORBIDDEN: "Students can only request loans for themselves.",
    LoanRejection.UNSUPPORTED_KIND: "Digital books cannot be lent.",
    LoanRejection.OUT_OF_STOCK: "No copies of this book are available.",
    LoanRejection.DUPLICATE_ACTIVE_LOAN: "The user already has an active loan for this book.",
    LoanRejection.NOT_FOUND_OR_ALREADY_RETURNED: "Loan not found, already returned or not active.",
}


class LoanStatus(str, Enum):
    """Result kinds of a loan operation."""
    CREATED = "created"
    RETURNED = "returned"
    REJECTED = "rejected"


class LoanResult(BaseModel):
    """Outcome of create_loan or return_loan."""
    status: LoanStatus
    message: str
    loan_id: Optional[int] = None
    reason: Optional[LoanRejection] = None
    due_date: Optional[date] = None
    return_date: Optional[date] = None

    @classmethod
    def rejected(cls, reason: LoanRejection, message: Optional[str] = None) -> "LoanResult":
        return cls(
            status=LoanStatus.REJECTED,
            reason=reason,
            message=message or REJECTION_MESSAGES[reason],
        )

    @property
    def ok(self) -> bool:
        return self.status != LoanStatus.REJECTED


class LoanHistoryEntry(BaseModel):
    """Row of the loan history listing."""
    loan_id: int
    user_id: int
    handle: str
    book_id: int
    title: str
    loan_date: date
    due_date: date
    return_date: Optional[date] = None
    state: LoanState


class BookSubmission(BaseModel):
    """Raw catalog form fields, exactly as submitted."""
    title: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    kind: Optional[str] = None
    publication_year: Optional[str] = None
    copies: Optional[str] = None


class ValidatedBook(BaseModel):
    """Catalog fields after validation."""
    title: str
    author: str
    category: str
    kind: BookKind
    publication_year: int
    copies_available: int = Field(..., ge=0)


class UploadedFile(BaseModel):
    """A file received with a catalog submission."""
    filename: str
    content_type: Optional[str] = None
    size: int = Field(0, ge=0)
    stream: Any = None


class BookView(BaseModel):
    """Catalog entry as returned by the listing."""
    id: int
    title: str
    author: str
    category: str
    kind: BookKind
    copies_available: int
    status: BookStatus
    publication_year: Optional[int] = None
    file_links: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = None
    created_at: datetime
