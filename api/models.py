"""
API models and schemas for the FastAPI application.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, validator

from circulation.models import LoanHistoryEntry
from storage.models import BookKind, BookStatus, Role


class RegisterRequest(BaseModel):
    """Self-registration and librarian creation payload."""
    handle: str = Field(..., min_length=1, max_length=64, description="Login handle (enrollment number)")
    contact: str = Field(..., min_length=3, max_length=255, description="E-mail address")
    password: str = Field(..., min_length=1, description="Password")

    @validator('handle', 'contact')
    def strip_whitespace(cls, v):
        """Reject blank identifiers."""
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v


class LoginRequest(BaseModel):
    """Login payload."""
    handle: str = Field(..., min_length=1, description="Login handle")
    password: str = Field(..., min_length=1, description="Password")


class ForgotPasswordRequest(BaseModel):
    """Password recovery payload."""
    identifier: str = Field(..., min_length=1, description="E-mail address or login handle")


class ChangePasswordRequest(BaseModel):
    """Password change payload."""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class AccountResponse(BaseModel):
    """Public view of an account."""
    id: int = Field(..., description="User identifier")
    handle: str = Field(..., description="Login handle")
    contact: str = Field(..., description="E-mail address")
    role: Role = Field(..., description="Account role")


class LoginResponse(BaseModel):
    """Successful login."""
    message: str
    token: str = Field(..., description="Bearer session token")
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    role: Role
    user_id: int


class MessageResponse(BaseModel):
    """Plain confirmation."""
    message: str


class BookResponse(BaseModel):
    """Book response model for API."""
    id: int = Field(..., description="Book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    category: str = Field(..., description="Book category")
    kind: BookKind = Field(..., description="physical or digital")
    copies_available: int = Field(..., ge=0, description="Copies on the shelf")
    status: BookStatus = Field(..., description="Derived availability")
    publication_year: Optional[int] = Field(None, description="Year of publication")
    file_links: List[str] = Field(default_factory=list, description="URLs of the stored PDFs")
    cover_image_url: Optional[str] = Field(None, description="URL of the cover image")
    created_at: datetime = Field(..., description="Registration timestamp")


class BookListResponse(BaseModel):
    """Response model for the catalog listing."""
    books: List[BookResponse] = Field(..., description="List of books")
    total: int = Field(..., description="Total number of books")


class LoanCreateRequest(BaseModel):
    """Loan creation payload."""
    handle: str = Field(..., min_length=1, description="Borrower handle")
    book_id: int = Field(..., ge=1, description="Book to lend")
    due_date: date = Field(..., description="Date the copy is due back")


class LoanCreatedResponse(BaseModel):
    """Loan created."""
    message: str
    loan_id: int
    due_date: date


class LoanReturnedResponse(BaseModel):
    """Loan returned."""
    message: str
    loan_id: int
    return_date: date


class LoanHistoryResponse(BaseModel):
    """Loan history listing."""
    loans: List[LoanHistoryEntry] = Field(..., description="Loans, newest first")
    total: int = Field(..., description="Number of loans")


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    reason: Optional[str] = Field(None, description="Machine-readable rejection reason")
    retry_after_seconds: Optional[int] = Field(None, description="Seconds until a locked account can retry")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
