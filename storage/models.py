"""
Relational schema for users, books and loans.

Tables are declared with the SQLAlchemy 2.0 ORM. Enumerated columns are
stored by value so the partial unique index on active loans can refer to
the literal state.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Role(str, Enum):
    """Account roles."""
    STUDENT = "student"
    LIBRARIAN = "librarian"
    ADMINISTRATOR = "administrator"


class BookKind(str, Enum):
    """Physical books are lent; digital books are only downloaded."""
    PHYSICAL = "physical"
    DIGITAL = "digital"


class BookStatus(str, Enum):
    """Availability derived from the stock count."""
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class LoanState(str, Enum):
    """Loan lifecycle states."""
    ACTIVE = "active"
    RETURNED = "returned"


def _enum_column(enum_cls):
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=16,
        values_callable=lambda members: [member.value for member in members],
    )


class Base(DeclarativeBase):
    pass


class UserRecord(Base):
    """Row of the credential store."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    contact: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    credential_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[Role] = mapped_column(_enum_column(Role), nullable=False, default=Role.STUDENT)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lockout_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    temp_credential_expiry: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<User {self.handle}>"


class BookRecord(Base):
    """Catalog entry. Digital books always keep zero copies."""
    __tablename__ = "books"
    __table_args__ = (
        UniqueConstraint("title", "author", name="uq_books_title_author"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    kind: Mapped[BookKind] = mapped_column(_enum_column(BookKind), nullable=False)
    copies_available: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    file_links: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    cover_image: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    @property
    def status(self) -> BookStatus:
        return BookStatus.AVAILABLE if self.copies_available > 0 else BookStatus.UNAVAILABLE

    def __repr__(self) -> str:
        return f"<Book {self.id} {self.title!r}>"


class LoanRecord(Base):
    """Relationship record between a user and a book."""
    __tablename__ = "loans"
    __table_args__ = (
        # At most one active loan per (user, book).
        Index(
            "uq_loans_active_user_book",
            "user_id",
            "book_id",
            unique=True,
            sqlite_where=text("state = 'active'"),
            postgresql_where=text("state = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    book_id: Mapped[int] = mapped_column(ForeignKey("books.id"), nullable=False, index=True)
    loan_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    state: Mapped[LoanState] = mapped_column(_enum_column(LoanState), nullable=False, default=LoanState.ACTIVE)

    def __repr__(self) -> str:
        return f"<Loan {self.id} {self.state.value}>"
