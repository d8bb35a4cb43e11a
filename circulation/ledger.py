"""
Loan ledger: loan creation and return coupled to book inventory.

Each operation runs in one transaction. The book row is read FOR UPDATE
before its stock is checked, so concurrent requests for the last copy are
serialized; the partial unique index on active loans backs up the
duplicate check.
"""

from datetime import date, datetime
from typing import Callable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from accounts.models import SessionClaims
from circulation.models import (
    LoanHistoryEntry,
    LoanRejection,
    LoanResult,
    LoanStatus,
)
from storage.database import LibraryStore
from storage.models import BookKind, BookRecord, LoanRecord, LoanState, Role, UserRecord
from utilities.errors import InvalidInputError
from utilities.logger import AuditLogger

logger = structlog.get_logger(__name__)


class LoanLedger:
    """Creates, returns and lists loans."""

    def __init__(
        self,
        store: LibraryStore,
        audit: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.audit = audit or AuditLogger()
        self.clock = clock or datetime.utcnow

    def today(self) -> date:
        return self.clock().date()

    async def create_loan(
        self,
        handle: str,
        book_id: int,
        due_date: date,
        requesting_user: SessionClaims,
    ) -> LoanResult:
        """
        Lend one copy of a physical book.

        An existing active loan for the same borrower and book is reported
        before stock is checked, so a repeat request for the last copy is a
        duplicate rather than out of stock.

        Args:
            handle: Handle of the borrower
            book_id: Book to lend
            due_date: Date the copy is due back
            requesting_user: Identity of the caller

        Returns:
            LoanResult with status created, or rejected with a reason

        Raises:
            InvalidInputError: If a field is missing or the due date is in the past
        """
        handle = (handle or "").strip()
        if not handle or book_id is None or due_date is None:
            raise InvalidInputError("Handle, book id and due date are required.")

        today = self.today()
        if due_date < today:
            raise InvalidInputError("Due date cannot be earlier than today.")

        try:
            async with self.store.transaction() as session:
                user = await session.scalar(select(UserRecord).where(UserRecord.handle == handle))
                if user is None:
                    return self._reject(LoanRejection.NOT_FOUND, handle=handle, book_id=book_id)

                if requesting_user.role == Role.STUDENT and requesting_user.user_id != user.id:
                    return self._reject(
                        LoanRejection.FORBIDDEN,
                        handle=handle,
                        book_id=book_id,
                        requested_by=requesting_user.user_id,
                    )

                book = await session.scalar(
                    select(BookRecord).where(BookRecord.id == book_id).with_for_update()
                )
                if book is None:
                    return self._reject(LoanRejection.NOT_FOUND, handle=handle, book_id=book_id)

                if book.kind == BookKind.DIGITAL:
                    return self._reject(LoanRejection.UNSUPPORTED_KIND, handle=handle, book_id=book_id)

                active_loan = await session.scalar(
                    select(LoanRecord.id).where(
                        LoanRecord.user_id == user.id,
                        LoanRecord.book_id == book.id,
                        LoanRecord.state == LoanState.ACTIVE,
                    )
                )
                if active_loan is not None:
                    return self._reject(LoanRejection.DUPLICATE_ACTIVE_LOAN, handle=handle, book_id=book_id)

                if book.copies_available <= 0:
                    return self._reject(LoanRejection.OUT_OF_STOCK, handle=handle, book_id=book_id)

                loan = LoanRecord(
                    user_id=user.id,
                    book_id=book.id,
                    loan_date=today,
                    due_date=due_date,
                    state=LoanState.ACTIVE,
                )
                session.add(loan)
                book.copies_available -= 1
                await session.flush()
                loan_id = loan.id

        except IntegrityError as e:
            logger.warning("Active loan index rejected insert", handle=handle, book_id=book_id, error=str(e))
            return self._reject(LoanRejection.DUPLICATE_ACTIVE_LOAN, handle=handle, book_id=book_id)

        self.audit.log_loan_event("created", loan_id=loan_id, handle=handle, book_id=book_id, due_date=str(due_date))
        return LoanResult(
            status=LoanStatus.CREATED,
            message="Loan registered.",
            loan_id=loan_id,
            due_date=due_date,
        )

    async def return_loan(self, loan_id: int, acting_user: Optional[SessionClaims] = None) -> LoanResult:
        """
        Mark an active loan as returned and put the copy back in stock.

        Args:
            loan_id: Loan to close
            acting_user: Identity of the librarian or administrator

        Returns:
            LoanResult with status returned, or rejected with
            not_found_or_already_returned
        """
        today = self.today()

        async with self.store.transaction() as session:
            loan = await session.scalar(
                select(LoanRecord)
                .where(LoanRecord.id == loan_id, LoanRecord.state == LoanState.ACTIVE)
                .with_for_update()
            )
            if loan is None:
                return self._reject(LoanRejection.NOT_FOUND_OR_ALREADY_RETURNED, loan_id=loan_id)

            book = await session.scalar(
                select(BookRecord).where(BookRecord.id == loan.book_id).with_for_update()
            )
            loan.state = LoanState.RETURNED
            loan.return_date = today
            book.copies_available += 1

        self.audit.log_loan_event(
            "returned",
            loan_id=loan_id,
            book_id=loan.book_id,
            returned_by=acting_user.user_id if acting_user else None,
        )
        return LoanResult(
            status=LoanStatus.RETURNED,
            message="Loan returned. Copy added back to inventory.",
            loan_id=loan_id,
            return_date=today,
        )

    async def loan_history(self) -> List[LoanHistoryEntry]:
        """All loans with borrower handle and book title, newest first."""
        async with self.store.transaction() as session:
            rows = (
                await session.execute(
                    select(LoanRecord, UserRecord.handle, BookRecord.title)
                    .join(UserRecord, LoanRecord.user_id == UserRecord.id)
                    .join(BookRecord, LoanRecord.book_id == BookRecord.id)
                    .order_by(LoanRecord.loan_date.desc(), LoanRecord.id.desc())
                )
            ).all()

        return [
            LoanHistoryEntry(
                loan_id=loan.id,
                user_id=loan.user_id,
                handle=handle,
                book_id=loan.book_id,
                title=title,
                loan_date=loan.loan_date,
                due_date=loan.due_date,
                return_date=loan.return_date,
                state=loan.state,
            )
            for loan, handle, title in rows
        ]

    def _reject(self, reason: LoanRejection, **details) -> LoanResult:
        self.audit.log_loan_event("rejected", success=False, reason=reason.value, **details)
        return LoanResult.rejected(reason)
