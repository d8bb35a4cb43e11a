"""
Book catalog: registration with uploads and the public listing.
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from circulation.models import BookSubmission, BookView, UploadedFile
from circulation.uploads import FileStore, UploadLimits, validate_submission
from storage.database import LibraryStore
from storage.models import BookRecord
from utilities.errors import ConflictError

logger = structlog.get_logger(__name__)

FILE_LINK_SEPARATOR = ","


def to_book_view(book: BookRecord) -> BookView:
    links = [link for link in (book.file_links or "").split(FILE_LINK_SEPARATOR) if link]
    return BookView(
        id=book.id,
        title=book.title,
        author=book.author,
        category=book.category,
        kind=book.kind,
        copies_available=book.copies_available,
        status=book.status,
        publication_year=book.publication_year,
        file_links=links,
        cover_image=book.cover_image,
        created_at=book.created_at,
    )


class CatalogService:
    """Registers and lists books."""

    def __init__(
        self,
        store: LibraryStore,
        files: FileStore,
        limits: Optional[UploadLimits] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.files = files
        self.limits = limits or UploadLimits()
        self.clock = clock or datetime.utcnow

    async def _exists(self, title: str, author: str) -> bool:
        async with self.store.transaction() as session:
            existing = await session.scalar(
                select(BookRecord.id).where(BookRecord.title == title, BookRecord.author == author)
            )
            return existing is not None

    async def register_book(
        self,
        submission: BookSubmission,
        pdf_files: Optional[List[UploadedFile]] = None,
        cover_image: Optional[UploadedFile] = None,
    ) -> BookView:
        """
        Validate a submission, store its files and insert the book.

        Args:
            submission: Raw form fields
            pdf_files: Uploaded PDFs
            cover_image: Optional cover image

        Returns:
            The registered book

        Raises:
            InvalidInputError: If the submission breaks a catalog rule
            ConflictError: If a book with the same title and author exists
        """
        pdf_files = pdf_files or []
        book = validate_submission(
            submission, pdf_files, cover_image, self.limits, current_year=self.clock().year
        )

        if await self._exists(book.title, book.author):
            raise ConflictError("A book with the same title and author already exists.")

        stored: List[str] = []
        try:
            pdf_paths = []
            for pdf in pdf_files:
                pdf_paths.append(await asyncio.to_thread(self.files.save_pdf, pdf))
                stored.append(pdf_paths[-1])
            cover_path = None
            if cover_image is not None:
                cover_path = await asyncio.to_thread(self.files.save_cover, cover_image)
                stored.append(cover_path)

            async with self.store.transaction() as session:
                record = BookRecord(
                    title=book.title,
                    author=book.author,
                    category=book.category,
                    kind=book.kind,
                    copies_available=book.copies_available,
                    publication_year=book.publication_year,
                    file_links=FILE_LINK_SEPARATOR.join(pdf_paths) or None,
                    cover_image=cover_path,
                    created_at=self.clock(),
                )
                session.add(record)
                await session.flush()
                view = to_book_view(record)

        except IntegrityError as e:
            self.files.remove(stored)
            logger.warning("Book insert collided", title=book.title, author=book.author, error=str(e))
            raise ConflictError("A book with the same title and author already exists.") from e
        except Exception:
            self.files.remove(stored)
            raise

        logger.info("Book registered", book_id=view.id, title=view.title, kind=view.kind.value)
        return view

    async def list_books(self) -> List[BookView]:
        """All books ordered by title."""
        async with self.store.transaction() as session:
            books = (await session.scalars(select(BookRecord).order_by(BookRecord.title))).all()
            return [to_book_view(book) for book in books]
