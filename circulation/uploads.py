"""
Validation and storage of catalog uploads.

Validation is a pure function over the submitted fields and file metadata.
Files are written by the FileStore only after validation has passed, and
removed again if the catalog insert fails.
"""

import os
import secrets
import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import structlog

from circulation.models import BookSubmission, UploadedFile, ValidatedBook
from storage.models import BookKind
from utilities.errors import InvalidInputError

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
COVER_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
MIN_PUBLICATION_YEAR = 1000

GIB = 1024 * 1024 * 1024
MIB = 1024 * 1024


class UploadLimits:
    """Size and count limits for catalog uploads."""

    def __init__(
        self,
        max_pdf_files: int = 5,
        max_pdf_total_bytes: int = 2 * GIB,
        max_cover_image_bytes: int = 5 * MIB,
    ):
        self.max_pdf_files = max_pdf_files
        self.max_pdf_total_bytes = max_pdf_total_bytes
        self.max_cover_image_bytes = max_cover_image_bytes

    @classmethod
    def from_config(cls, config) -> "UploadLimits":
        return cls(
            max_pdf_files=config.max_pdf_files,
            max_pdf_total_bytes=config.max_pdf_total_bytes,
            max_cover_image_bytes=config.max_cover_image_bytes,
        )


def _required(value: Optional[str], label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidInputError(f"{label} is required.")
    return value


def _human_size(num_bytes: int) -> str:
    if num_bytes >= GIB and num_bytes % GIB == 0:
        return f"{num_bytes // GIB} GB"
    if num_bytes >= MIB and num_bytes % MIB == 0:
        return f"{num_bytes // MIB} MB"
    return f"{num_bytes} bytes"


def validate_submission(
    submission: BookSubmission,
    pdf_files: List[UploadedFile],
    cover_image: Optional[UploadedFile] = None,
    limits: Optional[UploadLimits] = None,
    current_year: Optional[int] = None,
) -> ValidatedBook:
    """
    Validate a catalog submission without touching storage.

    Args:
        submission: Raw form fields
        pdf_files: Uploaded PDF files
        cover_image: Optional cover image
        limits: Upload limits
        current_year: Upper bound for the publication year

    Returns:
        The normalized book fields

    Raises:
        InvalidInputError: On the first rule the submission breaks
    """
    limits = limits or UploadLimits()
    current_year = current_year or datetime.utcnow().year

    title = _required(submission.title, "Title")
    author = _required(submission.author, "Author")
    category = _required(submission.category, "Category")

    try:
        kind = BookKind((submission.kind or "").strip().lower())
    except ValueError:
        raise InvalidInputError("Kind must be 'physical' or 'digital'.")

    try:
        year = int((submission.publication_year or "").strip())
    except ValueError:
        raise InvalidInputError("Publication year must be a valid number.")
    if year < MIN_PUBLICATION_YEAR or year > current_year:
        raise InvalidInputError(
            f"Publication year must be between {MIN_PUBLICATION_YEAR} and {current_year}."
        )

    if kind == BookKind.DIGITAL:
        copies = 0
    else:
        try:
            copies = int((submission.copies or "").strip())
        except ValueError:
            copies = 0
        if copies < 1:
            raise InvalidInputError("Physical books need at least 1 copy.")

    validate_uploads(kind, pdf_files, cover_image, limits)

    return ValidatedBook(
        title=title,
        author=author,
        category=category,
        kind=kind,
        publication_year=year,
        copies_available=copies,
    )


def validate_uploads(
    kind: BookKind,
    pdf_files: List[UploadedFile],
    cover_image: Optional[UploadedFile],
    limits: UploadLimits,
) -> None:
    """Check file counts, content types and sizes."""
    if kind == BookKind.DIGITAL and not pdf_files:
        raise InvalidInputError("Digital books require at least one PDF file.")

    if len(pdf_files) > limits.max_pdf_files:
        raise InvalidInputError(f"No more than {limits.max_pdf_files} PDF files can be uploaded.")

    for pdf in pdf_files:
        if pdf.content_type != PDF_CONTENT_TYPE:
            raise InvalidInputError(f"Only PDF files are allowed ({pdf.filename}).")

    total_pdf_size = sum(pdf.size for pdf in pdf_files)
    if total_pdf_size > limits.max_pdf_total_bytes:
        raise InvalidInputError(
            f"Total PDF size must not exceed {_human_size(limits.max_pdf_total_bytes)}."
        )

    if cover_image is not None:
        if cover_image.content_type not in COVER_CONTENT_TYPES:
            raise InvalidInputError("Cover image must be a JPG, PNG or WEBP file.")
        if cover_image.size > limits.max_cover_image_bytes:
            raise InvalidInputError(
                f"Cover image must not exceed {_human_size(limits.max_cover_image_bytes)}."
            )


class FileStore:
    """Writes uploads under ``root/pdfs`` and ``root/covers``."""

    PDF_DIR = "pdfs"
    COVER_DIR = "covers"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    @staticmethod
    def _unique_name(filename: str) -> str:
        safe_name = os.path.basename(filename or "upload").replace(" ", "_").replace(",", "_") or "upload"
        return f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}-{safe_name}"

    def save(self, upload: UploadedFile, subdir: str) -> str:
        """
        Write one upload to disk.

        Returns:
            Path of the stored file relative to the store root, as kept
            in the catalog (e.g. ``covers/1700000000000-42-cover.png``)
        """
        directory = self.root / subdir
        directory.mkdir(parents=True, exist_ok=True)
        name = self._unique_name(upload.filename)
        target = directory / name

        stream = upload.stream
        if stream is None:
            raise InvalidInputError(f"Upload {upload.filename} has no content.")
        if hasattr(stream, "seek"):
            stream.seek(0)

        with open(target, "wb") as destination:
            if isinstance(stream, (bytes, bytearray)):
                destination.write(stream)
            else:
                shutil.copyfileobj(stream, destination)

        logger.debug("Stored upload", path=str(target), size=upload.size)
        return f"{subdir}/{name}"

    def save_pdf(self, upload: UploadedFile) -> str:
        return self.save(upload, self.PDF_DIR)

    def save_cover(self, upload: UploadedFile) -> str:
        return self.save(upload, self.COVER_DIR)

    def path_for(self, stored_path: str) -> Path:
        return self.root / stored_path

    def remove(self, stored_paths: List[str]) -> None:
        """Delete stored files, ignoring ones that are already gone."""
        for stored_path in stored_paths:
            try:
                self.path_for(stored_path).unlink(missing_ok=True)
            except OSError as e:
                logger.error("Failed to remove stored upload", path=stored_path, error=str(e))
