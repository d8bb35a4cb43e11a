"""
Unit tests for catalog submission validation and the file store.
"""

import io

import pytest

from circulation.models import BookSubmission, UploadedFile
from circulation.uploads import MIB, FileStore, UploadLimits, validate_submission
from storage.models import BookKind
from utilities.errors import InvalidInputError


def pdf(name="book.pdf", size=1024, content_type="application/pdf"):
    return UploadedFile(filename=name, content_type=content_type, size=size, stream=io.BytesIO(b"%PDF-1.4"))


def cover(name="cover.png", size=1024, content_type="image/png"):
    return UploadedFile(filename=name, content_type=content_type, size=size, stream=io.BytesIO(b"\x89PNG"))


def physical(**overrides):
    fields = dict(
        title="Dune",
        author="Frank Herbert",
        category="Fiction",
        kind="physical",
        publication_year="1965",
        copies="3",
    )
    fields.update(overrides)
    return BookSubmission(**fields)


class TestValidateSubmission:
    """Test cases for validate_submission."""

    def test_valid_physical_book(self):
        book = validate_submission(physical(title="  Dune  "), [], current_year=2025)
        assert book.title == "Dune"
        assert book.kind == BookKind.PHYSICAL
        assert book.copies_available == 3
        assert book.publication_year == 1965

    def test_digital_book_forces_zero_copies(self):
        book = validate_submission(physical(kind="digital", copies="7"), [pdf()], current_year=2025)
        assert book.kind == BookKind.DIGITAL
        assert book.copies_available == 0

    def test_digital_book_requires_pdf(self):
        with pytest.raises(InvalidInputError, match="PDF"):
            validate_submission(physical(kind="digital"), [], current_year=2025)

    @pytest.mark.parametrize("field", ["title", "author", "category"])
    def test_required_fields(self, field):
        with pytest.raises(InvalidInputError):
            validate_submission(physical(**{field: "   "}), [], current_year=2025)

    def test_unknown_kind(self):
        with pytest.raises(InvalidInputError, match="physical"):
            validate_submission(physical(kind="audio"), [], current_year=2025)

    @pytest.mark.parametrize("year", ["abc", "", "999", "2026"])
    def test_publication_year_bounds(self, year):
        with pytest.raises(InvalidInputError):
            validate_submission(physical(publication_year=year), [], current_year=2025)

    def test_current_year_allowed(self):
        book = validate_submission(physical(publication_year="2025"), [], current_year=2025)
        assert book.publication_year == 2025

    @pytest.mark.parametrize("copies", ["0", "-1", "many", None])
    def test_physical_needs_a_copy(self, copies):
        with pytest.raises(InvalidInputError, match="copy"):
            validate_submission(physical(copies=copies), [], current_year=2025)

    def test_too_many_pdfs(self):
        files = [pdf(f"{i}.pdf") for i in range(6)]
        with pytest.raises(InvalidInputError, match="5 PDF"):
            validate_submission(physical(), files, current_year=2025)

    def test_non_pdf_rejected(self):
        with pytest.raises(InvalidInputError, match="Only PDF"):
            validate_submission(physical(), [pdf("notes.txt", content_type="text/plain")], current_year=2025)

    def test_total_pdf_size_limit(self):
        limits = UploadLimits(max_pdf_total_bytes=10 * MIB)
        files = [pdf("a.pdf", size=6 * MIB), pdf("b.pdf", size=5 * MIB)]
        with pytest.raises(InvalidInputError, match="10 MB"):
            validate_submission(physical(), files, limits=limits, current_year=2025)

    def test_cover_type(self):
        with pytest.raises(InvalidInputError, match="Cover"):
            validate_submission(physical(), [], cover(content_type="image/gif"), current_year=2025)

    def test_cover_size(self):
        with pytest.raises(InvalidInputError, match="5 MB"):
            validate_submission(physical(), [], cover(size=5 * MIB + 1), current_year=2025)

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/jpg", "image/png", "image/webp"])
    def test_accepted_cover_types(self, content_type):
        book = validate_submission(physical(), [], cover(content_type=content_type), current_year=2025)
        assert book.title == "Dune"


class TestFileStore:
    """Test cases for FileStore."""

    def test_save_and_remove(self, tmp_path):
        files = FileStore(tmp_path / "uploads")

        stored = files.save_pdf(pdf("my book.pdf"))

        assert stored.startswith("pdfs/")
        assert stored.endswith("my_book.pdf")
        path = files.path_for(stored)
        assert path.read_bytes() == b"%PDF-1.4"

        files.remove([stored])
        assert not path.exists()

    def test_names_are_unique(self, tmp_path):
        files = FileStore(tmp_path)
        first = files.save_cover(cover())
        second = files.save_cover(cover())
        assert first != second
        assert first.startswith("covers/")

    def test_remove_missing_file(self, tmp_path):
        FileStore(tmp_path).remove(["pdfs/never-written.pdf"])
