"""Test cases for local upload storage."""

import asyncio
import dataclasses
import io

import pytest
from fastapi import UploadFile

from erms.storage import (
    ASSIGNMENT_FILES, QUESTION_IMAGES, InvalidUploadError, LocalStorage, StorageError, UploadTooLargeError,
    read_upload,
)


@pytest.fixture
def local(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"), "/files/")


class TestValidation:
    """Upload policy checks."""

    def test_accepts_allowed_file(self, local):
        assert local.validate("Essay.PDF", "application/pdf", 100, ASSIGNMENT_FILES) == "pdf"

    @pytest.mark.parametrize("filename,content_type", [
        ("essay.txt", "text/plain"),
        ("essay", None),
        ("essay.pdf", "image/png"),
    ])
    def test_rejects_wrong_type(self, local, filename, content_type):
        with pytest.raises(InvalidUploadError, match="Only PDF, DOC and DOCX"):
            local.validate(filename, content_type, 100, ASSIGNMENT_FILES)

    def test_rejects_missing_name(self, local):
        with pytest.raises(InvalidUploadError, match="No file provided"):
            local.validate("", "image/png", 10, QUESTION_IMAGES)

    def test_rejects_empty_file(self, local):
        with pytest.raises(InvalidUploadError, match="empty"):
            local.validate("photo.png", "image/png", 0, QUESTION_IMAGES)

    def test_rejects_large_file(self, local):
        with pytest.raises(UploadTooLargeError, match="Maximum size is 5MB"):
            local.validate("photo.jpg", "image/jpeg", QUESTION_IMAGES.max_size + 1, QUESTION_IMAGES)


class TestSaveAndDelete:
    """Writing files below the storage root."""

    def test_save(self, local):
        stored = local.save(b"%PDF-1.4", "report.pdf", "application/pdf", "/student-submissions/7/", ASSIGNMENT_FILES)

        assert stored.path.startswith("student-submissions/7/")
        assert stored.path.endswith(".pdf")
        assert stored.url == f"/files/{stored.path}"
        assert stored.file_name == "report.pdf"
        assert stored.size == 8
        assert (local.root / stored.path).read_bytes() == b"%PDF-1.4"

    def test_unique_names(self):
        assert LocalStorage.unique_name("png") != LocalStorage.unique_name("png")

    def test_missing_content_type_defaults(self, local):
        stored = local.save(b"img", "photo.png", None, "quiz-images/1", QUESTION_IMAGES)
        assert stored.content_type == "application/octet-stream"

    def test_invalid_upload_writes_nothing(self, local):
        with pytest.raises(InvalidUploadError):
            local.save(b"text", "notes.txt", "text/plain", "quiz-images/1", QUESTION_IMAGES)
        assert list(local.root.iterdir()) == []

    def test_delete(self, local):
        stored = local.save(b"img", "photo.png", "image/png", "quiz-images/1", QUESTION_IMAGES)

        assert local.delete(stored.path) is True
        assert local.delete(stored.path) is False

    def test_path_cannot_escape_root(self, local):
        with pytest.raises(StorageError, match="escapes"):
            local.delete("../outside.txt")

        with pytest.raises(StorageError):
            local.save(b"img", "photo.png", "image/png", "../../elsewhere", QUESTION_IMAGES)


class TestReadUpload:
    """Reading request bodies without buffering past the limit."""

    def test_stops_one_byte_past_limit(self, local):
        policy = dataclasses.replace(ASSIGNMENT_FILES, max_size=10)
        upload = UploadFile(file=io.BytesIO(b"x" * 4096), filename="essay.pdf")

        data = asyncio.run(read_upload(upload, policy))

        assert len(data) == 11
        with pytest.raises(UploadTooLargeError):
            local.save(data, "essay.pdf", "application/pdf", folder="s/1", policy=policy)

    def test_small_file_read_whole(self):
        upload = UploadFile(file=io.BytesIO(b"%PDF-1.4 short"), filename="essay.pdf")
        assert asyncio.run(read_upload(upload, ASSIGNMENT_FILES)) == b"%PDF-1.4 short"
