"""Rules for identity documents uploaded with a registration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from competition_registration.domain.errors import (
    InvalidRequestError,
    compose_error_message,
)

ALLOWED_DOCUMENT_EXTENSIONS = frozenset({".pdf", ".jpg", ".jpeg", ".png"})
RAW_DOCUMENT_EXTENSIONS = frozenset({".pdf"})


@dataclass(slots=True, frozen=True)
class DocumentUpload:
    """In-memory identity document received with a submission."""

    filename: str
    content: bytes

    @property
    def extension(self) -> str:
        return document_extension(self.filename)


def document_extension(filename: str) -> str:
    return PurePosixPath(filename.strip()).suffix.lower()


def is_raw_document(filename: str) -> bool:
    """PDFs are stored as binary documents, everything else as images."""

    return document_extension(filename) in RAW_DOCUMENT_EXTENSIONS


def validate_document(document: DocumentUpload, *, max_bytes: int) -> None:
    """Reject unsupported extensions, empty files and oversized files."""

    if document.extension not in ALLOWED_DOCUMENT_EXTENSIONS:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Identity document must be a PDF or image (JPG/PNG).",
                action="Upload a .pdf, .jpg, .jpeg or .png file.",
            ),
            details={"filename": document.filename},
        )
    if not document.content:
        raise InvalidRequestError(
            message=compose_error_message(
                cause="Identity document is empty.",
                action="Upload a non-empty file.",
            ),
        )
    if len(document.content) > max_bytes:
        raise InvalidRequestError(
            message=compose_error_message(
                cause=f"The uploaded file must be under {max_bytes} bytes.",
                action="Upload a smaller file.",
            ),
            details={"size_bytes": len(document.content), "max_bytes": max_bytes},
        )
