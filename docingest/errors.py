"""
Error Handling Module
=====================
Custom exceptions and validation helpers for document ingestion.
Every extractor raises these internally; the public entry points convert
them into a failed ParseResult so nothing escapes to the caller.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional
from pathlib import Path


PDF_SIGNATURE = b"%PDF-"
ZIP_SIGNATURE = b"PK\x03\x04"


class ErrorCode(Enum):
    """Failure categories for the ingestion core."""
    UNSUPPORTED_FORMAT = "Unsupported file format"
    CORRUPT_CONTAINER = "File corrupted"
    DRM_PROTECTED = "Document is DRM protected"
    ENCRYPTED = "Document is encrypted"
    EMPTY_INPUT = "Empty input"
    INTERNAL_PARSE_ERROR = "Parsing failed"
    CANCELLED = "Parsing cancelled"


@dataclass
class IngestionError(Exception):
    """Base exception for document ingestion with an error code."""
    code: ErrorCode
    message: str
    details: Optional[str] = None
    file_path: Optional[Path] = None

    def __str__(self) -> str:
        base = f"[{self.code.name}] {self.code.value}: {self.message}"
        if self.details:
            base += f" ({self.details})"
        if self.file_path:
            base += f" - File: {self.file_path}"
        return base


class UnsupportedFormatError(IngestionError):
    """Signature matches no known container."""
    def __init__(self, message: str, details: str = None, file_path: Path = None):
        super().__init__(
            code=ErrorCode.UNSUPPORTED_FORMAT,
            message=message,
            details=details,
            file_path=file_path
        )


class CorruptContainerError(IngestionError):
    """Structurally invalid ZIP or PDF."""
    def __init__(self, message: str, details: str = None, file_path: Path = None):
        super().__init__(
            code=ErrorCode.CORRUPT_CONTAINER,
            message=message,
            details=details,
            file_path=file_path
        )


class DRMProtectedError(IngestionError):
    """EPUB carries DRM; no content is extracted."""
    def __init__(self, details: str = None, file_path: Path = None):
        super().__init__(
            code=ErrorCode.DRM_PROTECTED,
            message="This file is protected and cannot be imported",
            details=details,
            file_path=file_path
        )


class EncryptedDocumentError(IngestionError):
    """PDF is password protected or yields no text."""
    def __init__(self, details: str = None, file_path: Path = None):
        super().__init__(
            code=ErrorCode.ENCRYPTED,
            message="This file appears to be encrypted or contains no extractable text",
            details=details,
            file_path=file_path
        )


class EmptyInputError(IngestionError):
    """Input contains no bytes."""
    def __init__(self, file_path: Path = None):
        super().__init__(
            code=ErrorCode.EMPTY_INPUT,
            message="Input is empty",
            file_path=file_path
        )


class InternalParseError(IngestionError):
    """Wraps an underlying library failure."""
    def __init__(self, message: str, details: str = None, file_path: Path = None):
        super().__init__(
            code=ErrorCode.INTERNAL_PARSE_ERROR,
            message=message,
            details=details,
            file_path=file_path
        )


class ParseCancelledError(IngestionError):
    """Cancellation was requested while parsing."""
    def __init__(self, details: str = None):
        super().__init__(
            code=ErrorCode.CANCELLED,
            message="Parsing was cancelled",
            details=details
        )


# ===========================================
# Utility Functions
# ===========================================

def validate_pdf_header(data: bytes, file_path: Path = None) -> bool:
    """
    Validate that a byte prefix carries the PDF signature.

    Args:
        data: Leading bytes of the document (at least 5)
        file_path: Optional path for error context

    Returns:
        True if valid, raises exception otherwise
    """
    if not data:
        raise EmptyInputError(file_path)
    if len(data) < len(PDF_SIGNATURE) or not data.startswith(PDF_SIGNATURE):
        raise UnsupportedFormatError(
            "Invalid PDF header",
            details="Expected %PDF- signature",
            file_path=file_path
        )
    return True


def validate_zip_header(data: bytes, file_path: Path = None) -> bool:
    """
    Validate that a byte prefix carries the ZIP local-file-header signature.

    Args:
        data: Leading bytes of the document (at least 4)
        file_path: Optional path for error context

    Returns:
        True if valid, raises exception otherwise
    """
    if not data:
        raise EmptyInputError(file_path)
    if len(data) < len(ZIP_SIGNATURE) or not data.startswith(ZIP_SIGNATURE):
        raise UnsupportedFormatError(
            "Invalid ZIP header",
            details="Expected PK\\x03\\x04 signature",
            file_path=file_path
        )
    return True


def read_header(file_path: Path, size: int = 16) -> bytes:
    """Read the leading bytes of a file."""
    if not file_path.exists():
        raise InternalParseError("File not found", file_path=file_path)
    with open(file_path, "rb") as f:
        return f.read(size)
