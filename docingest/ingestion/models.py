"""
Ingestion Data Models
=====================
Uniform output shape shared by the EPUB, PDF and DOCX extractors.
All models are immutable once constructed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Optional, TypeVar

from docingest.errors import ErrorCode, IngestionError


class DocumentFormat(Enum):
    """Container formats recognized by the detector."""
    EPUB = "epub"
    PDF = "pdf"
    DOCX = "docx"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DocumentMetadata:
    """Normalized metadata; empty string means unknown."""
    title: str = ""
    author: str = ""
    language: str = ""
    description: str = ""
    publisher: str = ""
    publication_date: str = ""
    modified_date: str = ""
    isbn: str = ""
    rights: str = ""
    identifier: str = ""
    subjects: tuple[str, ...] = ()
    # PDF producing application, PDF library and version ("1.7")
    creator: str = ""
    producer: str = ""
    pdf_version: str = ""


@dataclass(frozen=True)
class Section:
    """A chapter or detected section of a document."""
    id: str
    title: str
    order: int
    level: int
    start_offset: int
    end_offset: int
    word_count: int
    content: str
    href: str = ""


@dataclass(frozen=True)
class CoverImage:
    """Cover image bytes extracted from an EPUB."""
    data: bytes
    mime_type: str
    filename: str


@dataclass(frozen=True)
class ConversionMessage:
    """Non-fatal note emitted while converting a DOCX."""
    type: str
    message: str


@dataclass(frozen=True)
class ParsedDocument:
    """A document reduced to the uniform ingestion structure."""
    format: DocumentFormat
    metadata: DocumentMetadata
    sections: tuple[Section, ...]
    total_word_count: int
    raw_content: str
    estimated_reading_time_minutes: int
    content_hash: str = ""
    cover_image: Optional[CoverImage] = None
    page_count: int = 0
    html_content: str = ""
    messages: tuple[ConversionMessage, ...] = ()
    has_drm: bool = False


T = TypeVar("T")


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of a public operation; data iff success, error iff failure."""
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def ok(cls, data: T) -> "ParseResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, exc: IngestionError) -> "ParseResult[T]":
        # Short category message; details and paths only go to the log
        return cls(success=False, error=f"{exc.code.value}: {exc.message}", error_code=exc.code)
