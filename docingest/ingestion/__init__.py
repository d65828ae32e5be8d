"""
Ingestion Module
================
Turns EPUB, PDF and DOCX uploads into one uniform document structure.
"""

from .models import (
    ConversionMessage,
    CoverImage,
    DocumentFormat,
    DocumentMetadata,
    ParsedDocument,
    ParseResult,
    Section,
)
from .normalizer import TextNormalizer
from .detector import FormatDetector
from .sections import SectionDetector
from .cover import CoverImageResolver, ManifestEntry
from .epub_parser import EPUBExtractor
from .pdf_parser import PDFExtractor
from .docx_parser import DOCXExtractor
from .assembler import DocumentAssembler

__all__ = [
    "ConversionMessage",
    "CoverImage",
    "DocumentFormat",
    "DocumentMetadata",
    "ParsedDocument",
    "ParseResult",
    "Section",
    "TextNormalizer",
    "FormatDetector",
    "SectionDetector",
    "CoverImageResolver",
    "ManifestEntry",
    "EPUBExtractor",
    "PDFExtractor",
    "DOCXExtractor",
    "DocumentAssembler",
]
