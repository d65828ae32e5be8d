"""
PDF Parser Module
=================
Extracts text, metadata and heuristic sections from PDF files using PyMuPDF.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

import fitz
from bs4 import BeautifulSoup

from config.settings import PdfOptions, Settings
from docingest.concurrency import CancellationToken, checkpoint
from docingest.errors import (
    CorruptContainerError,
    EncryptedDocumentError,
    InternalParseError,
    validate_pdf_header,
)
from docingest.ingestion.base import BaseExtractor
from docingest.ingestion.models import (
    DocumentFormat,
    DocumentMetadata,
    ParsedDocument,
    Section,
)
from docingest.ingestion.sections import SectionDetector, main_content_section

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n"
ISBN_PATTERN = re.compile(r"(?:97[89][-\s]?)?(?:\d[-\s]?){9}[\dXx]")

# D:YYYYMMDDHHmmSS followed by Z, +HH'mm' or -HH'mm'
_PDF_DATE = re.compile(
    r"^(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?"
    r"(?:(Z)|([+-])(\d{2})'?(\d{2})?'?)?"
)


def pdf_date_to_iso(value: Optional[str]) -> str:
    """
    Convert a PDF date string to ISO 8601.

    Args:
        value: Date such as "D:20230115103000+01'00'"

    Returns:
        "2023-01-15T10:30:00+01:00", or "" if missing or unparseable
    """
    if not value:
        return ""
    match = _PDF_DATE.match(value.strip())
    if not match:
        return ""
    year, month, day, hour, minute, second, zulu, sign, tz_hour, tz_minute = match.groups()
    month, day = int(month or 1), int(day or 1)
    hour, minute, second = int(hour or 0), int(minute or 0), int(second or 0)
    if not (1 <= month <= 12 and 1 <= day <= 31 and hour < 24 and minute < 60 and second < 60):
        return ""
    stamp = f"{year}-{month:02d}-{day:02d}T{hour:02d}:{minute:02d}:{second:02d}"
    if zulu:
        return stamp + "Z"
    if sign:
        return f"{stamp}{sign}{tz_hour}:{tz_minute or '00'}"
    return stamp


class PDFExtractor(BaseExtractor):
    """
    Parses PDF files into the uniform document structure.

    Uses PyMuPDF for text and the information dictionary, with embedded
    XMP as a secondary metadata source.
    """

    FORMAT = DocumentFormat.PDF
    SUFFIX = ".pdf"

    def __init__(self, options: Optional[PdfOptions] = None, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.options = options or PdfOptions()
        self.section_detector = SectionDetector(self.normalizer)

    def check_signature(self, header: bytes, file_path: Optional[Path] = None) -> None:
        validate_pdf_header(header, file_path)

    def check_structure(self, file_path: Path) -> bool:
        try:
            with fitz.open(file_path, filetype="pdf") as doc:
                return doc.page_count >= 0
        except RuntimeError:
            return False

    def extract(self, file_path: Path, token: Optional[CancellationToken] = None) -> ParsedDocument:
        try:
            doc = fitz.open(file_path, filetype="pdf")
        except RuntimeError as e:
            raise CorruptContainerError(
                "Invalid PDF structure",
                details=str(e),
                file_path=file_path,
            )
        except Exception as e:
            raise InternalParseError(
                f"Failed to open PDF: {e}",
                details=type(e).__name__,
                file_path=file_path,
            )

        with doc:
            if doc.needs_pass:
                raise EncryptedDocumentError(details="Password required", file_path=file_path)

            metadata = self.get_metadata(doc)
            page_count = doc.page_count

            text = ""
            if self.options.extract_content:
                text = self.extract_text(doc, token)
                # Zero text on a non-empty document: likely encrypted or image-only
                if page_count > 0 and not text.strip():
                    raise EncryptedDocumentError(
                        details=f"No text on {page_count} pages",
                        file_path=file_path,
                    )

        sections = self._sections(text, token)
        word_count = self.normalizer.count_words(text)

        return ParsedDocument(
            format=self.FORMAT,
            metadata=metadata,
            sections=tuple(sections),
            total_word_count=word_count,
            raw_content=text,
            estimated_reading_time_minutes=self.reading_time(word_count),
            content_hash=self.normalizer.generate_content_hash(text),
            page_count=page_count,
        )

    def extract_text(self, doc: fitz.Document, token: Optional[CancellationToken] = None) -> str:
        """
        Extract text page by page up to max_pages.

        A page that fails to decode is logged and skipped.
        """
        pages = []
        limit = min(doc.page_count, self.options.max_pages)
        if doc.page_count > limit:
            logger.warning(f"PDF has {doc.page_count} pages, extracting first {limit}")

        for index in range(limit):
            checkpoint(token, "page extraction")
            try:
                page_text = doc.load_page(index).get_text("text")
            except Exception as e:
                logger.warning(f"Skipping page {index + 1}: {e}")
                continue
            pages.append(page_text.rstrip("\n"))
        return PAGE_SEPARATOR.join(pages)

    def _sections(self, text: str, token: Optional[CancellationToken]) -> list[Section]:
        if not text:
            return []
        if self.options.detect_sections:
            return self.section_detector.detect(text, token)
        return [main_content_section(text, self.normalizer.count_words(text))]

    # ===========================================
    # Metadata
    # ===========================================

    def get_metadata(self, doc: fitz.Document) -> DocumentMetadata:
        """Merge the information dictionary with XMP; the dictionary wins for title/author/subject."""
        clean = self.normalizer.clean_metadata_string
        info = {k: clean(v) for k, v in (doc.metadata or {}).items()}
        xmp = self.get_xmp_metadata(doc)

        keywords = info.get("keywords", "")
        subjects = [s.strip() for s in re.split(r"[,;]", keywords) if s.strip()] or xmp.get("subjects", [])

        identifier = xmp.get("identifier", "")
        isbn = ""
        for candidate in (identifier, keywords):
            match = ISBN_PATTERN.search(candidate or "")
            if match:
                isbn = re.sub(r"[-\s]", "", match.group(0))
                break

        return DocumentMetadata(
            title=info.get("title") or xmp.get("title", ""),
            author=info.get("author") or xmp.get("creator", ""),
            language=xmp.get("language", ""),
            description=info.get("subject") or xmp.get("description", ""),
            publisher=xmp.get("publisher", ""),
            publication_date=pdf_date_to_iso(info.get("creationDate")) or xmp.get("create_date", ""),
            modified_date=pdf_date_to_iso(info.get("modDate")) or xmp.get("modify_date", ""),
            isbn=isbn,
            rights=xmp.get("rights", ""),
            identifier=identifier,
            subjects=tuple(subjects),
            creator=info.get("creator", ""),
            producer=info.get("producer", ""),
            pdf_version=re.sub(r"^PDF[-\s]*", "", info.get("format", "")),
        )

    def get_xmp_metadata(self, doc: fitz.Document) -> dict:
        """
        Read the embedded XMP packet.

        Returns:
            Dictionary of the fields found; empty when there is no packet
        """
        try:
            packet = doc.get_xml_metadata()
        except Exception as e:
            logger.warning(f"Failed to read XMP metadata: {e}")
            return {}
        if not packet or not packet.strip():
            return {}

        soup = BeautifulSoup(packet, "xml")
        result: dict = {}

        def values(tag_name: str) -> list[str]:
            tag = soup.find(tag_name)
            if tag is None:
                return []
            items = [li.get_text(strip=True) for li in tag.find_all("li")]
            if not items:
                items = [tag.get_text(strip=True)]
            return [value for value in map(self.normalizer.clean_metadata_string, items) if value]

        for key, tag_name in [
            ("title", "dc:title"),
            ("creator", "dc:creator"),
            ("description", "dc:description"),
            ("publisher", "dc:publisher"),
            ("language", "dc:language"),
            ("rights", "dc:rights"),
            ("identifier", "dc:identifier"),
        ]:
            found = values(tag_name)
            if found:
                result[key] = found[0]

        subjects = values("dc:subject")
        if subjects:
            result["subjects"] = subjects

        for key, tag_name in [("create_date", "xmp:CreateDate"), ("modify_date", "xmp:ModifyDate")]:
            tag = soup.find(tag_name)
            if tag is not None and tag.get_text(strip=True):
                result[key] = tag.get_text(strip=True)
                continue
            # Simple properties are often stored as attributes
            for description in soup.find_all("Description"):
                if description.get(tag_name):
                    result[key] = description[tag_name].strip()
                    break

        if "identifier" not in result:
            tag = soup.find("xmpMM:DocumentID")
            if tag is not None and tag.get_text(strip=True):
                result["identifier"] = tag.get_text(strip=True)
        return result
