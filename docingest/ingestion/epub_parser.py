"""
EPUB Parser Module
==================
Extracts metadata, chapters and cover from EPUB files using EbookLib.
Chapters follow the table of contents, or the spine when it is empty.
"""

from __future__ import annotations

import logging
import re
import warnings
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

import ebooklib
from ebooklib import epub
from bs4 import BeautifulSoup, XMLParsedAsHTMLWarning
from lxml import etree

from config.settings import EpubOptions, Settings
from docingest.concurrency import CancellationToken, checkpoint
from docingest.errors import (
    CorruptContainerError,
    DRMProtectedError,
    InternalParseError,
    validate_zip_header,
)
from docingest.ingestion.base import BaseExtractor
from docingest.ingestion.cover import CoverImageResolver, ManifestEntry
from docingest.ingestion.models import (
    DocumentFormat,
    DocumentMetadata,
    ParsedDocument,
    Section,
)

logger = logging.getLogger(__name__)

# EPUB content documents are XHTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

ISBN_PATTERN = re.compile(r"(?:97[89][-\s]?)?(?:\d[-\s]?){9}[\dXx]")
CHAPTER_SEPARATOR = "\n\n"

# Font obfuscation is not DRM
FONT_OBFUSCATION_ALGORITHMS = {
    "http://www.idpf.org/2008/embedding",
    "http://ns.adobe.com/pdf/enc#RC",
}


@dataclass
class ChapterEntry:
    """A TOC or spine entry to be fetched."""
    href: str
    title: str = ""
    level: int = 0
    id: str = ""


class EPUBExtractor(BaseExtractor):
    """
    Parses EPUB files into the uniform document structure.

    Uses EbookLib for the container and BeautifulSoup4 for DRM manifests.
    """

    FORMAT = DocumentFormat.EPUB
    SUFFIX = ".epub"

    def __init__(self, options: Optional[EpubOptions] = None, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.options = options or EpubOptions()
        self.cover_resolver = CoverImageResolver()

    def check_signature(self, header: bytes, file_path: Optional[Path] = None) -> None:
        validate_zip_header(header, file_path)

    def check_structure(self, file_path: Path) -> bool:
        try:
            with zipfile.ZipFile(file_path) as zf:
                names = zf.namelist()
                if "mimetype" not in names or "META-INF/container.xml" not in names:
                    return False
                mimetype = zf.read("mimetype").decode("utf-8", errors="replace").strip()
                return mimetype == "application/epub+zip"
        except zipfile.BadZipFile:
            return False

    def extract(self, file_path: Path, token: Optional[CancellationToken] = None) -> ParsedDocument:
        # Encrypted navigation documents break read_epub, so check META-INF first
        drm_details = self.detect_drm(file_path)
        if drm_details:
            raise DRMProtectedError(details=drm_details, file_path=file_path)

        book = self._load_book(file_path)

        metadata = self.get_metadata(book)

        sections: list[Section] = []
        if self.options.extract_content:
            sections = self.extract_chapters(book, token)

        raw_content = CHAPTER_SEPARATOR.join(s.content for s in sections)
        total_words = sum(s.word_count for s in sections)

        cover = None
        if self.options.extract_cover:
            cover = self.cover_resolver.resolve(self._manifest(book), self._read_manifest_entry(book))

        return ParsedDocument(
            format=self.FORMAT,
            metadata=metadata,
            sections=tuple(sections),
            total_word_count=total_words,
            raw_content=raw_content,
            estimated_reading_time_minutes=self.reading_time(total_words),
            content_hash=self.normalizer.generate_content_hash(raw_content),
            cover_image=cover,
            has_drm=False,
        )

    def _load_book(self, file_path: Path) -> epub.EpubBook:
        try:
            return epub.read_epub(str(file_path))
        except (zipfile.BadZipFile, epub.EpubException, etree.XMLSyntaxError, KeyError) as e:
            raise CorruptContainerError(
                "Invalid EPUB structure",
                details=f"{type(e).__name__}: {e}",
                file_path=file_path,
            )
        except Exception as e:
            raise InternalParseError(
                f"Failed to read EPUB: {e}",
                details=type(e).__name__,
                file_path=file_path,
            )

    def detect_drm(self, file_path: Path) -> Optional[str]:
        """
        Inspect META-INF for rights or content encryption.

        Returns:
            Description of the DRM marker, or None
        """
        try:
            with zipfile.ZipFile(file_path) as zf:
                names = set(zf.namelist())
                if "META-INF/rights.xml" in names:
                    return "META-INF/rights.xml present"
                if "META-INF/encryption.xml" not in names:
                    return None
                manifest = zf.read("META-INF/encryption.xml")
        except zipfile.BadZipFile as e:
            raise CorruptContainerError("Invalid EPUB archive", details=str(e), file_path=file_path)

        soup = BeautifulSoup(manifest, "xml")
        for method in soup.find_all("EncryptionMethod"):
            algorithm = method.get("Algorithm", "")
            if algorithm not in FONT_OBFUSCATION_ALGORITHMS:
                return f"Encrypted resources ({algorithm or 'unknown algorithm'})"
        return None

    # ===========================================
    # Metadata
    # ===========================================

    def get_metadata(self, book: epub.EpubBook) -> DocumentMetadata:
        """Adapt the OPF metadata to DocumentMetadata."""
        fields = self._metadata_fields(book)

        def first(*keys: str) -> str:
            for key in keys:
                values = fields.get(key)
                if values:
                    return values[0]
            return ""

        isbn = ""
        for key in ("identifier", "ISBN", "isbn"):
            for value in fields.get(key, []):
                match = ISBN_PATTERN.search(value)
                if match:
                    isbn = re.sub(r"[-\s]", "", match.group(0))
                    break
            if isbn:
                break

        return DocumentMetadata(
            title=first("title"),
            author=first("creator"),
            language=first("language"),
            description=first("description"),
            publisher=first("publisher"),
            publication_date=first("date"),
            isbn=isbn,
            rights=first("rights"),
            identifier=first("identifier", "UUID", "uuid"),
            subjects=tuple(self._normalize_subjects(fields.get("subject", []))),
        )

    def _metadata_fields(self, book: epub.EpubBook) -> dict[str, list[str]]:
        """Flatten Dublin Core fields; identifiers are also keyed by scheme."""
        fields: dict[str, list[str]] = {}
        for name in ("title", "creator", "language", "description", "publisher",
                     "date", "rights", "subject", "identifier"):
            for value, attrs in book.get_metadata("DC", name):
                if value is None:
                    continue
                text = self.normalizer.clean_metadata_string(str(value))
                if not text:
                    continue
                fields.setdefault(name, []).append(text)
                if name == "identifier":
                    for attr_name, attr_value in (attrs or {}).items():
                        if attr_name.endswith("scheme") and attr_value:
                            fields.setdefault(attr_value, []).append(text)
        return fields

    def _normalize_subjects(self, raw) -> list[str]:
        if isinstance(raw, str):
            raw = [raw]
        subjects = []
        for value in raw:
            for part in re.split(r"[,;]", value):
                part = part.strip()
                if part:
                    subjects.append(part)
        return subjects

    # ===========================================
    # Chapters
    # ===========================================

    def extract_chapters(self, book: epub.EpubBook, token: Optional[CancellationToken] = None) -> list[Section]:
        """
        Fetch and normalize chapters from the TOC, falling back to the spine.

        A chapter that cannot be fetched is logged and skipped.
        """
        entries = self._toc_entries(book.toc)
        if not entries:
            entries = self._spine_entries(book)
        if len(entries) > self.options.max_chapters:
            logger.warning(
                f"EPUB lists {len(entries)} chapters, processing first {self.options.max_chapters}"
            )
            entries = entries[: self.options.max_chapters]

        sections: list[Section] = []
        offset = 0
        for index, entry in enumerate(entries):
            checkpoint(token, "chapter extraction")
            try:
                html = self._fetch(book, entry.href)
            except Exception as e:
                logger.warning(f"Skipping chapter {index + 1} ({entry.href}): {e}")
                continue

            content = self.normalizer.strip_html_tags(html)
            if sections:
                offset += len(CHAPTER_SEPARATOR)
            order = index + 1
            sections.append(Section(
                id=entry.id or f"chapter-{order}",
                title=entry.title or f"Chapter {order}",
                order=order,
                level=entry.level,
                start_offset=offset,
                end_offset=offset + len(content),
                word_count=self.normalizer.count_words(content),
                content=content,
                href=entry.href,
            ))
            offset += len(content)
        return sections

    def _toc_entries(self, toc_items, level: int = 0) -> list[ChapterEntry]:
        entries: list[ChapterEntry] = []
        for item in toc_items or []:
            if isinstance(item, tuple):
                section, children = item
                if getattr(section, "href", None):
                    entries.append(self._entry_from_link(section, level))
                entries.extend(self._toc_entries(children, level + 1))
            elif isinstance(item, list):
                entries.extend(self._toc_entries(item, level))
            elif getattr(item, "href", None):
                entries.append(self._entry_from_link(item, level))
        return entries

    def _entry_from_link(self, link, level: int) -> ChapterEntry:
        return ChapterEntry(
            href=link.href,
            title=(getattr(link, "title", "") or "").strip(),
            level=level,
            id=getattr(link, "uid", "") or "",
        )

    def _spine_entries(self, book: epub.EpubBook) -> list[ChapterEntry]:
        entries = []
        for spine_item in book.spine:
            idref = spine_item[0] if isinstance(spine_item, tuple) else spine_item
            item = book.get_item_with_id(idref)
            if item is None:
                logger.warning(f"Spine references missing item {idref}")
                continue
            if item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            entries.append(ChapterEntry(
                href=item.get_name(),
                title=(getattr(item, "title", "") or "").strip(),
                id=item.get_id() or "",
            ))
        return entries

    def _fetch(self, book: epub.EpubBook, href: str) -> str:
        target = href.split("#", 1)[0]
        item = book.get_item_with_href(target) or book.get_item_with_href(unquote(target))
        if item is None:
            raise KeyError(f"No manifest item for {target}")
        data = item.get_content()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            # Try with latin-1 fallback
            return data.decode("latin-1")

    # ===========================================
    # Cover
    # ===========================================

    def _manifest(self, book: epub.EpubBook) -> list[ManifestEntry]:
        return [
            ManifestEntry(
                id=item.get_id() or "",
                href=item.get_name() or "",
                media_type=getattr(item, "media_type", "") or "",
            )
            for item in book.get_items()
        ]

    def _read_manifest_entry(self, book: epub.EpubBook):
        def read(entry: ManifestEntry) -> bytes:
            item = book.get_item_with_id(entry.id) if entry.id else None
            if item is None:
                item = book.get_item_with_href(entry.href)
            if item is None:
                raise KeyError(f"No manifest item for {entry.href}")
            return item.get_content()
        return read
