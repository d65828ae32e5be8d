"""
Document Assembler
==================
Detects the container format of an upload and dispatches it to the
matching extractor, returning one result envelope for every format.
"""

from __future__ import annotations

import dataclasses
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, Optional

from config.settings import DocxOptions, EpubOptions, PdfOptions, Settings, settings as default_settings
from docingest.concurrency import CancellationToken
from docingest.errors import (
    EmptyInputError,
    IngestionError,
    InternalParseError,
    UnsupportedFormatError,
)
from docingest.ingestion.base import BaseExtractor
from docingest.ingestion.detector import FormatDetector
from docingest.ingestion.docx_parser import DOCXExtractor
from docingest.ingestion.epub_parser import EPUBExtractor
from docingest.ingestion.models import DocumentFormat, ParsedDocument, ParseResult
from docingest.ingestion.pdf_parser import PDFExtractor

logger = logging.getLogger(__name__)


class DocumentAssembler:
    """
    Facade over the format extractors.

    Holds only options; every call builds a fresh extractor so batches
    can run on worker threads without sharing container handles.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        epub_options: Optional[EpubOptions] = None,
        pdf_options: Optional[PdfOptions] = None,
        docx_options: Optional[DocxOptions] = None,
    ):
        self.settings = settings or default_settings
        self.epub_options = epub_options or EpubOptions()
        self.pdf_options = pdf_options or PdfOptions()
        self.docx_options = docx_options or DocxOptions()
        self.detector = FormatDetector()

    def extractor_for(self, fmt: DocumentFormat) -> Optional[BaseExtractor]:
        """Create the extractor for a detected format."""
        if fmt == DocumentFormat.EPUB:
            return EPUBExtractor(self.epub_options, self.settings)
        if fmt == DocumentFormat.PDF:
            return PDFExtractor(self.pdf_options, self.settings)
        if fmt == DocumentFormat.DOCX:
            return DOCXExtractor(self.docx_options, self.settings)
        return None

    def parse(
        self,
        file_path: Path | str,
        token: Optional[CancellationToken] = None,
    ) -> ParseResult[ParsedDocument]:
        """
        Detect and parse a document on disk.

        An empty title is filled from the file name.
        """
        path = Path(file_path)
        try:
            data = path.read_bytes()
        except OSError as e:
            return self._fail(
                InternalParseError("Failed to read file", details=str(e), file_path=path)
            )
        if not data:
            return self._fail(EmptyInputError(path))

        fmt = self.detector.detect(data)
        extractor = self.extractor_for(fmt)
        if extractor is None:
            return self._fail(
                UnsupportedFormatError("Unrecognized document format", file_path=path)
            )
        logger.debug(f"Detected {fmt.value} for {path.name}")
        return self._with_title_fallback(extractor.parse(path, token), path.name)

    def parse_from_buffer(
        self,
        data: bytes,
        token: Optional[CancellationToken] = None,
        filename: Optional[str] = None,
    ) -> ParseResult[ParsedDocument]:
        """
        Detect and parse an in-memory document.

        Args:
            data: Whole document bytes
            token: Optional cancellation token
            filename: Original upload name, used for the title fallback
        """
        if not data:
            return self._fail(EmptyInputError())

        fmt = self.detector.detect(data)
        extractor = self.extractor_for(fmt)
        if extractor is None:
            return self._fail(UnsupportedFormatError("Unrecognized document format"))
        logger.debug(f"Detected {fmt.value} for buffer of {len(data)} bytes")
        return self._with_title_fallback(extractor.parse_from_buffer(data, token), filename)

    def parse_many(
        self,
        paths: Iterable[Path | str],
        max_workers: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[ParseResult[ParsedDocument]]:
        """
        Parse independent documents concurrently.

        Returns:
            Results in the same order as paths
        """
        paths = list(paths)
        workers = max_workers or self.settings.max_workers
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda p: self.parse(p, token), paths))

    def _with_title_fallback(
        self,
        result: ParseResult[ParsedDocument],
        filename: Optional[str],
    ) -> ParseResult[ParsedDocument]:
        if not result.success or result.data.metadata.title or not filename:
            return result
        title = Path(filename).stem
        metadata = dataclasses.replace(result.data.metadata, title=title)
        return ParseResult.ok(dataclasses.replace(result.data, metadata=metadata))

    def _fail(self, exc: IngestionError) -> ParseResult[ParsedDocument]:
        logger.error(f"Failed to ingest: {exc}")
        return ParseResult.failure(exc)
