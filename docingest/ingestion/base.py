"""
Extractor Base
==============
Public entry points shared by all format extractors: path and buffer
parsing, structural validity checks and the conversion of internal
exceptions into ParseResult values.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from config.settings import Settings, settings as default_settings
from docingest.concurrency import CancellationToken
from docingest.errors import (
    EmptyInputError,
    IngestionError,
    InternalParseError,
    read_header,
)
from docingest.ingestion.models import DocumentFormat, ParsedDocument, ParseResult
from docingest.ingestion.normalizer import TextNormalizer

logger = logging.getLogger(__name__)


@contextmanager
def scratch_file(data: bytes, suffix: str, directory: Optional[Path] = None) -> Iterator[Path]:
    """
    Materialize bytes as a file inside a private scratch directory.

    Both the file and its directory are removed on every exit path;
    cleanup failures are logged and never replace the original error.
    """
    scratch_dir = Path(tempfile.mkdtemp(prefix="docingest-", dir=directory))
    path = scratch_dir / f"upload{suffix}"
    try:
        path.write_bytes(data)
        yield path
    finally:
        try:
            if path.exists():
                os.unlink(path)
        except OSError as e:
            logger.debug(f"Failed to remove scratch file {path}: {e}")
        try:
            shutil.rmtree(scratch_dir)
        except OSError as e:
            logger.debug(f"Failed to remove scratch dir {scratch_dir}: {e}")


class BaseExtractor(ABC):
    """
    Abstract base for format extractors.

    Instances hold only configuration, so one extractor may serve many
    sequential calls; use separate instances for concurrent work.
    """

    FORMAT = DocumentFormat.UNKNOWN
    SUFFIX = ""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.normalizer = TextNormalizer()

    def parse(
        self,
        file_path: Path | str,
        token: Optional[CancellationToken] = None,
    ) -> ParseResult[ParsedDocument]:
        """
        Parse a document on disk.

        Args:
            file_path: Path to the document
            token: Optional cancellation token

        Returns:
            ParseResult with the ParsedDocument or a categorized error
        """
        path = Path(file_path)
        try:
            header = read_header(path)
            if not header:
                raise EmptyInputError(path)
            self.check_signature(header, path)
            document = self.extract(path, token)
            logger.info(
                f"Parsed {self.FORMAT.value} {path.name}: "
                f"{len(document.sections)} sections, {document.total_word_count} words"
            )
            return ParseResult.ok(document)
        except IngestionError as e:
            logger.error(f"Failed to parse {path}: {e}")
            return ParseResult.failure(e)
        except Exception as e:
            logger.exception(f"Unexpected failure parsing {path}")
            return ParseResult.failure(
                InternalParseError(
                    f"Failed to parse {self.FORMAT.value.upper()}",
                    details=f"{type(e).__name__}: {e}",
                    file_path=path,
                )
            )

    def parse_from_buffer(
        self,
        data: bytes,
        token: Optional[CancellationToken] = None,
    ) -> ParseResult[ParsedDocument]:
        """
        Parse an in-memory document via a scratch file.

        Args:
            data: Whole document bytes
            token: Optional cancellation token

        Returns:
            ParseResult with the ParsedDocument or a categorized error
        """
        try:
            if not data:
                raise EmptyInputError()
            self.check_signature(data[:16])
        except IngestionError as e:
            logger.error(f"Rejected {self.FORMAT.value} buffer: {e}")
            return ParseResult.failure(e)

        try:
            with scratch_file(data, self.SUFFIX, self.settings.scratch_dir) as path:
                return self.parse(path, token)
        except OSError as e:
            error = InternalParseError("Failed to stage upload", details=str(e))
            logger.error(str(error))
            return ParseResult.failure(error)

    def is_valid(self, file_path: Path | str) -> bool:
        """Lightweight signature and structure check."""
        path = Path(file_path)
        try:
            header = read_header(path)
            if not header:
                return False
            self.check_signature(header, path)
            return self.check_structure(path)
        except IngestionError:
            return False
        except Exception as e:
            logger.debug(f"Validity check failed for {path}: {e}")
            return False

    def reading_time(self, word_count: int) -> int:
        return self.normalizer.calculate_reading_time(word_count, self.settings.words_per_minute)

    @abstractmethod
    def check_signature(self, header: bytes, file_path: Optional[Path] = None) -> None:
        """Raise UnsupportedFormatError unless the header fits this format."""

    @abstractmethod
    def check_structure(self, file_path: Path) -> bool:
        """Return True if the container opens as this format."""

    @abstractmethod
    def extract(self, file_path: Path, token: Optional[CancellationToken] = None) -> ParsedDocument:
        """Run the format pipeline; raise IngestionError subclasses on failure."""
