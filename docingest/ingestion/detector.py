"""
Format Detector
===============
Classifies a byte buffer as EPUB, PDF, DOCX or unknown from magic bytes,
probing ZIP containers for their distinguishing entries.
"""

import io
import logging
import zipfile
from pathlib import Path

from docingest.errors import PDF_SIGNATURE, ZIP_SIGNATURE
from docingest.ingestion.models import DocumentFormat

logger = logging.getLogger(__name__)

EPUB_MIMETYPE = "application/epub+zip"
DOCX_MAIN_PART = "word/document.xml"


class FormatDetector:
    """Pure classification over bytes already in memory."""

    def detect(self, data: bytes) -> DocumentFormat:
        """
        Classify a document buffer.

        Args:
            data: Whole document bytes (ZIP probing needs the central directory)

        Returns:
            DocumentFormat for the buffer
        """
        if not data:
            return DocumentFormat.UNKNOWN
        if len(data) >= len(PDF_SIGNATURE) and data[:5] == PDF_SIGNATURE:
            return DocumentFormat.PDF
        if len(data) >= len(ZIP_SIGNATURE) and data[:4] == ZIP_SIGNATURE:
            return self._classify_zip(data)
        return DocumentFormat.UNKNOWN

    def detect_file(self, file_path: Path | str) -> DocumentFormat:
        """Classify a file on disk."""
        return self.detect(Path(file_path).read_bytes())

    def _classify_zip(self, data: bytes) -> DocumentFormat:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as zf:
                names = set(zf.namelist())
                if "mimetype" in names:
                    mimetype = zf.read("mimetype").decode("utf-8", errors="replace").strip()
                    if mimetype == EPUB_MIMETYPE:
                        return DocumentFormat.EPUB
                if DOCX_MAIN_PART in names:
                    return DocumentFormat.DOCX
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError, ValueError, NotImplementedError) as e:
            logger.debug(f"ZIP inspection failed: {e}")
        return DocumentFormat.UNKNOWN
