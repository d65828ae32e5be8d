"""
Section Detector
================
Heuristic chapter/section boundary detection over plain text.
Used by the PDF extractor and as the DOCX fallback path.
"""

import re
from typing import Optional

from docingest.concurrency import CancellationToken, checkpoint
from docingest.ingestion.models import Section
from docingest.ingestion.normalizer import TextNormalizer

MAIN_CONTENT_TITLE = "Main Content"
MAX_CAPS_HEADING_LENGTH = 100

_HEADING_PATTERNS = [
    re.compile(r"^chapter\s+(\d+|[ivxlcdm]+)\b", re.IGNORECASE),
    re.compile(r"^part\s+(\d+|[ivxlcdm]+)\b", re.IGNORECASE),
    re.compile(r"^section\s+\d+(\.\d+)*\b", re.IGNORECASE),
    re.compile(r"^unit\s+\d+\b", re.IGNORECASE),
    # "1. Introduction", "12 Rivers" (case-sensitive capital)
    re.compile(r"^\d+\.?\s+[A-Z][a-z]+"),
    re.compile(
        r"^(prologue|epilogue|introduction|preface|foreword|afterword|appendix|conclusion)\b",
        re.IGNORECASE,
    ),
]


def heading_level(line: str) -> Optional[int]:
    """
    Classify a line as a boundary candidate.

    Returns:
        0 for a heading pattern match, 1 for an ALL-CAPS line, None otherwise
    """
    stripped = line.strip()
    if not stripped:
        return None
    if any(pattern.match(stripped) for pattern in _HEADING_PATTERNS):
        return 0
    if (
        len(stripped) < MAX_CAPS_HEADING_LENGTH
        and stripped == stripped.upper()
        and any(c.isalpha() for c in stripped)
    ):
        return 1
    return None


def main_content_section(text: str, word_count: int) -> Section:
    """Single synthetic section spanning the whole text."""
    return Section(
        id="section-1",
        title=MAIN_CONTENT_TITLE,
        order=1,
        level=0,
        start_offset=0,
        end_offset=len(text),
        word_count=word_count,
        content=text,
    )


class SectionDetector:
    """Line-by-line scan that opens a section at every boundary candidate."""

    def __init__(self, normalizer: Optional[TextNormalizer] = None):
        self.normalizer = normalizer or TextNormalizer()

    def detect(self, text: str, token: Optional[CancellationToken] = None) -> list[Section]:
        """
        Split text into ordered, non-overlapping sections.

        Args:
            text: Plain text (already HTML-stripped)
            token: Optional cancellation token, checked per detected section

        Returns:
            List of Section objects; empty for empty input
        """
        if not text:
            return []

        sections: list[Section] = []
        current: Optional[dict] = None
        offset = 0

        for line in text.split("\n"):
            level = heading_level(line)
            if level is not None:
                checkpoint(token, "section detection")
                if current is not None:
                    sections.append(self._close(current, offset))
                current = {
                    "order": len(sections) + 1,
                    "title": line.strip(),
                    "level": level,
                    "start": offset,
                    "lines": [],
                }
            elif current is not None:
                current["lines"].append(line)
            offset += len(line) + 1

        if current is not None:
            sections.append(self._close(current, len(text)))

        if not sections:
            return [main_content_section(text, self.normalizer.count_words(text))]
        return sections

    def _close(self, current: dict, end_offset: int) -> Section:
        # Offsets span the heading line; content is the body beneath it
        content = "\n".join(current["lines"]).strip()
        order = current["order"]
        return Section(
            id=f"section-{order}",
            title=current["title"],
            order=order,
            level=current["level"],
            start_offset=current["start"],
            end_offset=end_offset,
            word_count=self.normalizer.count_words(content),
            content=content,
        )
