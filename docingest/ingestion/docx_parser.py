"""
DOCX Parser Module
==================
Converts Word documents into an HTML rendering (for heading structure)
and a plain-text rendering (the canonical content) using python-docx.
"""

from __future__ import annotations

import html
import logging
import re
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import docx
from docx.opc.exceptions import PackageNotFoundError
from docx.table import Table
from docx.text.paragraph import Paragraph
from bs4 import BeautifulSoup
from lxml import etree

from config.settings import DocxOptions, Settings
from docingest.concurrency import CancellationToken, checkpoint
from docingest.errors import (
    CorruptContainerError,
    InternalParseError,
    validate_zip_header,
)
from docingest.ingestion.base import BaseExtractor
from docingest.ingestion.models import (
    ConversionMessage,
    DocumentFormat,
    DocumentMetadata,
    ParsedDocument,
    Section,
)
from docingest.ingestion.sections import SectionDetector, main_content_section

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
_HEADING_STYLE = re.compile(r"^heading\s*(\d+)$", re.IGNORECASE)
_HEADING_TAG = re.compile(r"^h([1-6])$")


@dataclass
class Rendering:
    """Output of a DOCX conversion."""
    html: str
    text: str
    messages: list[ConversionMessage] = field(default_factory=list)


@dataclass
class Heading:
    """A heading recovered from the HTML rendering."""
    level: int
    text: str


class DOCXExtractor(BaseExtractor):
    """
    Parses DOCX files into the uniform document structure.

    Sections come from HTML headings reconciled against the plain text,
    or from the line heuristic when the document has no headings.
    """

    FORMAT = DocumentFormat.DOCX
    SUFFIX = ".docx"

    def __init__(self, options: Optional[DocxOptions] = None, settings: Optional[Settings] = None):
        super().__init__(settings)
        self.options = options or DocxOptions()
        self.section_detector = SectionDetector(self.normalizer)

    def check_signature(self, header: bytes, file_path: Optional[Path] = None) -> None:
        validate_zip_header(header, file_path)

    def check_structure(self, file_path: Path) -> bool:
        try:
            with zipfile.ZipFile(file_path) as zf:
                return "word/document.xml" in zf.namelist()
        except zipfile.BadZipFile:
            return False

    def extract(self, file_path: Path, token: Optional[CancellationToken] = None) -> ParsedDocument:
        document = self._open(file_path)
        rendering = self.convert(document, token)

        text = rendering.text if self.options.extract_content else ""
        sections: list[Section] = []
        if text and self.options.detect_sections:
            headings = self.extract_headings(rendering.html)
            if headings:
                sections = self.reconcile_headings(headings, text, token)
            else:
                sections = self.section_detector.detect(text, token)
        if text and not sections:
            sections = [main_content_section(text, self.normalizer.count_words(text))]

        word_count = self.normalizer.count_words(text)
        for message in rendering.messages:
            logger.debug(f"DOCX conversion {message.type}: {message.message}")

        return ParsedDocument(
            format=self.FORMAT,
            # Document properties are not read; metadata keeps empty defaults
            metadata=DocumentMetadata(),
            sections=tuple(sections),
            total_word_count=word_count,
            raw_content=text,
            estimated_reading_time_minutes=self.reading_time(word_count),
            content_hash=self.normalizer.generate_content_hash(text),
            html_content=rendering.html if self.options.include_html else "",
            messages=tuple(rendering.messages),
        )

    def _open(self, file_path: Path):
        try:
            return docx.Document(str(file_path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, etree.XMLSyntaxError) as e:
            raise CorruptContainerError(
                "Invalid DOCX structure",
                details=f"{type(e).__name__}: {e}",
                file_path=file_path,
            )
        except Exception as e:
            raise InternalParseError(
                f"Failed to open DOCX: {e}",
                details=type(e).__name__,
                file_path=file_path,
            )

    # ===========================================
    # Conversion
    # ===========================================

    def convert(self, document, token: Optional[CancellationToken] = None) -> Rendering:
        """
        Render the document body to HTML and plain text.

        Problems with individual blocks become messages rather than failures.
        """
        html_parts: list[str] = []
        text_parts: list[str] = []
        messages: list[ConversionMessage] = []

        for index, block in enumerate(document.iter_inner_content()):
            checkpoint(token, "docx conversion")
            try:
                if isinstance(block, Paragraph):
                    self._render_paragraph(block, html_parts, text_parts, messages)
                elif isinstance(block, Table):
                    self._render_table(block, html_parts, text_parts, messages)
            except Exception as e:
                messages.append(ConversionMessage("error", f"Block {index + 1} could not be converted: {e}"))

        return Rendering(
            html="".join(html_parts),
            text=PARAGRAPH_SEPARATOR.join(text_parts),
            messages=messages,
        )

    def _render_paragraph(self, paragraph: Paragraph, html_parts, text_parts, messages) -> None:
        if paragraph._p.xpath(".//w:drawing"):
            messages.append(ConversionMessage("warning", "Inline image was not converted"))

        text = paragraph.text.strip()
        if not text:
            return

        style_name = paragraph.style.name if paragraph.style is not None else ""
        level = self._heading_level(style_name, messages)
        escaped = html.escape(text, quote=False)
        if level:
            html_parts.append(f"<h{level}>{escaped}</h{level}>")
        else:
            html_parts.append(f"<p>{escaped}</p>")
        text_parts.append(text)

    def _heading_level(self, style_name: str, messages) -> int:
        if style_name == "Title":
            return 1
        match = _HEADING_STYLE.match(style_name)
        if not match:
            return 0
        level = int(match.group(1))
        if level > 6:
            messages.append(ConversionMessage(
                "warning", f"Heading level {level} ({style_name}) rendered as h6"
            ))
            return 6
        return max(level, 1)

    def _render_table(self, table: Table, html_parts, text_parts, messages) -> None:
        rows_html = []
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            rows_html.append("<tr>" + "".join(f"<td>{html.escape(c)}</td>" for c in cells) + "</tr>")
            line = "\t".join(cells).strip()
            if line:
                text_parts.append(line)
        html_parts.append("<table>" + "".join(rows_html) + "</table>")
        messages.append(ConversionMessage("warning", "Table flattened to text rows"))

    # ===========================================
    # Sections
    # ===========================================

    def extract_headings(self, html_content: str) -> list[Heading]:
        """Collect h1-h6 headings in document order."""
        if not html_content:
            return []
        soup = BeautifulSoup(html_content, "lxml")
        headings = []
        for tag in soup.find_all(_HEADING_TAG):
            text = " ".join(tag.get_text().split())
            if text:
                headings.append(Heading(level=int(tag.name[1]), text=text))
        return headings

    def reconcile_headings(
        self,
        headings: list[Heading],
        text: str,
        token: Optional[CancellationToken] = None,
    ) -> list[Section]:
        """
        Reconcile HTML headings with the plain text.

        A forward-only cursor over the text lines locates each heading;
        headings that cannot be located are dropped and each section runs
        to the start of the next located heading. Offsets span the heading
        line, content holds only the body beneath it.
        """
        lines = text.split("\n")
        line_offsets = []
        offset = 0
        for line in lines:
            line_offsets.append(offset)
            offset += len(line) + 1

        # (heading, start of heading, end of heading)
        located: list[tuple[Heading, int, int]] = []
        cursor = 0
        for heading in headings:
            checkpoint(token, "heading reconciliation")
            for line_index in range(cursor, len(lines)):
                end_line = self._match_heading(lines, line_index, heading.text)
                if end_line is None:
                    continue
                line = lines[line_index]
                start = line_offsets[line_index] + (len(line) - len(line.lstrip()))
                body_start = line_offsets[end_line - 1] + len(lines[end_line - 1])
                located.append((heading, start, body_start))
                cursor = end_line
                break
            else:
                logger.warning(f"Skipping heading not found in text: {heading.text!r}")

        sections = []
        for index, (heading, start, body_start) in enumerate(located):
            end = located[index + 1][1] if index + 1 < len(located) else len(text)
            content = text[body_start:end].strip()
            order = index + 1
            sections.append(Section(
                id=f"heading-{order}",
                title=heading.text,
                order=order,
                level=heading.level - 1,
                start_offset=start,
                end_offset=end,
                word_count=self.normalizer.count_words(content),
                content=content,
            ))
        return sections

    def _match_heading(self, lines: list[str], first: int, heading_text: str) -> Optional[int]:
        """
        Match a heading starting at lines[first].

        Soft line breaks split one heading over consecutive lines, so lines
        are joined until the heading text is matched or ruled out.

        Returns:
            Index one past the last matched line, or None
        """
        joined = ""
        for index in range(first, len(lines)):
            part = " ".join(lines[index].split())
            if not part:
                return None
            joined = f"{joined} {part}" if joined else part
            if joined == heading_text:
                return index + 1
            if not heading_text.startswith(joined + " "):
                return None
        return None
