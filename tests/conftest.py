import pytest
from pathlib import Path
import sys
import zipfile

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

COVER_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00fake-cover-image"

CHAPTERS = [
    ("Chapter One", "ch1.xhtml", "<h1>Chapter One</h1><p>It was a bright cold day in April.</p>"),
    ("Chapter Two", "ch2.xhtml", "<h1>Chapter Two</h1><p>The clocks were striking thirteen.</p>"),
    ("Chapter Three", "ch3.xhtml", "<h1>Chapter Three</h1><p>Winston slipped quickly through the doors.</p>"),
]


def build_epub(path: Path, with_toc: bool = True, with_cover: bool = True, chapters=CHAPTERS) -> Path:
    """Write a small EPUB with metadata, chapters and an optional cover."""
    from ebooklib import epub

    book = epub.EpubBook()
    book.set_identifier("urn:isbn:978-0-306-40615-7")
    book.set_title("Sample Ingestion Book")
    book.set_language("en")
    book.add_author("Jane Doe")
    book.add_metadata("DC", "publisher", "Acme Press")
    book.add_metadata("DC", "description", "A book used in tests.")
    book.add_metadata("DC", "subject", "Fiction; Adventure, Classics")
    book.add_metadata("DC", "date", "2020-01-01")
    book.add_metadata("DC", "rights", "Public domain")

    items = []
    for title, file_name, body in chapters:
        item = epub.EpubHtml(title=title, file_name=file_name, lang="en")
        item.content = f"<html><head><title>{title}</title></head><body>{body}</body></html>"
        book.add_item(item)
        items.append(item)

    if with_cover:
        book.set_cover("images/cover.jpg", COVER_BYTES)

    if with_toc:
        book.toc = [epub.Link(item.file_name, title, item.file_name.split(".")[0])
                    for item, (title, _, _) in zip(items, chapters)]
    else:
        book.toc = []

    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = items
    epub.write_epub(str(path), book)
    return path


def add_zip_entry(path: Path, name: str, content: str) -> Path:
    """Append an entry to an existing ZIP container."""
    with zipfile.ZipFile(path, "a") as zf:
        zf.writestr(name, content)
    return path


def build_pdf(path: Path, pages, metadata=None, xmp=None) -> Path:
    """Write a PDF with one text block per page."""
    import fitz

    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    if metadata:
        doc.set_metadata(metadata)
    if xmp:
        doc.set_xml_metadata(xmp)
    doc.save(str(path))
    doc.close()
    return path


def build_docx(path: Path, blocks) -> Path:
    """
    Write a DOCX from (kind, value) blocks.

    kind is "h1".."h9" for headings, "p" for paragraphs, "table" for a
    list of rows.
    """
    import docx

    document = docx.Document()
    for kind, value in blocks:
        if kind == "p":
            document.add_paragraph(value)
        elif kind == "table":
            table = document.add_table(rows=len(value), cols=len(value[0]))
            for r, row in enumerate(value):
                for c, cell in enumerate(row):
                    table.cell(r, c).text = cell
        else:
            document.add_heading(value, level=int(kind[1:]))
    document.save(str(path))
    return path


@pytest.fixture
def sample_epub(tmp_path):
    """EPUB with a TOC and a cover image."""
    return build_epub(tmp_path / "sample.epub")


@pytest.fixture
def spine_only_epub(tmp_path):
    """EPUB whose table of contents is empty."""
    return build_epub(tmp_path / "spine.epub", with_toc=False, with_cover=False)


@pytest.fixture
def sample_pdf(tmp_path):
    """Three-page PDF with chapter headings and metadata."""
    return build_pdf(
        tmp_path / "sample.pdf",
        [
            "Chapter 1: The Beginning\nIt was a bright cold day.\nThe clocks were striking.",
            "Chapter 2: The Middle\nWinston slipped through the doors.",
            "Chapter 3: The End\nHe loved Big Brother.",
        ],
        metadata={
            "title": "Sample PDF Book",
            "author": "Test Author",
            "subject": "A PDF used in tests",
            "keywords": "fiction, dystopia",
            "creationDate": "D:20230115103000+01'00'",
        },
    )


@pytest.fixture
def blank_pdf(tmp_path):
    """PDF with a single page and no text."""
    return build_pdf(tmp_path / "blank.pdf", [""])


@pytest.fixture
def sample_docx(tmp_path):
    """DOCX with two headings."""
    return build_docx(
        tmp_path / "sample.docx",
        [
            ("h1", "Title"),
            ("p", "Body text here."),
            ("h2", "Second"),
            ("p", "More words follow."),
        ],
    )


@pytest.fixture
def plain_docx(tmp_path):
    """DOCX without heading styles."""
    return build_docx(
        tmp_path / "plain.docx",
        [
            ("p", "Chapter 1"),
            ("p", "The opening paragraph."),
            ("p", "Chapter 2"),
            ("p", "The closing paragraph."),
        ],
    )
