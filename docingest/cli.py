"""
Document Ingestion CLI
======================
Terminal command for inspecting how a file is ingested.
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, TextIO

from config.settings import EpubOptions, PdfOptions
from docingest.ingestion.assembler import DocumentAssembler
from docingest.ingestion.models import ParsedDocument


def build_parser() -> argparse.ArgumentParser:
    """Create the root CLI parser."""
    parser = argparse.ArgumentParser(prog="docingest", description="Document ingestion CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Parse an EPUB/PDF/DOCX and summarize it")
    inspect_parser.add_argument("source", help="Path to the document")
    inspect_parser.add_argument("--json", action="store_true", help="Print the full result as JSON")
    inspect_parser.add_argument("--no-cover", action="store_true", help="Skip EPUB cover extraction")
    inspect_parser.add_argument("--max-chapters", type=int, default=500, help="EPUB chapter cap (default: 500)")
    inspect_parser.add_argument("--max-pages", type=int, default=5000, help="PDF page cap (default: 5000)")
    inspect_parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    inspect_parser.set_defaults(handler=handle_inspect)

    return parser


def _print(msg: str, out: TextIO) -> None:
    out.write(msg + "\n")
    out.flush()


def _to_jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bytes):
        return {"bytes": len(value)}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    return value


def document_to_dict(document: ParsedDocument) -> dict:
    """Plain-dict view of a document; cover bytes are reported by size."""
    return _to_jsonable(dataclasses.asdict(document))


def handle_inspect(args: argparse.Namespace, out: TextIO) -> int:
    """Parse a document and print a summary or JSON."""
    source = Path(args.source).expanduser()
    if not source.exists():
        _print(f"error: source file not found: {source}", out)
        return 1

    try:
        assembler = DocumentAssembler(
            epub_options=EpubOptions(extract_cover=not args.no_cover, max_chapters=args.max_chapters),
            pdf_options=PdfOptions(max_pages=args.max_pages),
        )
    except ValueError as e:
        _print(f"error: {e}", out)
        return 1

    result = assembler.parse(source)
    if not result.success:
        _print(f"error: [{result.error_code.name}] {result.error}", out)
        return 1

    document = result.data
    if args.json:
        _print(json.dumps(document_to_dict(document), indent=2, ensure_ascii=False), out)
        return 0

    meta = document.metadata
    _print(f"format:   {document.format.value}", out)
    _print(f"title:    {meta.title or '-'}", out)
    _print(f"author:   {meta.author or '-'}", out)
    if document.page_count:
        _print(f"pages:    {document.page_count}", out)
    _print(f"words:    {document.total_word_count:,}", out)
    _print(f"reading:  {document.estimated_reading_time_minutes} min", out)
    if document.cover_image is not None:
        _print(f"cover:    {document.cover_image.filename} ({document.cover_image.mime_type})", out)
    _print(f"sections: {len(document.sections)}", out)
    for section in document.sections:
        indent = "  " * (section.level + 1)
        _print(f"{indent}{section.order}. {section.title} ({section.word_count} words)", out)
    for message in document.messages:
        _print(f"{message.type}: {message.message}", out)
    return 0


def main(argv: Optional[Sequence[str]] = None, out: Optional[TextIO] = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return args.handler(args, out or sys.stdout)


if __name__ == "__main__":
    raise SystemExit(main())
