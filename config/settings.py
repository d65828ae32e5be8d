"""
Ingestion Settings
==================
Option records for each format and shared defaults.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def _require_positive(name: str, value: int) -> None:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class Settings:
    """Defaults shared by all extractors."""

    # Reading speed used for estimated reading time
    words_per_minute: int = 250

    # Where buffer entry points write scratch files (None = system temp)
    scratch_dir: Optional[Path] = None

    # Worker threads for batch ingestion
    max_workers: int = 4

    def __post_init__(self):
        _require_positive("words_per_minute", self.words_per_minute)
        _require_positive("max_workers", self.max_workers)


@dataclass(frozen=True)
class EpubOptions:
    """EPUB extraction options."""
    extract_cover: bool = True
    extract_content: bool = True
    max_chapters: int = 500

    def __post_init__(self):
        _require_positive("max_chapters", self.max_chapters)


@dataclass(frozen=True)
class PdfOptions:
    """PDF extraction options."""
    extract_content: bool = True
    max_pages: int = 5000
    detect_sections: bool = True

    def __post_init__(self):
        _require_positive("max_pages", self.max_pages)


@dataclass(frozen=True)
class DocxOptions:
    """DOCX extraction options."""
    extract_content: bool = True
    detect_sections: bool = True
    include_html: bool = True


# Global settings instance
settings = Settings()
