"""
Configuration Module
====================
Extraction options and shared settings.
"""

from .settings import Settings, EpubOptions, PdfOptions, DocxOptions, settings

__all__ = ["Settings", "EpubOptions", "PdfOptions", "DocxOptions", "settings"]
