"""
docingest
=========
Multi-format document ingestion core.
"""

__version__ = "0.1.0"
