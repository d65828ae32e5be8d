"""
Text Normalizer
===============
HTML stripping, word counting, reading-time estimation and content
hashing shared by every extractor.
"""

import hashlib
import math
import re


class TextNormalizer:
    """
    Normalizes extracted markup into plain, single-spaced text.

    Operations:
        - Strip script/style blocks and remaining tags
        - Decode a fixed set of HTML entities
        - Count words and estimate reading time
        - Hash content for deduplication
    """

    DEFAULT_WPM = 250

    _BLOCK_PATTERNS = [
        re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL),
        re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL),
    ]
    _TAG_PATTERN = re.compile(r"<[^>]*>")
    _WHITESPACE_PATTERN = re.compile(r"\s+")

    # &amp; is decoded last so "&amp;lt;" becomes a literal "&lt;"
    _ENTITIES = [
        ("&nbsp;", " "),
        ("&lt;", "<"),
        ("&gt;", ">"),
        ("&quot;", '"'),
        ("&#039;", "'"),
        ("&apos;", "'"),
        ("&amp;", "&"),
    ]

    def strip_html_tags(self, html: str) -> str:
        """
        Convert HTML into whitespace-collapsed plain text.

        Args:
            html: Markup or plain text

        Returns:
            Trimmed text with single spaces between words
        """
        if not html:
            return ""
        result = self._strip_once(html)
        # Decoded entities can spell out new tags, so repeat until stable
        while True:
            again = self._strip_once(result)
            if again == result:
                return result
            result = again

    def _strip_once(self, html: str) -> str:
        result = html
        for pattern in self._BLOCK_PATTERNS:
            result = pattern.sub(" ", result)
        # Tags become spaces so adjacent blocks stay separate words
        result = self._TAG_PATTERN.sub(" ", result)
        for entity, char in self._ENTITIES:
            result = result.replace(entity, char)
        return self._WHITESPACE_PATTERN.sub(" ", result).strip()

    def clean_metadata_string(self, value) -> str:
        """Drop NUL characters (UTF-16 info strings) and trim; non-strings become ""."""
        if not value or not isinstance(value, str):
            return ""
        return value.replace("\0", "").strip()

    def count_words(self, text: str) -> int:
        """Count whitespace-delimited words after stripping HTML."""
        stripped = self.strip_html_tags(text)
        if not stripped:
            return 0
        return len([token for token in stripped.split() if token])

    def calculate_reading_time(self, word_count: int, wpm: int = DEFAULT_WPM) -> int:
        """
        Estimate reading time in whole minutes.

        Args:
            word_count: Number of words
            wpm: Reading speed in words per minute

        Returns:
            ceil(word_count / wpm), or 0 for non-positive inputs
        """
        if word_count <= 0 or wpm <= 0:
            return 0
        return math.ceil(word_count / wpm)

    def generate_content_hash(self, content) -> str:
        """SHA-256 hex digest of text (UTF-8) or raw bytes."""
        if isinstance(content, str):
            content = content.encode("utf-8")
        return hashlib.sha256(content).hexdigest()
