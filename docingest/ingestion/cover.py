"""
Cover Image Resolver
====================
Locates a cover image in an EPUB manifest: first by well-known manifest
ids, then by image hrefs that mention a cover.
"""

import logging
import posixpath
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from docingest.ingestion.models import CoverImage

logger = logging.getLogger(__name__)

COVER_IDS = [
    "cover",
    "cover-image",
    "coverimage",
    "cover_image",
    "bookcover",
    "frontcover",
    "cover-art",
    "cover_art",
]
COVER_HREF_HINTS = ["cover", "frontcover", "book-cover"]


@dataclass(frozen=True)
class ManifestEntry:
    """One OPF manifest item."""
    id: str
    href: str
    media_type: str

    @property
    def is_image(self) -> bool:
        return self.media_type.lower().startswith("image/")


def _normalize_id(value: str) -> str:
    return re.sub(r"\s+", "", value or "").lower()


class CoverImageResolver:
    """
    Finds and reads the cover image of an opened EPUB.

    The reader callable fetches an entry's bytes from the container; a
    failing read moves on to the next candidate.
    """

    def resolve(
        self,
        manifest: Iterable[ManifestEntry],
        read: Callable[[ManifestEntry], bytes],
    ) -> Optional[CoverImage]:
        """
        Resolve the cover image.

        Args:
            manifest: Manifest entries in manifest order
            read: Returns the bytes for an entry

        Returns:
            CoverImage, or None if no cover was found
        """
        entries = list(manifest)

        for candidate in COVER_IDS:
            for entry in entries:
                if _normalize_id(entry.id) == candidate and entry.is_image:
                    cover = self._try_read(entry, read)
                    if cover is not None:
                        return cover

        for entry in entries:
            href = entry.href.lower()
            if entry.is_image and any(hint in href for hint in COVER_HREF_HINTS):
                cover = self._try_read(entry, read)
                if cover is not None:
                    return cover

        logger.debug("No cover image found in manifest")
        return None

    def _try_read(self, entry: ManifestEntry, read: Callable[[ManifestEntry], bytes]) -> Optional[CoverImage]:
        try:
            data = read(entry)
        except Exception as e:
            logger.warning(f"Failed to read cover candidate {entry.id} ({entry.href}): {e}")
            return None
        if not data:
            return None
        return CoverImage(
            data=data,
            mime_type=entry.media_type,
            filename=posixpath.basename(entry.href) or entry.id,
        )
