"""
Concurrency Module
===================
Cooperative cancellation for long-running extraction loops.
Extractors poll the token between chapters, pages and sections.
"""

from __future__ import annotations

import threading
from typing import Optional

from docingest.errors import ParseCancelledError


class CancellationToken:
    """
    Token for cooperative extraction cancellation.

    Safe to cancel from another thread; extractors check it between
    loop iterations and stop with a Cancelled outcome.
    """

    def __init__(self):
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled.set()

    def is_cancelled(self) -> bool:
        """Check if cancellation was requested."""
        return self._cancelled.is_set()

    def reset(self) -> None:
        """Reset the token for reuse."""
        self._cancelled.clear()

    def raise_if_cancelled(self, where: Optional[str] = None) -> None:
        """Raise ParseCancelledError if cancellation was requested."""
        if self.is_cancelled():
            raise ParseCancelledError(where)


def checkpoint(token: Optional[CancellationToken], where: Optional[str] = None) -> None:
    """Cancellation check that tolerates a missing token."""
    if token is not None:
        token.raise_if_cancelled(where)
