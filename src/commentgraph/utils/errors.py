"""Error Handling Utilities

This module defines the collector's exception hierarchy, retry logic with
exponential backoff for wrapping the page fetch collaborator, and warning
collection for non-fatal anomalies observed during a collection run.

Exception hierarchy:
    CommentGraphError
        ConfigurationError: bad credential or video id input, raised before any request
        TransportError: fetch failure (auth rejected, network error, API error response)
        EmptyResultError: zero comments collected across all requested videos
        GraphConstructionError: empty record set passed to the network builder
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar


T = TypeVar('T')


class CommentGraphError(Exception):
    """Base exception for collection and network construction failures."""
    pass


class ConfigurationError(CommentGraphError):
    """Missing or invalid API key, or an empty/malformed video id list."""
    pass


class TransportError(CommentGraphError):
    """A page fetch failed (auth rejected, network failure, API error).

    Attributes:
        status: HTTP status code, if a response was received
        reason: YouTube error reason (e.g. "quotaExceeded"), if reported
    """

    def __init__(self, message: str, status: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class EmptyResultError(CommentGraphError):
    """No comments were collected from any of the requested videos."""
    pass


class GraphConstructionError(CommentGraphError):
    """There is no conversational data to build a network from."""
    pass


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
) -> T:
    """Call fn until it succeeds, sleeping between failed attempts.

    fn is called at most max_retries + 1 times. Before retry n (counting
    from 0) the wait is base_delay * 2**n seconds, never more than max_delay,
    so with the defaults a persistently failing fetch waits 1s, 2s and 4s
    before its last error is re-raised. Exceptions outside
    retryable_exceptions propagate on the first attempt.

    The collector itself never retries; RetryingPageFetcher applies this
    policy around a page fetch collaborator.
    """
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except retryable_exceptions:
            if attempt >= max_retries:
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            time.sleep(delay)

    raise RuntimeError("Unreachable code")


# Supported warning types
WARNING_TYPE_SHORT_PAGE = "short_page"
WARNING_TYPE_REPLIES_TRUNCATED = "replies_truncated"
WARNING_TYPE_ORPHAN_REPLY = "orphan_reply"

VALID_WARNING_TYPES = {
    WARNING_TYPE_SHORT_PAGE,
    WARNING_TYPE_REPLIES_TRUNCATED,
    WARNING_TYPE_ORPHAN_REPLY,
}


class WarningsCollector:
    """Collector for informational anomalies during a collection run.

    Accumulates warning events with type, message, timestamp, and context.
    Warnings never affect control flow.

    Example:
        >>> collector = WarningsCollector()
        >>> collector.append(
        ...     "replies_truncated",
        ...     "Only the first page of replies was collected",
        ...     {"parent_id": "Ugx123", "reply_count": 250, "collected": 100}
        ... )
        >>> collector.to_json()
        '[{"type": "replies_truncated", "message": "...", "timestamp": "...", "context": {...}}]'
    """

    def __init__(self):
        self._warnings: List[Dict[str, Any]] = []

    def __len__(self) -> int:
        return len(self._warnings)

    def append(self, warning_type: str, message: str, context: Dict[str, Any]) -> None:
        """Add a warning with type, message, timestamp, and context.

        Raises:
            ValueError: If warning_type is not in VALID_WARNING_TYPES
        """
        if warning_type not in VALID_WARNING_TYPES:
            raise ValueError(
                f"Invalid warning_type '{warning_type}'. "
                f"Must be one of: {', '.join(sorted(VALID_WARNING_TYPES))}"
            )

        self._warnings.append({
            "type": warning_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "context": context
        })

    def of_type(self, warning_type: str) -> List[Dict[str, Any]]:
        return [w for w in self._warnings if w["type"] == warning_type]

    def to_json(self) -> Optional[str]:
        """Serialize warnings to a JSON array string, or None if there are none."""
        if not self._warnings:
            return None
        return json.dumps(self._warnings)
