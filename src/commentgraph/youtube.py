"""YouTube Integration Module

This module provides the page fetch collaborator used by the collector: one
YouTube Data API v3 request per page of comment threads or replies, with the
response normalized to a Page (items + next page token). It also maps raw
API items to CommentRecord objects and extracts video ids from URLs.

Quota cost (YouTube Data API v3):
    commentThreads.list with snippet: 3 units per page (max 100 threads)
    comments.list with snippet:       2 units per request (max 100 replies)
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple
from urllib.parse import parse_qs, urlparse

import requests

from commentgraph import config
from commentgraph.models.youtube_models import NONE, CommentRecord
from commentgraph.utils.errors import ConfigurationError, TransportError, retry_with_backoff
from commentgraph.utils.logging_config import get_logger

logger = get_logger(__name__)

THREAD_PAGE_QUOTA_COST = 3
REPLY_REQUEST_QUOTA_COST = 2

_VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")


@dataclass(frozen=True)
class Page:
    """One page of raw API items and the token for the next page ("" if none)."""
    items: List[Dict[str, Any]] = field(default_factory=list)
    next_page_token: str = ""


class PageFetcher(Protocol):
    """Page fetch collaborator contract.

    Implementations own their credentials and transport. Failures must be
    raised as TransportError; the collector never retries.
    """

    def fetch_threads(self, source_id: str, page_token: str, page_size: int) -> Page:
        ...

    def fetch_replies(self, parent_id: str, page_size: int) -> Page:
        ...


def _parse_error_response(response: requests.Response) -> Tuple[str, Optional[str]]:
    """Extract (message, reason) from a YouTube API error body."""
    message = f"HTTP {response.status_code}"
    reason = None
    try:
        payload = response.json()
    except ValueError:
        return message, reason
    err = payload.get("error", {}) if isinstance(payload, dict) else {}
    if err.get("message"):
        message = err["message"]
    errors = err.get("errors") or []
    if errors and errors[0].get("reason"):
        reason = errors[0]["reason"]
    return message, reason


class YouTubePageFetcher:
    """PageFetcher backed by the YouTube Data API v3 over requests.

    Attributes:
        api_key: YouTube Data API key sent as the "key" query parameter
        base_url: API root URL
        timeout: Per-request timeout in seconds
        request_count: Number of HTTP requests issued by this fetcher
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = config.API_BASE_URL,
        timeout: float = config.REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not isinstance(api_key, str) or not api_key.strip():
            raise ConfigurationError("Please provide a valid youtube api key.")

        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.request_count = 0

    def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{endpoint}"
        query = dict(params, key=self.api_key)
        self.request_count += 1

        try:
            response = self.session.get(url, params=query, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("youtube_request_failed", endpoint=endpoint, error=str(e), error_type=type(e).__name__)
            raise TransportError(f"YouTube request to {endpoint} failed: {e}") from e

        if response.status_code != 200:
            message, reason = _parse_error_response(response)
            logger.error(
                "youtube_api_error",
                endpoint=endpoint,
                status=response.status_code,
                reason=reason,
                message=message,
            )
            raise TransportError(
                f"YouTube {endpoint} request rejected (HTTP {response.status_code}): {message}",
                status=response.status_code,
                reason=reason,
            )

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"YouTube {endpoint} returned a non-JSON body", status=response.status_code
            ) from e

    def fetch_threads(self, source_id: str, page_token: str, page_size: int) -> Page:
        params = {
            "part": "snippet",
            "maxResults": page_size,
            "textFormat": "plainText",
            "videoId": source_id,
            "fields": "items,nextPageToken",
            "order": "time",
        }
        if page_token:
            params["pageToken"] = page_token

        data = self._get("commentThreads", params)
        return Page(items=data.get("items") or [], next_page_token=data.get("nextPageToken") or "")

    def fetch_replies(self, parent_id: str, page_size: int = config.MAX_PAGE_SIZE) -> Page:
        params = {
            "part": "snippet",
            "maxResults": page_size,
            "textFormat": "plainText",
            "parentId": parent_id,
        }
        data = self._get("comments", params)
        return Page(items=data.get("items") or [], next_page_token=data.get("nextPageToken") or "")


class RetryingPageFetcher:
    """Wraps a PageFetcher with exponential backoff on TransportError.

    Errors whose reason is in NON_RETRYABLE_REASONS (quota exhausted, bad key,
    comments disabled) are raised on the first attempt.
    """

    NON_RETRYABLE_REASONS = frozenset({
        "quotaExceeded",
        "keyInvalid",
        "forbidden",
        "commentsDisabled",
        "videoNotFound",
    })

    def __init__(
        self,
        fetcher: PageFetcher,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
    ):
        self.fetcher = fetcher
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    def _call(self, fn):
        def attempt():
            try:
                return fn()
            except TransportError as e:
                if e.reason in self.NON_RETRYABLE_REASONS:
                    raise _FatalTransportError(e) from e
                raise

        try:
            return retry_with_backoff(
                attempt,
                max_retries=self.max_retries,
                base_delay=self.base_delay,
                max_delay=self.max_delay,
                retryable_exceptions=(TransportError,),
            )
        except _FatalTransportError as e:
            raise e.original

    def fetch_threads(self, source_id: str, page_token: str, page_size: int) -> Page:
        return self._call(lambda: self.fetcher.fetch_threads(source_id, page_token, page_size))

    def fetch_replies(self, parent_id: str, page_size: int = config.MAX_PAGE_SIZE) -> Page:
        return self._call(lambda: self.fetcher.fetch_replies(parent_id, page_size))


class _FatalTransportError(Exception):
    """Carries a non-retryable TransportError past retry_with_backoff."""

    def __init__(self, original: TransportError):
        super().__init__(str(original))
        self.original = original


def thread_to_record(item: Dict[str, Any], source_id: str) -> CommentRecord:
    """Map a commentThreads item to a top-level CommentRecord."""
    snippet = item.get("snippet", {}) or {}
    top = snippet.get("topLevelComment", {}) or {}
    top_snippet = top.get("snippet", {}) or {}
    return CommentRecord(
        text=top_snippet.get("textDisplay") or top_snippet.get("textOriginal") or "",
        author=top_snippet.get("authorDisplayName", "") or "",
        reply_count=int(snippet.get("totalReplyCount", 0) or 0),
        like_count=int(top_snippet.get("likeCount", 0) or 0),
        publish_time=top_snippet.get("publishedAt", "") or "",
        comment_id=str(top.get("id", "") or ""),
        parent_id=NONE,
        source_id=source_id,
    )


def reply_to_record(item: Dict[str, Any], source_id: str, parent_id: str) -> CommentRecord:
    """Map a comments item to a reply CommentRecord.

    The record is linked to the queried parent id. Replies carry no reply
    count of their own, so reply_count is always 0.
    """
    snippet = item.get("snippet", {}) or {}
    return CommentRecord(
        text=snippet.get("textDisplay") or snippet.get("textOriginal") or "",
        author=snippet.get("authorDisplayName", "") or "",
        reply_count=0,
        like_count=int(snippet.get("likeCount", 0) or 0),
        publish_time=snippet.get("publishedAt", "") or "",
        comment_id=str(item.get("id", "") or ""),
        parent_id=parent_id,
        source_id=source_id,
    )


def extract_video_id(value: str) -> Optional[str]:
    """Return the 11-character video id in a raw id or YouTube URL, else None.

    Example:
        >>> extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ")
        'dQw4w9WgXcQ'
    """
    s = (value or "").strip().strip('"').strip("'")
    if _VIDEO_ID_RE.fullmatch(s):
        return s

    parsed = urlparse(s)
    if "youtu.be" in parsed.netloc:
        candidate = parsed.path.strip("/").split("/")[0]
    else:
        candidate = (parse_qs(parsed.query).get("v") or [""])[0]
    return candidate if _VIDEO_ID_RE.fullmatch(candidate) else None


def get_video_ids(urls: Iterable[str]) -> List[str]:
    """Extract video ids from raw ids and youtube.com / youtu.be URLs.

    Ids are returned in input order; entries without a recognizable id are
    skipped and logged.
    """
    video_ids = []
    for url in urls:
        video_id = extract_video_id(url)
        if video_id is None:
            logger.warning("video_id_not_found", value=url)
            continue
        video_ids.append(video_id)
    return video_ids
