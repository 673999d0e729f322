"""YouTube comment collection.

Drives the page fetch collaborator to harvest comment threads and replies
for a list of videos, strictly one video at a time:

1. Thread pagination (collect_threads): pages of comment threads are fetched
   until the API reports no next page or the top-level budget is exceeded,
   then truncated to exactly the budget.
2. Reply fetching (fetch_replies): one request per top-level comment known
   to have replies. Only the first page of replies is collected.
3. Resolution (collect_comments): threads and replies of all videos are
   concatenated, attributed by the mention resolver, and converted to the
   tabular datasource form once.

The max_comments budget applies to top-level comments only, so the total
number of comments returned for a video (threads + replies) will usually be
greater than max_comments.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import pandas as pd

from commentgraph import config
from commentgraph.mentions import resolve_mentions
from commentgraph.models.youtube_models import CommentRecord, PaginationState, to_datasource
from commentgraph.utils.errors import (
    ConfigurationError,
    EmptyResultError,
    WarningsCollector,
    WARNING_TYPE_REPLIES_TRUNCATED,
    WARNING_TYPE_SHORT_PAGE,
)
from commentgraph.utils.logging_config import get_logger
from commentgraph.youtube import (
    REPLY_REQUEST_QUOTA_COST,
    THREAD_PAGE_QUOTA_COST,
    PageFetcher,
    reply_to_record,
    thread_to_record,
)

logger = get_logger(__name__)


@dataclass
class QuotaUsage:
    """Advisory count of API requests and estimated quota units.

    Nothing here throttles or stops collection; rate limits are enforced by
    the API (and any retry policy around the fetcher).
    """
    thread_pages: int = 0
    reply_requests: int = 0

    @property
    def requests(self) -> int:
        return self.thread_pages + self.reply_requests

    @property
    def units(self) -> int:
        return self.thread_pages * THREAD_PAGE_QUOTA_COST + self.reply_requests * REPLY_REQUEST_QUOTA_COST


def fetch_page(fetcher: PageFetcher, state: PaginationState, page_size: int) -> PaginationState:
    """Fetch the next page of comment threads and return the advanced state.

    TransportError from the fetcher propagates unchanged.
    """
    page = fetcher.fetch_threads(state.source_id, state.next_page_token, page_size)
    return state.advance(page.items, page.next_page_token)


def is_collection_complete(state: PaginationState, page_items: int, max_comments: int) -> bool:
    """Decide whether thread pagination for a video should stop.

    Collection stops once a page has been fetched and either the API reports
    no next page, the page came back empty, or more than max_comments items
    have been accumulated.
    """
    if state.page_count == 0:
        return False
    return not state.has_next_page or page_items == 0 or state.item_count > max_comments


def collect_threads(
    fetcher: PageFetcher,
    source_id: str,
    max_comments: int = config.DEFAULT_MAX_COMMENTS,
    page_size: int = config.PAGE_SIZE,
    quota: Optional[QuotaUsage] = None,
    warnings: Optional[WarningsCollector] = None,
    verbose: bool = False,
) -> PaginationState:
    """Paginate through the comment threads of one video.

    Args:
        fetcher: Page fetch collaborator
        source_id: Video id
        max_comments: Maximum number of top-level comments to keep
        page_size: Threads requested per page (1-100)
        quota: Optional usage counter updated per page
        warnings: Optional collector for short-page notices
        verbose: Log per-page progress at INFO instead of DEBUG

    Returns:
        PaginationState: Terminal state (done=True) whose accumulated items
            hold at most max_comments raw thread items in fetch order. A video
            with no comments yields an empty accumulation, not an error.

    Raises:
        TransportError: If any page fetch fails; nothing is returned for the video
    """
    progress = logger.info if verbose else logger.debug
    state = PaginationState(source_id=source_id)

    progress("threads_collection_started", video_id=source_id, page_size=page_size, max_comments=max_comments)

    while True:
        state = fetch_page(fetcher, state, page_size)
        page_items = len(state.pages[-1])

        if quota is not None:
            quota.thread_pages += 1

        progress(
            "threads_page_fetched",
            video_id=source_id,
            page=state.page_count,
            page_items=page_items,
            accumulated=state.item_count,
            has_next_page=state.has_next_page,
        )

        if warnings is not None and state.has_next_page and page_items < page_size:
            warnings.append(
                WARNING_TYPE_SHORT_PAGE,
                "API returned fewer threads than requested on a non-final page",
                {"video_id": source_id, "page": state.page_count, "page_items": page_items, "page_size": page_size},
            )

        if is_collection_complete(state, page_items, max_comments):
            break

    if state.item_count > max_comments:
        logger.info(
            "threads_truncated",
            video_id=source_id,
            fetched=state.item_count,
            max_comments=max_comments,
        )

    state = state.finish(max_comments)
    logger.info("threads_collected", video_id=source_id, pages=state.page_count, threads=state.item_count)
    return state


def fetch_replies(
    fetcher: PageFetcher,
    parent_ids: Sequence[str],
    source_id: str,
    quota: Optional[QuotaUsage] = None,
    warnings: Optional[WarningsCollector] = None,
    verbose: bool = False,
) -> List[CommentRecord]:
    """Fetch the replies of each parent comment, one request per parent.

    Each parent is queried independently and only the first page of its
    replies is collected; anything beyond that page is not collected (a
    replies_truncated warning is recorded). A parent whose replies have
    vanished since listing contributes no records.

    Returns:
        list[CommentRecord]: Reply records with parent_id set to the queried
            parent and reply_count 0, in parent order then API order.

    Raises:
        TransportError: If a reply request fails
    """
    progress = logger.info if verbose else logger.debug
    replies: List[CommentRecord] = []

    for parent_id in parent_ids:
        page = fetcher.fetch_replies(parent_id, config.MAX_PAGE_SIZE)
        if quota is not None:
            quota.reply_requests += 1

        progress("replies_fetched", video_id=source_id, parent_id=parent_id, replies=len(page.items))

        if page.next_page_token and warnings is not None:
            warnings.append(
                WARNING_TYPE_REPLIES_TRUNCATED,
                "Only the first page of replies was collected",
                {"video_id": source_id, "parent_id": parent_id, "collected": len(page.items)},
            )

        replies.extend(reply_to_record(item, source_id, parent_id) for item in page.items)

    return replies


def collect_video(
    fetcher: PageFetcher,
    source_id: str,
    max_comments: int = config.DEFAULT_MAX_COMMENTS,
    page_size: int = config.PAGE_SIZE,
    quota: Optional[QuotaUsage] = None,
    warnings: Optional[WarningsCollector] = None,
    verbose: bool = False,
) -> List[CommentRecord]:
    """Collect the top-level comments of one video followed by their replies."""
    state = collect_threads(
        fetcher, source_id, max_comments=max_comments, page_size=page_size,
        quota=quota, warnings=warnings, verbose=verbose,
    )
    threads = [thread_to_record(item, source_id) for item in state.accumulated]

    # Only comments the API reports as having replies are queried
    parent_ids = [t.comment_id for t in threads if t.reply_count > 0]
    logger.info("replies_collection_started", video_id=source_id, threads_with_replies=len(parent_ids))

    replies = fetch_replies(fetcher, parent_ids, source_id, quota=quota, warnings=warnings, verbose=verbose)

    logger.info(
        "video_collected",
        video_id=source_id,
        threads=len(threads),
        replies=len(replies),
        total_comments=len(threads) + len(replies),
    )
    return threads + replies


def validate_video_ids(video_ids) -> List[str]:
    """Return the distinct video ids in first-seen order.

    Repeated ids are dropped so no video is collected twice.

    Raises:
        ConfigurationError: If video_ids is not a non-empty sequence of ids
    """
    if isinstance(video_ids, str) or not isinstance(video_ids, Sequence) or len(video_ids) < 1:
        raise ConfigurationError("Please provide a sequence of one or more youtube video ids.")

    invalid = [v for v in video_ids if not isinstance(v, str) or not v.strip()]
    if invalid:
        raise ConfigurationError(f"Invalid youtube video id(s): {invalid!r}")

    stripped = [v.strip() for v in video_ids]
    distinct = list(dict.fromkeys(stripped))
    if len(distinct) < len(stripped):
        logger.warning(
            "duplicate_video_id",
            duplicates=sorted({v for v in stripped if stripped.count(v) > 1}),
            requested=len(stripped),
            collected=len(distinct),
        )
    return distinct


def collect_comments(
    fetcher: PageFetcher,
    video_ids: Sequence[str],
    max_comments: int = config.DEFAULT_MAX_COMMENTS,
    verbose: bool = False,
    page_size: int = config.PAGE_SIZE,
    sink: Optional[List[CommentRecord]] = None,
    warnings: Optional[WarningsCollector] = None,
) -> pd.DataFrame:
    """Collect, resolve and tabulate comments for one or more videos.

    Videos are processed sequentially in the given order. Records of each
    fully collected video are appended to sink (when given) before the next
    video starts, so a TransportError on a later video leaves the earlier
    videos' records in the caller's hands.

    Args:
        fetcher: Page fetch collaborator holding the API credentials
        video_ids: Ordered video ids
        max_comments: Top-level comments to keep per video (replies not counted)
        verbose: Log per-page and per-parent progress at INFO
        page_size: Threads requested per page (1-100)
        sink: Optional list receiving unresolved records per completed video
        warnings: Optional collector for informational anomalies

    Returns:
        pd.DataFrame: Datasource with one row per comment, attribution
            resolved, and attrs["type"] == ("datasource", "youtube")

    Raises:
        ConfigurationError: Invalid video ids or budget, before any request
        TransportError: A fetch failed; collection stops at the current video
        EmptyResultError: No comments were collected from any video
    """
    video_ids = validate_video_ids(video_ids)
    if isinstance(max_comments, bool) or not isinstance(max_comments, int) or max_comments < 0:
        raise ConfigurationError(f"max_comments must be a non-negative integer, got {max_comments!r}")
    if not 1 <= page_size <= config.MAX_PAGE_SIZE:
        raise ConfigurationError(f"page_size must be between 1 and {config.MAX_PAGE_SIZE}, got {page_size}")

    quota = QuotaUsage()
    collected: List[CommentRecord] = []

    for position, video_id in enumerate(video_ids, 1):
        logger.info("video_collection_started", video_id=video_id, position=position, total_videos=len(video_ids))
        records = collect_video(
            fetcher, video_id, max_comments=max_comments, page_size=page_size,
            quota=quota, warnings=warnings, verbose=verbose,
        )
        collected.extend(records)
        if sink is not None:
            sink.extend(records)

    logger.info(
        "collection_finished",
        videos=len(video_ids),
        total_comments=len(collected),
        requests=quota.requests,
        quota_units=quota.units,
    )

    if not collected:
        raise EmptyResultError(
            f"No comments could be collected from the given video ids: {', '.join(video_ids)}"
        )

    return to_datasource(resolve_mentions(collected, warnings=warnings))
