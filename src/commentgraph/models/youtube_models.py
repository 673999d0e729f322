"""YouTube data models for the comment graph collector.

This module defines the data structures that flow through the collection
pipeline (thread pagination, reply fetching, mention resolution) and into
the actor network builder.

Data Models:
    CommentRecord: 9 fields representing one harvested comment or reply
    PaginationState: immutable cursor threaded through each thread-page fetch

Records are built as an ordered list first and converted to the tabular
"datasource" form (a pandas DataFrame) exactly once, by to_datasource().
"""

from dataclasses import asdict, dataclass, field, fields, replace
from itertools import chain
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import pandas as pd


# Parent id of a top-level comment
NONE = "None"

# Attribution of a record with no resolved target yet
FALSE = "FALSE"

VIDEO_SINK_PREFIX = "VIDEO:"

PLATFORM = "youtube"
DATASOURCE_TYPE = ("datasource", PLATFORM)


def video_sink(source_id: str) -> str:
    """Return the synthetic actor id standing in for the video itself."""
    return f"{VIDEO_SINK_PREFIX}{source_id}"


@dataclass(frozen=True)
class CommentRecord:
    """One harvested unit of conversation (top-level comment or reply).

    Attributes:
        text: Comment text as displayed by the platform
        author: Display name of the comment author
        reply_count: Number of replies (always 0 for reply records)
        like_count: Number of likes
        publish_time: ISO 8601 publish timestamp string
        comment_id: Platform comment id, unique within a collection run
        parent_id: Id of the parent top-level comment, or NONE
        attribution: FALSE, a video sink id, or a resolved username
        source_id: Id of the video the record was collected from
    """
    text: str
    author: str
    reply_count: int
    like_count: int
    publish_time: str
    comment_id: str
    parent_id: str = NONE
    attribution: str = FALSE
    source_id: str = ""

    @property
    def is_top_level(self) -> bool:
        return self.parent_id == NONE


RECORD_COLUMNS = [f.name for f in fields(CommentRecord)]


@dataclass(frozen=True)
class PaginationState:
    """Cursor over the comment-thread pages of a single video.

    A fresh state is created per video and replaced (never mutated) by each
    page fetch. An empty next_page_token means either "no page fetched yet"
    (page_count == 0) or "no further pages" (page_count >= 1).

    Fetched items are kept page by page, so advancing only adds one page to
    the state; accumulated flattens them on demand.

    Attributes:
        source_id: Video id being paginated
        next_page_token: Token for the next page, empty when none
        page_count: Number of pages fetched so far
        pages: Raw thread items per fetched page, in fetch order
        done: True once collection for source_id has terminated
    """
    source_id: str
    next_page_token: str = ""
    page_count: int = 0
    pages: Tuple[Tuple[Dict[str, Any], ...], ...] = field(default_factory=tuple)
    done: bool = False

    @property
    def has_next_page(self) -> bool:
        return bool(self.next_page_token.strip())

    @property
    def item_count(self) -> int:
        return sum(len(page) for page in self.pages)

    @property
    def accumulated(self) -> Tuple[Dict[str, Any], ...]:
        """Raw thread items of all fetched pages in fetch order."""
        return tuple(chain.from_iterable(self.pages))

    def advance(self, items: Sequence[Dict[str, Any]], next_page_token: str) -> "PaginationState":
        """Return the state after one more page of items has been fetched."""
        return replace(
            self,
            next_page_token=(next_page_token or "").strip(),
            page_count=self.page_count + 1,
            pages=self.pages + (tuple(items),),
        )

    def finish(self, max_items: int) -> "PaginationState":
        """Return the terminal state, truncated to at most max_items items.

        The kept items are collapsed into a single page.
        """
        return replace(
            self,
            next_page_token="",
            pages=(self.accumulated[:max_items],),
            done=True,
        )


def to_datasource(records: Iterable[CommentRecord]) -> pd.DataFrame:
    """Convert ordered records into the tabular datasource form.

    The returned DataFrame has one row per record, columns in CommentRecord
    field order, and attrs["type"] == ("datasource", "youtube").
    """
    df = pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
    df.attrs["type"] = DATASOURCE_TYPE
    return df


def records_from_datasource(df: pd.DataFrame) -> List[CommentRecord]:
    """Rebuild CommentRecord objects from a datasource DataFrame.

    Raises:
        ValueError: If the DataFrame is missing any CommentRecord column
    """
    missing = [c for c in RECORD_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Datasource is missing column(s): {', '.join(missing)}")

    records = []
    for row in df[RECORD_COLUMNS].itertuples(index=False):
        values = row._asdict()
        values["reply_count"] = int(values["reply_count"])
        values["like_count"] = int(values["like_count"])
        records.append(CommentRecord(**values))
    return records
