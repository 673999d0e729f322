"""Reply and mention attribution.

Decides, for every collected comment, which actor it is directed at:

1. Mention scan: if the comment text contains any known author's name as a
   literal substring, the comment is attributed to that author. When several
   names occur, the first one in known-author order wins (not the first in
   the text).
2. Fallback: a top-level comment without a mention is attributed to its
   video sink (VIDEO:<video id>); a reply without a mention is attributed to
   the author of its parent comment. A reply whose parent is not among the
   collected top-level comments stays FALSE.

Attribution is recomputed from text, author list and parent links only, so
resolving an already-resolved record set gives the same result.
"""

import re
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Pattern, Sequence

from commentgraph.models.youtube_models import FALSE, CommentRecord, video_sink
from commentgraph.utils.errors import WarningsCollector, WARNING_TYPE_ORPHAN_REPLY
from commentgraph.utils.logging_config import get_logger

logger = get_logger(__name__)


def known_authors(records: Iterable[CommentRecord]) -> List[str]:
    """Distinct non-empty author names in first-seen record order."""
    return list(dict.fromkeys(r.author for r in records if r.author))


def build_mention_pattern(usernames: Sequence[str]) -> Optional[Pattern]:
    """Compile one alternation matching any username literally.

    Every regex metacharacter in a name is escaped. Returns None when there
    are no usernames.
    """
    if not usernames:
        return None
    return re.compile("|".join(re.escape(name) for name in usernames))


def find_mention(text: str, pattern: Optional[Pattern], usernames: Sequence[str]) -> Optional[str]:
    """Return the first username (in usernames order) occurring in text, or None."""
    if pattern is None or not text or pattern.search(text) is None:
        return None
    for name in usernames:
        if name in text:
            return name
    return None


def resolve_mentions(
    records: Sequence[CommentRecord],
    warnings: Optional[WarningsCollector] = None,
) -> List[CommentRecord]:
    """Return a copy of records with attribution resolved.

    The author list and mention pattern are built once for the whole pass.
    Record order is preserved.
    """
    usernames = known_authors(records)
    pattern = build_mention_pattern(usernames)

    # First top-level comment wins when ids repeat
    parent_authors: Dict[str, str] = {}
    for record in records:
        if record.is_top_level:
            parent_authors.setdefault(record.comment_id, record.author)

    resolved = []
    mentions = 0
    orphans = 0
    for record in records:
        attribution = find_mention(record.text, pattern, usernames)
        if attribution is not None:
            mentions += 1
        elif record.is_top_level:
            attribution = video_sink(record.source_id)
        else:
            attribution = parent_authors.get(record.parent_id, FALSE)
            if attribution == FALSE:
                orphans += 1
                if warnings is not None:
                    warnings.append(
                        WARNING_TYPE_ORPHAN_REPLY,
                        "Reply parent is not among the collected top-level comments",
                        {"comment_id": record.comment_id, "parent_id": record.parent_id},
                    )
        resolved.append(replace(record, attribution=attribution))

    logger.info(
        "mentions_resolved",
        records=len(resolved),
        known_authors=len(usernames),
        mentions=mentions,
        orphan_replies=orphans,
    )
    return resolved
