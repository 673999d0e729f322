"""YouTube actor network construction.

Users who commented on a video and users who replied to those comments are
actor nodes; each comment is a directed edge from its author to the actor it
is attributed to, labelled with the comment id. The video itself appears as
the actor node VIDEO:<video id>, target of top-level comments that mention
nobody.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple, Union

import networkx as nx
import pandas as pd

from commentgraph.models.youtube_models import (
    FALSE,
    PLATFORM,
    CommentRecord,
    records_from_datasource,
    video_sink,
)
from commentgraph.utils.errors import GraphConstructionError
from commentgraph.utils.logging_config import get_logger

logger = get_logger(__name__)

NETWORK_TYPE = ("network", "actor", PLATFORM)


@dataclass
class ActorNetwork:
    """Directed multigraph of actors with comment-labelled edges.

    Attributes:
        graph: networkx MultiDiGraph; nodes carry "label", edges "comment_id",
            and graph.graph["type"] is the platform name
        type_tags: ("network", "actor", "youtube")
    """
    graph: nx.MultiDiGraph
    type_tags: Tuple[str, ...] = NETWORK_TYPE

    @property
    def nodes(self) -> List[Tuple[str, str]]:
        """(actor id, label) pairs in insertion order."""
        return [(node, data["label"]) for node, data in self.graph.nodes(data=True)]

    @property
    def edges(self) -> List[Tuple[str, str, str]]:
        """(from actor, to actor, comment id) triples.

        Edges are grouped by source actor (networkx adjacency order), not
        listed in record order. Match edges to records by comment id, never
        by position in this list.
        """
        return [(u, v, data["comment_id"]) for u, v, data in self.graph.edges(data=True)]


def create_actor_network(datasource: Union[pd.DataFrame, Sequence[CommentRecord]]) -> ActorNetwork:
    """Build the actor network from collected comments.

    Top-level comments still unattributed are directed at their video sink.
    Every record contributes exactly one edge, self-loops included.

    Args:
        datasource: Resolved records, or a datasource DataFrame

    Returns:
        ActorNetwork: the directed multigraph and its type tags

    Raises:
        GraphConstructionError: If there are no comments in the data
    """
    if isinstance(datasource, pd.DataFrame):
        records = records_from_datasource(datasource)
    else:
        records = list(datasource)

    if not records:
        raise GraphConstructionError(
            "There are no user comments in the data. "
            "Please check that the videos selected for collection have comments."
        )

    relations = []
    for record in records:
        target = record.attribution
        if target == FALSE and record.is_top_level:
            target = video_sink(record.source_id)
        relations.append((record.author, target, record.comment_id))

    actors = list(dict.fromkeys(
        [author for author, _, _ in relations] + [target for _, target, _ in relations]
    ))

    graph = nx.MultiDiGraph(type=PLATFORM)
    graph.add_nodes_from((actor, {"label": actor}) for actor in actors)
    for author, target, comment_id in relations:
        graph.add_edge(author, target, comment_id=comment_id)

    logger.info(
        "actor_network_created",
        nodes=graph.number_of_nodes(),
        edges=graph.number_of_edges(),
    )
    return ActorNetwork(graph=graph)
