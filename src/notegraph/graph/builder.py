"""Graph builder: notes + oracle hints -> canonical deduplicated graph.

Edges come from three sources, inserted in precedence order:
1. AI connections (weight = strength / 10), never overwritten
2. Shared tags (weight = tag_edge_weight x shared count)
3. Shared cluster (weight = cluster_edge_weight)

A pair that already has an edge is skipped by every later source, so the
result holds at most one edge per unordered pair.

Pair enumeration is O(n^2). The note fetch cap (tens to ~100 notes) bounds n;
callers must not feed unbounded note sets.
"""

import logging
from collections.abc import Iterable, Sequence

from notegraph.graph.config import GraphBuildConfig
from notegraph.models import Cluster, Edge, EdgeOrigin, KnowledgeGraph, Node, Note, pair_key
from notegraph.notes.store import dedupe_notes
from notegraph.oracle.payloads import ClusterAssignment, ConnectionHint

logger = logging.getLogger(__name__)

SAME_CLUSTER_LABEL = "Same Cluster"


def visual_size(note: Note, config: GraphBuildConfig) -> float:
    """Node radius: grows with tag count and text length, capped at node_max_size."""
    size = (
        config.node_base_size
        + config.node_size_per_tag * len(note.tags)
        + len(note.text) / config.node_chars_per_size
    )
    return min(config.node_max_size, size)


def node_label(text: str, max_chars: int) -> str:
    """Short on-canvas label."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def assign_cluster(note_id: str, clusters: Sequence[ClusterAssignment]) -> int | None:
    """Index of the first cluster (oracle response order) listing note_id."""
    for index, cluster in enumerate(clusters):
        if note_id in cluster.member_ids:
            return index
    return None


def build_graph(
    notes: Iterable[Note],
    ai_connections: Sequence[ConnectionHint] = (),
    clusters: Sequence[ClusterAssignment] = (),
    tag_filter: str | None = None,
    config: GraphBuildConfig | None = None,
) -> KnowledgeGraph:
    """Build the graph for one note snapshot.

    Pure function of its inputs. Connections or cluster members that point
    at notes outside the (filtered) snapshot are dropped silently.

    Args:
        notes: Note snapshot; repeated ids keep their first occurrence
        ai_connections: Connection oracle hints
        clusters: Connection oracle clusters, in response order
        tag_filter: Keep only notes carrying this tag
        config: Builder tunables

    Returns:
        KnowledgeGraph with nodes in note order and at most one edge per pair
    """
    config = config or GraphBuildConfig()

    selected = dedupe_notes(notes)
    if tag_filter:
        selected = [n for n in selected if n.has_tag(tag_filter)]

    nodes = [
        Node(
            id=note.id,
            text=note.text,
            tags=note.tags,
            created_at=note.created_at,
            visual_size=visual_size(note, config),
            label=node_label(note.text, config.label_max_chars),
            cluster_id=assign_cluster(note.id, clusters),
        )
        for note in selected
    ]
    present = {n.id for n in nodes}

    edges: dict[tuple[str, str], Edge] = {}

    # 1. AI connections
    dropped = 0
    for hint in ai_connections:
        if hint.source_id not in present or hint.target_id not in present:
            dropped += 1
            continue
        if hint.source_id == hint.target_id:
            dropped += 1
            continue
        key = pair_key(hint.source_id, hint.target_id)
        if key in edges:
            continue
        edges[key] = Edge(
            source_id=hint.source_id,
            target_id=hint.target_id,
            weight=hint.strength / 10,
            label=hint.reason,
            origin=EdgeOrigin.AI,
        )
    if dropped:
        logger.debug(f"Dropped {dropped} AI connection(s) outside the current snapshot")

    # 2-3. Tag overlap, then shared cluster, for pairs still unconnected
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            key = pair_key(a.id, b.id)
            if key in edges:
                continue

            shared = [t for t in a.tags if t in b.tags]
            if shared:
                edges[key] = Edge(
                    source_id=a.id,
                    target_id=b.id,
                    weight=config.tag_edge_weight * len(shared),
                    label=f"Shared: #{shared[0]}",
                    origin=EdgeOrigin.TAG,
                )
            elif a.cluster_id is not None and a.cluster_id == b.cluster_id:
                edges[key] = Edge(
                    source_id=a.id,
                    target_id=b.id,
                    weight=config.cluster_edge_weight,
                    label=SAME_CLUSTER_LABEL,
                    origin=EdgeOrigin.CLUSTER,
                )

    graph_clusters = [
        Cluster(
            label=c.label,
            insight=c.insight,
            member_ids=frozenset(m for m in c.member_ids if m in present),
        )
        for c in clusters
    ]

    logger.debug(
        f"Built graph: {len(nodes)} nodes, {len(edges)} edges, "
        f"{len(graph_clusters)} clusters (tag filter: {tag_filter or 'none'})"
    )
    return KnowledgeGraph(nodes=nodes, edges=list(edges.values()), clusters=graph_clusters)
