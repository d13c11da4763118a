"""Derived graph models: nodes, deduplicated edges and clusters."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class EdgeOrigin(str, Enum):
    """Source/provenance of an edge, in precedence order."""

    AI = "ai"  # Inferred by the connection oracle
    TAG = "tag"  # Notes share at least one tag
    CLUSTER = "cluster"  # Notes share an oracle cluster


def pair_key(a: str, b: str) -> tuple[str, str]:
    """Canonical key for an unordered pair of node ids."""
    return (a, b) if a <= b else (b, a)


@dataclass(frozen=True)
class Node:
    """A graph vertex representing one note."""

    id: str
    text: str
    tags: tuple[str, ...]
    created_at: datetime
    visual_size: float
    label: str
    cluster_id: int | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "text": self.text,
            "tags": list(self.tags),
            "created_at": self.created_at.isoformat(),
            "size": self.visual_size,
            "label": self.label,
            "cluster_id": self.cluster_id,
        }


@dataclass(frozen=True)
class Edge:
    """A weighted relation between two nodes. At most one per unordered pair."""

    source_id: str
    target_id: str
    weight: float
    label: str
    origin: EdgeOrigin

    @property
    def key(self) -> tuple[str, str]:
        return pair_key(self.source_id, self.target_id)

    @property
    def is_ai(self) -> bool:
        return self.origin is EdgeOrigin.AI

    def touches(self, node_id: str) -> bool:
        """Check whether the edge has node_id as an endpoint."""
        return node_id == self.source_id or node_id == self.target_id

    def other(self, node_id: str) -> str:
        """Return the endpoint opposite to node_id."""
        return self.target_id if node_id == self.source_id else self.source_id

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "source": self.source_id,
            "target": self.target_id,
            "weight": self.weight,
            "label": self.label,
            "origin": self.origin.value,
        }


@dataclass(frozen=True)
class Cluster:
    """A thematic group of notes labeled by the connection oracle."""

    label: str
    insight: str
    member_ids: frozenset[str] = frozenset()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.member_ids

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "label": self.label,
            "insight": self.insight,
            "member_ids": sorted(self.member_ids),
            "size": len(self.member_ids),
        }


@dataclass
class KnowledgeGraph:
    """Canonical node/edge/cluster snapshot produced by the graph builder.

    Rebuilt from scratch whenever the inputs change; never patched.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    clusters: list[Cluster] = field(default_factory=list)

    _nodes_by_id: dict[str, Node] = field(init=False, repr=False)
    _adjacency: dict[str, set[str]] = field(init=False, repr=False)
    _edges_by_key: dict[tuple[str, str], Edge] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._nodes_by_id = {n.id: n for n in self.nodes}
        self._adjacency = {n.id: set() for n in self.nodes}
        self._edges_by_key = {}
        for edge in self.edges:
            self._edges_by_key[edge.key] = edge
            self._adjacency[edge.source_id].add(edge.target_id)
            self._adjacency[edge.target_id].add(edge.source_id)

    @property
    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def has_node(self, node_id: str | None) -> bool:
        return node_id is not None and node_id in self._nodes_by_id

    def get_node(self, node_id: str) -> Node | None:
        return self._nodes_by_id.get(node_id)

    def neighbors(self, node_id: str) -> set[str]:
        """Ids reachable from node_id via exactly one edge."""
        return set(self._adjacency.get(node_id, ()))

    def edge_between(self, a: str, b: str) -> Edge | None:
        return self._edges_by_key.get(pair_key(a, b))

    def edges_touching(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.touches(node_id)]

    def degree(self, node_id: str) -> int:
        return len(self._adjacency.get(node_id, ()))

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "clusters": [c.to_dict() for c in self.clusters],
        }
