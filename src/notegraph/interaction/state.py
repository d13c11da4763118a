"""Hover / selection / search state and the per-node, per-edge emphasis it implies.

The focal node is the selected node if any, else the hovered node. The focus
set is the focal node plus its one-edge neighbors: those stay fully opaque,
everything else is dimmed. Search highlights are a separate channel layered
on top and never change the focus set.

Ids that are not in the current graph are ignored, so events that race a
topology change are harmless.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from notegraph.models import Edge, EdgeOrigin, KnowledgeGraph

logger = logging.getLogger(__name__)

# Node styling
FULL_OPACITY = 1.0
DIMMED_OPACITY = 0.2
HOVER_SCALE = 1.2

# Edge styling
HIGHLIGHT_COLOR = "#00f0ff"
EDGE_STYLES: dict[EdgeOrigin, tuple[str, float, float]] = {
    # origin: (color, resting opacity, width)
    EdgeOrigin.AI: ("#a855f7", 0.6, 2.0),
    EdgeOrigin.TAG: ("#475569", 0.2, 1.0),
    EdgeOrigin.CLUSTER: ("#475569", 0.2, 1.0),
}
BACKGROUND_EDGE_FACTOR = 0.5  # Resting opacity multiplier for edges off the focal node


class InteractionMode(str, Enum):
    """Dominant interaction state, in precedence order."""

    SELECTED = "selected"
    HOVERING = "hovering"
    SEARCH_ACTIVE = "search_active"
    IDLE = "idle"


@dataclass(frozen=True)
class NodeEmphasis:
    """Visual emphasis for one node."""

    opacity: float
    ring: bool = False
    scale: float = 1.0
    search_highlight: float = 0.0  # 0 = not a match, 1 = best match
    search_rank: int | None = None

    def to_dict(self) -> dict:
        return {
            "opacity": self.opacity,
            "ring": self.ring,
            "scale": self.scale,
            "search_highlight": self.search_highlight,
            "search_rank": self.search_rank,
        }


@dataclass(frozen=True)
class EdgeEmphasis:
    """Visual emphasis for one edge."""

    opacity: float
    highlighted: bool
    color: str
    width: float

    def to_dict(self) -> dict:
        return {
            "opacity": self.opacity,
            "highlighted": self.highlighted,
            "color": self.color,
            "width": self.width,
        }


@dataclass
class Emphasis:
    """Emphasis for the whole graph at one instant."""

    mode: InteractionMode
    focal_id: str | None = None
    focus_ids: frozenset[str] = frozenset()
    nodes: dict[str, NodeEmphasis] = field(default_factory=dict)
    edges: dict[tuple[str, str], EdgeEmphasis] = field(default_factory=dict)


def rest_edge_emphasis(edge: Edge, dimmed: bool = False) -> EdgeEmphasis:
    """Origin-based styling; AI edges stay brighter than tag/cluster edges."""
    color, opacity, width = EDGE_STYLES[edge.origin]
    if dimmed:
        opacity *= BACKGROUND_EDGE_FACTOR
    return EdgeEmphasis(opacity=opacity, highlighted=False, color=color, width=width)


def search_highlight(rank: int, total: int) -> float:
    """Rank-proportional highlight: best match 1.0, last match 1/total."""
    return (total - rank) / total


class InteractionState:
    """
    Owns hover, selection, focus-mode and search-match state for one graph.

    Transitions:
    - pointer_enter(id): hover id
    - pointer_leave(): end hover; in focus mode the neighborhood stays emphasized
    - click(id): toggle selection of id
    - click_canvas(): clear selection (and any held focus)
    - apply_search(ids) / clear_search(): set / clear ranked search matches
    """

    def __init__(self, graph: KnowledgeGraph | None = None) -> None:
        self.graph = graph or KnowledgeGraph()
        self.hovered_id: str | None = None
        self.selected_id: str | None = None
        self.held_id: str | None = None  # Last hover kept by focus mode
        self.focus_mode = False
        self.search_ids: list[str] = []

    def set_graph(self, graph: KnowledgeGraph) -> None:
        """Swap in a rebuilt graph, forgetting ids that no longer exist."""
        self.graph = graph
        for attr in ("hovered_id", "selected_id", "held_id"):
            node_id = getattr(self, attr)
            if node_id is not None and not graph.has_node(node_id):
                logger.debug(f"Dropping stale {attr}={node_id} after rebuild")
                setattr(self, attr, None)
        self.search_ids = [i for i in self.search_ids if graph.has_node(i)]

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def pointer_enter(self, node_id: str) -> bool:
        if not self.graph.has_node(node_id):
            return False
        self.hovered_id = node_id
        self.held_id = None
        return True

    def pointer_leave(self, node_id: str | None = None) -> bool:
        if self.hovered_id is None or (node_id is not None and node_id != self.hovered_id):
            return False
        if self.focus_mode:
            self.held_id = self.hovered_id
        self.hovered_id = None
        return True

    def click(self, node_id: str) -> bool:
        if not self.graph.has_node(node_id):
            return False
        self.selected_id = None if self.selected_id == node_id else node_id
        return True

    def click_canvas(self) -> None:
        self.selected_id = None
        self.held_id = None

    def set_focus_mode(self, enabled: bool) -> None:
        self.focus_mode = enabled
        if not enabled:
            self.held_id = None

    def apply_search(self, ranked_ids: Sequence[str]) -> None:
        """Set search matches, best first. Selection and hover are untouched."""
        self.search_ids = [i for i in dict.fromkeys(ranked_ids) if self.graph.has_node(i)]

    def clear_search(self) -> None:
        self.search_ids = []

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def _valid(self, node_id: str | None) -> str | None:
        return node_id if self.graph.has_node(node_id) else None

    @property
    def focal_id(self) -> str | None:
        """Selection wins over hover; a focus-mode hold comes last."""
        # "" is a legal node id, so no truthiness tests
        for node_id in (self.selected_id, self.hovered_id, self.held_id):
            if self.graph.has_node(node_id):
                return node_id
        return None

    @property
    def mode(self) -> InteractionMode:
        if self._valid(self.selected_id) is not None:
            return InteractionMode.SELECTED
        if self.focal_id is not None:
            return InteractionMode.HOVERING
        if self.search_ids:
            return InteractionMode.SEARCH_ACTIVE
        return InteractionMode.IDLE

    def focus_set(self) -> frozenset[str]:
        focal = self.focal_id
        if focal is None:
            return frozenset()
        return frozenset({focal} | self.graph.neighbors(focal))

    def emphasis(self) -> Emphasis:
        """Compute emphasis for every node and edge of the current graph."""
        focal = self.focal_id
        focus = self.focus_set()
        hovered = self._valid(self.hovered_id)
        ranks = {node_id: rank for rank, node_id in enumerate(self.search_ids)}
        total = len(self.search_ids)

        nodes: dict[str, NodeEmphasis] = {}
        for node in self.graph.nodes:
            rank = ranks.get(node.id)
            nodes[node.id] = NodeEmphasis(
                opacity=FULL_OPACITY if focal is None or node.id in focus else DIMMED_OPACITY,
                ring=node.id == focal,
                scale=HOVER_SCALE if node.id == hovered else 1.0,
                search_highlight=search_highlight(rank, total) if rank is not None else 0.0,
                search_rank=rank,
            )

        edges: dict[tuple[str, str], EdgeEmphasis] = {}
        for edge in self.graph.edges:
            if focal is not None and edge.touches(focal):
                _, _, width = EDGE_STYLES[edge.origin]
                edges[edge.key] = EdgeEmphasis(
                    opacity=FULL_OPACITY, highlighted=True, color=HIGHLIGHT_COLOR, width=width
                )
            else:
                edges[edge.key] = rest_edge_emphasis(edge, dimmed=focal is not None)

        return Emphasis(mode=self.mode, focal_id=focal, focus_ids=focus, nodes=nodes, edges=edges)
