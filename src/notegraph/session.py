"""Graph session: one viewer's knowledge graph from note fetch to emphasis.

Data flow:
    NoteStore -> build_graph (+ ConnectionOracle) -> ForceSimulation
              -> InteractionState <- RelevanceSearch (+ RankingOracle)

The session is the fault boundary for oracle calls: failures are logged and
recorded per feature, and the graph keeps rendering what it already has.
Every note/filter change starts a new snapshot; oracle results issued for an
older snapshot, or superseded by a newer request of the same kind, are
discarded on arrival.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from notegraph.config import Settings, settings as default_settings
from notegraph.graph.builder import build_graph
from notegraph.graph.colors import ColorRegistry
from notegraph.graph.config import GraphBuildConfig, LayoutConfig
from notegraph.interaction.state import Emphasis, InteractionState
from notegraph.layout.loop import LayoutLoop
from notegraph.layout.simulation import ForceSimulation
from notegraph.models import Edge, KnowledgeGraph, Note
from notegraph.notes.store import NoteStore, dedupe_notes
from notegraph.oracle.connections import ConnectionOracle
from notegraph.oracle.payloads import ClusterAssignment, ConnectionHint
from notegraph.oracle.ranking import RankingOracle
from notegraph.search.relevance import RelevanceSearch, SearchHit

logger = logging.getLogger(__name__)

SYNTHESIS_OVERVIEW_CONNECTIONS = 5


class GraphStatus(str, Enum):
    """What the view should present."""

    EMPTY = "empty"  # No notes at all
    NOT_ENOUGH_DATA = "not_enough_data"  # Too few notes to connect anything
    READY = "ready"


class AnalysisStatus(str, Enum):
    """Outcome of a connection analysis request."""

    APPLIED = "applied"
    NOT_ENOUGH_DATA = "not_enough_data"
    STALE = "stale"  # Superseded or snapshot changed; result discarded
    FAILED = "failed"  # Oracle unavailable; previous connections kept


@dataclass
class Synthesis:
    """Clusters and AI connections relevant to the current selection."""

    selected_id: str | None
    clusters: list[dict]
    connections: list[dict]


class GraphSession:
    """Owns the graph, layout, interaction and search state for one viewer."""

    def __init__(
        self,
        note_store: NoteStore,
        connection_oracle: ConnectionOracle,
        ranking_oracle: RankingOracle,
        settings: Settings | None = None,
        simulation: ForceSimulation | None = None,
        colors: ColorRegistry | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.note_store = note_store
        self.connection_oracle = connection_oracle
        self.build_config = GraphBuildConfig.from_settings(self.settings)

        self.notes: list[Note] = []
        self.tag_filter: str | None = None
        self.connections: list[ConnectionHint] = []
        self.clusters: list[ClusterAssignment] = []
        self.graph = KnowledgeGraph()

        self.simulation = simulation or ForceSimulation(LayoutConfig.from_settings(self.settings))
        self.layout_loop = LayoutLoop(self.simulation, self.settings.tick_interval)
        self.interaction = InteractionState(self.graph)
        self.colors = colors or ColorRegistry()
        self.search_view = RelevanceSearch(
            ranking_oracle,
            is_present=self._has_node,
            debounce=self.settings.search_debounce,
        )

        self.load_error: str | None = None
        self.analysis_error: str | None = None
        self.closed = False

        self._snapshot = 0
        self._analysis_seq = 0
        self._analyses_in_flight = 0
        self._load_seq = 0

    def _has_node(self, node_id: str) -> bool:
        return self.graph.has_node(node_id)

    # ------------------------------------------------------------------
    # Snapshot lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the layout loop (inside a running event loop)."""
        self.closed = False
        self.layout_loop.start()

    async def close(self) -> None:
        """Stop the layout and discard every outstanding oracle request."""
        self.closed = True
        self._snapshot += 1
        self.search_view.clear()
        self.interaction.clear_search()
        await self.layout_loop.stop()
        logger.info("Graph session closed")

    async def load(self, tag_filter: str | None = None) -> bool:
        """Fetch a fresh note snapshot and rebuild.

        A failed fetch keeps the current snapshot and records `load_error`.
        A fetch that lands after a newer load, a filter change or close()
        is discarded.
        """
        self._load_seq += 1
        token = (self._load_seq, self._snapshot)
        try:
            notes = await self.note_store.fetch_recent(self.settings.note_fetch_limit)
        except Exception as e:
            if token == (self._load_seq, self._snapshot) and not self.closed:
                self.load_error = f"Notes temporarily unavailable: {e}"
            logger.error(f"Note fetch failed: {e}")
            return False

        if self.closed or token != (self._load_seq, self._snapshot):
            logger.debug(f"Discarding stale note fetch (request {token[0]}, snapshot {token[1]})")
            return False

        self.notes = dedupe_notes(notes)
        self.tag_filter = tag_filter or None
        self.load_error = None
        logger.info(f"Loaded {len(self.notes)} notes (tag filter: {self.tag_filter or 'none'})")
        self._new_snapshot()
        return True

    def set_tag_filter(self, tag: str | None) -> None:
        """Restrict the graph to notes carrying `tag` (None shows all)."""
        self.tag_filter = tag or None
        self._new_snapshot()

    def _new_snapshot(self) -> None:
        self._snapshot += 1
        self.search_view.invalidate()
        self._rebuild()

    def _rebuild(self) -> None:
        self.graph = build_graph(
            self.notes,
            self.connections,
            self.clusters,
            tag_filter=self.tag_filter,
            config=self.build_config,
        )
        self.simulation.set_graph(self.graph)
        self.interaction.set_graph(self.graph)
        hits = self.search_view.remap()
        self.interaction.apply_search([h.node_id for h in hits])

    @property
    def all_tags(self) -> list[str]:
        """Every tag in the snapshot, first-seen order (tag-filter choices)."""
        tags: dict[str, None] = {}
        for note in self.notes:
            for tag in note.tags:
                tags.setdefault(tag, None)
        return list(tags)

    @property
    def visible_notes(self) -> list[Note]:
        if not self.tag_filter:
            return list(self.notes)
        return [n for n in self.notes if n.has_tag(self.tag_filter)]

    @property
    def status(self) -> GraphStatus:
        if not self.graph.nodes:
            return GraphStatus.EMPTY
        if len(self.graph.nodes) < self.settings.min_notes_for_analysis:
            return GraphStatus.NOT_ENOUGH_DATA
        return GraphStatus.READY

    # ------------------------------------------------------------------
    # Oracles
    # ------------------------------------------------------------------

    @property
    def analyzing(self) -> bool:
        return self._analyses_in_flight > 0

    async def analyze(self) -> AnalysisStatus:
        """Ask the connection oracle about the visible notes and rebuild with its answer."""
        notes = self.visible_notes
        if len(notes) < self.settings.min_notes_for_analysis:
            return AnalysisStatus.NOT_ENOUGH_DATA

        self._analysis_seq += 1
        token = (self._analysis_seq, self._snapshot)
        self._analyses_in_flight += 1
        try:
            analysis = await self.connection_oracle.analyze(notes)
        except Exception as e:
            if token == (self._analysis_seq, self._snapshot) and not self.closed:
                self.analysis_error = f"Connection analysis temporarily unavailable: {e}"
            logger.warning(f"Connection oracle failed: {e}")
            return AnalysisStatus.FAILED
        finally:
            self._analyses_in_flight -= 1

        if self.closed or token != (self._analysis_seq, self._snapshot):
            logger.debug(f"Discarding stale connection analysis (request {token[0]}, snapshot {token[1]})")
            return AnalysisStatus.STALE

        self.connections = list(analysis.connections)
        self.clusters = list(analysis.clusters)
        self.analysis_error = None
        self._rebuild()
        return AnalysisStatus.APPLIED

    async def search(self, query: str) -> list[SearchHit] | None:
        """Run a relevance search and feed the hits into the emphasis channel."""
        if self.closed:
            return None
        hits = await self.search_view.search(query)
        if hits is not None:
            self.interaction.apply_search([h.node_id for h in hits])
        return hits

    def clear_search(self) -> None:
        self.search_view.clear()
        self.interaction.clear_search()

    # ------------------------------------------------------------------
    # Interaction
    # ------------------------------------------------------------------

    def hover(self, node_id: str) -> bool:
        return self.interaction.pointer_enter(node_id)

    def leave(self, node_id: str | None = None) -> bool:
        return self.interaction.pointer_leave(node_id)

    def click(self, node_id: str | None) -> bool:
        """Click a node (toggles selection) or, with None, the empty canvas."""
        if node_id is None:
            self.interaction.click_canvas()
            return True
        return self.interaction.click(node_id)

    def set_focus_mode(self, enabled: bool) -> None:
        self.interaction.set_focus_mode(enabled)

    def emphasis(self) -> Emphasis:
        return self.interaction.emphasis()

    # ------------------------------------------------------------------
    # View models
    # ------------------------------------------------------------------

    def ai_edges(self) -> list[Edge]:
        return [e for e in self.graph.edges if e.is_ai]

    def synthesis(self) -> Synthesis:
        """Clusters and AI connections for the selection, or an overview without one."""
        selected = self.interaction.selected_id if self.graph.has_node(
            self.interaction.selected_id
        ) else None

        clusters = [
            {**c.to_dict(), "cluster_id": i, "color": self.colors.color_for(f"cluster-{i}")}
            for i, c in enumerate(self.graph.clusters)
            if selected is None or selected in c
        ]
        if selected is None:
            edges = self.ai_edges()[:SYNTHESIS_OVERVIEW_CONNECTIONS]
        else:
            edges = [e for e in self.graph.edges_touching(selected) if e.is_ai]

        return Synthesis(
            selected_id=selected,
            clusters=clusters,
            connections=[{**e.to_dict(), "reason": e.label} for e in edges],
        )

    def stats(self) -> dict[str, Any]:
        return {
            "nodes": len(self.graph.nodes),
            "edges": len(self.graph.edges),
            "synapses": len(self.ai_edges()),
            "clusters": len(self.graph.clusters),
            "analyzing": self.analyzing,
            "searching": self.search_view.in_flight,
        }

    def view(self) -> dict[str, Any]:
        """Everything a renderer needs for the current frame."""
        emphasis = self.emphasis()
        positions = self.simulation.positions()

        nodes = []
        for node in self.graph.nodes:
            x, y = positions.get(node.id, self.simulation.center)
            nodes.append({
                **node.to_dict(),
                "color": self.colors.node_color(node),
                "degree": self.graph.degree(node.id),
                "x": x,
                "y": y,
                "pinned": self.simulation.is_pinned(node.id),
                "emphasis": emphasis.nodes[node.id].to_dict(),
            })

        edges = [
            {**edge.to_dict(), "emphasis": emphasis.edges[edge.key].to_dict()}
            for edge in self.graph.edges
        ]

        return {
            "status": self.status.value,
            "stats": self.stats(),
            "tags": self.all_tags,
            "tag_filter": self.tag_filter,
            "mode": emphasis.mode.value,
            "focal_id": emphasis.focal_id,
            "selected_id": self.interaction.selected_id,
            "focus_mode": self.interaction.focus_mode,
            "nodes": nodes,
            "edges": edges,
            "clusters": [c.to_dict() for c in self.graph.clusters],
            "search": {
                "query": self.search_view.query,
                "hits": [h.to_dict() for h in self.search_view.results],
                "error": self.search_view.error,
            },
            "errors": {
                "load": self.load_error,
                "analysis": self.analysis_error,
            },
        }
