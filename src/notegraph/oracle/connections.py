"""Connection oracle: semantic connections and thematic clusters between notes.

The hosted model sees short indexed excerpts (`[0] ...`, `[1] ...`) rather
than note ids, and answers by index. Indices are mapped back to ids here;
out-of-range indices are dropped.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from notegraph.config import settings
from notegraph.models import Note
from notegraph.oracle.llm_client import LLMClient, get_llm_client
from notegraph.oracle.payloads import ConnectionAnalysis, parse_connection_analysis

logger = logging.getLogger(__name__)


class ConnectionOracle(Protocol):
    """Finds pairwise connections and clusters among a set of notes."""

    async def analyze(self, notes: Sequence[Note]) -> ConnectionAnalysis:
        ...


CONNECTION_SYSTEM_PROMPT = """You are a Neural Knowledge Engine. Analyze these learning notes to find semantic connections and thematic clusters.
Return valid JSON with:
1. "connections": Array of { "from": index, "to": index, "reason": "brief explanation", "strength": 1-10 }
2. "clusters": Array of { "label": "Topic Name", "nodes": [indices], "insight": "Key insight from this group" }

Rules:
- Connect notes with shared concepts even if they have different tags.
- Strength 10 = direct dependency or identical concept.
- Create 3-5 broad clusters.
- Return RAW JSON only."""


def format_excerpts(notes: Sequence[Note], max_chars: int) -> str:
    """Render notes as indexed excerpts for the prompt."""
    return "\n\n".join(f"[{i}] {note.text[:max_chars]}" for i, note in enumerate(notes))


def _index_to_id(notes: Sequence[Note], index: Any) -> str | None:
    """Map a model-supplied index to a note id; None when it does not resolve."""
    if isinstance(index, bool):
        return None
    try:
        i = int(index)
    except (TypeError, ValueError):
        return None
    if 0 <= i < len(notes):
        return notes[i].id
    return None


def map_indexed_reply(notes: Sequence[Note], reply: Any) -> dict[str, list]:
    """Translate an index-based model reply into the id-based oracle payload."""
    if not isinstance(reply, dict):
        return {"connections": [], "clusters": []}

    connections = []
    for conn in reply.get("connections") or []:
        if not isinstance(conn, dict):
            continue
        source_id = _index_to_id(notes, conn.get("from"))
        target_id = _index_to_id(notes, conn.get("to"))
        if source_id is None or target_id is None:
            continue
        entry = {"sourceId": source_id, "targetId": target_id, "reason": conn.get("reason")}
        if conn.get("strength") is not None:
            entry["strength"] = conn["strength"]
        connections.append(entry)

    clusters = []
    for cluster in reply.get("clusters") or []:
        if not isinstance(cluster, dict):
            continue
        members = [_index_to_id(notes, idx) for idx in cluster.get("nodes") or []]
        clusters.append({
            "label": cluster.get("label"),
            "insight": cluster.get("insight"),
            "memberIds": [m for m in members if m is not None],
        })

    return {"connections": connections, "clusters": clusters}


class LLMConnectionOracle:
    """Connection oracle backed by a hosted chat model."""

    def __init__(
        self,
        llm_client: LLMClient | None = None,
        max_notes: int | None = None,
        excerpt_chars: int | None = None,
        min_notes: int | None = None,
    ) -> None:
        self.llm = llm_client or get_llm_client()
        self.max_notes = max_notes or settings.oracle_note_limit
        self.excerpt_chars = excerpt_chars or settings.oracle_excerpt_chars
        self.min_notes = min_notes or settings.min_notes_for_analysis

    async def analyze(self, notes: Sequence[Note]) -> ConnectionAnalysis:
        """Ask the model for connections and clusters among `notes`.

        Fewer than `min_notes` notes returns an empty analysis without a call.
        Transport and parse failures propagate to the caller.
        """
        batch = list(notes)[: self.max_notes]
        if len(batch) < self.min_notes:
            logger.info(f"Skipping connection analysis: {len(batch)} note(s), need {self.min_notes}")
            return ConnectionAnalysis()

        reply = await self.llm.generate_json(
            prompt=format_excerpts(batch, self.excerpt_chars),
            system_prompt=CONNECTION_SYSTEM_PROMPT,
        )

        analysis = parse_connection_analysis(map_indexed_reply(batch, reply))
        logger.info(
            f"Connection analysis over {len(batch)} notes: "
            f"{len(analysis.connections)} connections, {len(analysis.clusters)} clusters"
        )
        return analysis
