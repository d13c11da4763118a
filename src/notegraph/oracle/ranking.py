"""Ranking oracle: similarity-ranked note ids for a free-text query."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

import numpy as np

from notegraph.config import settings
from notegraph.models import Note
from notegraph.oracle.llm_client import LLMClient, get_llm_client
from notegraph.oracle.payloads import RankedNote

logger = logging.getLogger(__name__)


class RankingOracle(Protocol):
    """Ranks notes by semantic similarity to a query."""

    async def rank(self, query: str) -> list[RankedNote]:
        ...


def cosine_similarity_batch(
    query: Sequence[float],
    vectors: Sequence[Sequence[float]],
) -> list[float]:
    """Compute cosine similarity between query and multiple vectors.

    Zero vectors score 0.0 instead of dividing by zero.
    """
    if not len(vectors):
        return []
    q = np.asarray(query, dtype=float)
    v = np.asarray(vectors, dtype=float)
    q_norm = np.linalg.norm(q)
    v_norms = np.linalg.norm(v, axis=1)
    denom = v_norms * q_norm
    with np.errstate(divide="ignore", invalid="ignore"):
        similarities = np.where(denom > 0, v @ q / denom, 0.0)
    return similarities.tolist()


class EmbeddingRankingOracle:
    """Ranking oracle over hosted embeddings.

    Note embeddings are cached per note id together with the text they were
    computed from: an edit re-embeds that note, and ids that drop out of the
    provided notes are evicted.
    """

    def __init__(
        self,
        notes_provider: Callable[[], Awaitable[Sequence[Note]]],
        llm_client: LLMClient | None = None,
        match_threshold: float | None = None,
        match_count: int | None = None,
    ) -> None:
        self.notes_provider = notes_provider
        self.llm = llm_client or get_llm_client()
        self.match_threshold = (
            match_threshold if match_threshold is not None else settings.search_match_threshold
        )
        self.match_count = match_count or settings.search_match_count
        # note id -> (text the vector was computed from, vector)
        self._cache: dict[str, tuple[str, list[float]]] = {}

    def _is_cached(self, note: Note) -> bool:
        entry = self._cache.get(note.id)
        return entry is not None and entry[0] == note.text

    async def _note_embeddings(self, notes: Sequence[Note]) -> list[list[float]]:
        live = {n.id for n in notes}
        for note_id in [i for i in self._cache if i not in live]:
            del self._cache[note_id]

        missing = [n for n in notes if not self._is_cached(n)]
        if missing:
            vectors = await self.llm.embed_batch([n.text for n in missing])
            for note, vector in zip(missing, vectors):
                self._cache[note.id] = (note.text, vector)
            logger.debug(f"Embedded {len(missing)} notes ({len(self._cache)} cached)")
        return [self._cache[n.id][1] for n in notes]

    async def rank(self, query: str) -> list[RankedNote]:
        """Return notes above the match threshold, best first, at most match_count."""
        notes = list(await self.notes_provider())
        if not notes or not query.strip():
            return []

        query_vector = await self.llm.embed(query)
        scores = cosine_similarity_batch(query_vector, await self._note_embeddings(notes))

        ranked = sorted(
            (
                RankedNote(note_id=note.id, score=score)
                for note, score in zip(notes, scores)
                if score > self.match_threshold
            ),
            key=lambda r: r.score,
            reverse=True,
        )
        return ranked[: self.match_count]
