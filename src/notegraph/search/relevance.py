"""Similarity-ranked search over the current graph.

Scoring is delegated to the ranking oracle. This layer:
- debounces and ignores blank queries
- applies only the most recently issued query's result (last-wins)
- keeps only ids present in the graph when the result lands
- orders hits by descending score
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from notegraph.config import settings
from notegraph.oracle.payloads import RankedNote
from notegraph.oracle.ranking import RankingOracle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchHit:
    """A graph node matched by a query."""

    node_id: str
    score: float
    rank: int  # 0 = best

    def to_dict(self) -> dict:
        return {"node_id": self.node_id, "score": self.score, "rank": self.rank}


def rank_hits(ranked: Iterable[RankedNote], is_present: Callable[[str], bool]) -> list[SearchHit]:
    """Drop absent/duplicate ids and order by score, best first.

    Ties keep the oracle's order; a repeated id keeps its best score.
    """
    best: dict[str, float] = {}
    for item in ranked:
        if not is_present(item.note_id):
            continue
        if item.note_id not in best or item.score > best[item.note_id]:
            best[item.note_id] = item.score

    ordered = sorted(best.items(), key=lambda kv: kv[1], reverse=True)
    return [SearchHit(node_id=node_id, score=score, rank=i) for i, (node_id, score) in enumerate(ordered)]


class RelevanceSearch:
    """Last-wins search front-end for a ranking oracle."""

    def __init__(
        self,
        oracle: RankingOracle,
        is_present: Callable[[str], bool] | None = None,
        debounce: float | None = None,
    ) -> None:
        self.oracle = oracle
        self.is_present = is_present or (lambda node_id: True)
        self.debounce = debounce if debounce is not None else settings.search_debounce

        self.query: str | None = None
        self.results: list[SearchHit] = []
        self.error: str | None = None

        self._generation = 0
        self._in_flight = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight > 0

    @property
    def active(self) -> bool:
        return bool(self.results)

    def invalidate(self) -> None:
        """Make every outstanding query stale without touching current results."""
        self._generation += 1

    def clear(self) -> None:
        """Drop results and discard anything still in flight."""
        self.invalidate()
        self.query = None
        self.results = []
        self.error = None

    def remap(self) -> list[SearchHit]:
        """Re-filter current results against the graph after a rebuild."""
        self.results = rank_hits(
            (RankedNote(note_id=h.node_id, score=h.score) for h in self.results),
            self.is_present,
        )
        return self.results

    async def search(self, query: str) -> list[SearchHit] | None:
        """Run a query.

        Returns the applied hits, or None when nothing was applied: blank
        query, superseded by a newer query, or oracle failure (recorded in
        `error`, previous results kept).
        """
        query = (query or "").strip()
        if not query:
            return None

        self._generation += 1
        generation = self._generation
        self._in_flight += 1
        try:
            if self.debounce > 0:
                await asyncio.sleep(self.debounce)
                if generation != self._generation:
                    logger.debug(f"Query {query!r} superseded before sending")
                    return None

            try:
                ranked = await self.oracle.rank(query)
            except Exception as e:
                if generation == self._generation:
                    self.error = f"Search temporarily unavailable: {e}"
                    logger.warning(f"Ranking oracle failed for {query!r}: {e}")
                return None

            if generation != self._generation:
                logger.debug(f"Discarding stale result for {query!r}")
                return None

            self.query = query
            self.results = rank_hits(ranked, self.is_present)
            self.error = None
            logger.info(f"Search {query!r}: {len(self.results)} hit(s) of {len(ranked)} ranked")
            return self.results
        finally:
            self._in_flight -= 1
