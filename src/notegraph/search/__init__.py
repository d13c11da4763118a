"""Relevance search over graph nodes."""

from notegraph.search.relevance import RelevanceSearch, SearchHit, rank_hits

__all__ = ["RelevanceSearch", "SearchHit", "rank_hits"]
