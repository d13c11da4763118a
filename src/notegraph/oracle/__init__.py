"""External oracles: connection discovery, clustering and similarity ranking.

Everything here is treated by the graph as an opaque, asynchronous,
possibly failing service.
"""

from notegraph.oracle.connections import ConnectionOracle, LLMConnectionOracle
from notegraph.oracle.llm_client import LLMClient, close_llm_client, get_llm_client
from notegraph.oracle.payloads import (
    ClusterAssignment,
    ConnectionAnalysis,
    ConnectionHint,
    RankedNote,
    parse_connection_analysis,
    parse_ranking,
)
from notegraph.oracle.ranking import EmbeddingRankingOracle, RankingOracle

__all__ = [
    # Clients
    "LLMClient",
    "get_llm_client",
    "close_llm_client",
    # Oracles
    "ConnectionOracle",
    "LLMConnectionOracle",
    "RankingOracle",
    "EmbeddingRankingOracle",
    # Payloads
    "ConnectionHint",
    "ClusterAssignment",
    "ConnectionAnalysis",
    "RankedNote",
    "parse_connection_analysis",
    "parse_ranking",
]
