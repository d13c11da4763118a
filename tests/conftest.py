"""Pytest configuration and fixtures."""

import hashlib
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from notegraph.config import Settings, get_test_settings
from notegraph.graph.config import LayoutConfig
from notegraph.layout.simulation import ForceSimulation
from notegraph.models import Note
from notegraph.notes.store import InMemoryNoteStore
from notegraph.oracle.connections import LLMConnectionOracle
from notegraph.oracle.llm_client import LLMClient
from notegraph.oracle.payloads import ConnectionAnalysis, ConnectionHint
from notegraph.oracle.ranking import EmbeddingRankingOracle
from notegraph.session import GraphSession

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings: no debounce, no tick delay, one LLM slot."""
    return get_test_settings()


@pytest.fixture
def sample_notes() -> list[Note]:
    """A and B tagged ml, C tagged design; A is the newest."""
    return [
        Note(id="A", text="Embeddings map text to vectors", created_at=BASE_TIME, tags=("ml",)),
        Note(
            id="B",
            text="Vector search ranks by cosine similarity",
            created_at=BASE_TIME - timedelta(hours=1),
            tags=("ml",),
        ),
        Note(
            id="C",
            text="Whitespace guides the eye",
            created_at=BASE_TIME - timedelta(hours=2),
            tags=("design",),
        ),
    ]


@pytest.fixture
def ab_hint() -> ConnectionHint:
    """The AI connection from the A/B/C scenario."""
    return ConnectionHint(source_id="A", target_id="B", reason="both about embeddings", strength=8)


def fake_embedding(text: str) -> list[float]:
    """Deterministic 16-dim embedding derived from the text hash."""
    h = hashlib.md5(text.encode()).hexdigest()
    return [float(int(h[i:i + 2], 16)) / 255.0 for i in range(0, 32, 2)]


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Mock LLM client for testing without a hosted model."""
    client = MagicMock(spec=LLMClient)

    async def fake_embed(text: str) -> list[float]:
        return fake_embedding(text)

    async def fake_embed_batch(texts: list[str]) -> list[list[float]]:
        return [fake_embedding(t) for t in texts]

    client.generate_json = AsyncMock(return_value={"connections": [], "clusters": []})
    client.generate = AsyncMock(return_value="Test response")
    client.embed = AsyncMock(side_effect=fake_embed)
    client.embed_batch = AsyncMock(side_effect=fake_embed_batch)
    client.close = AsyncMock()

    return client


@pytest.fixture
def mock_connection_oracle() -> LLMConnectionOracle:
    """Connection oracle that returns an empty analysis unless told otherwise."""
    oracle = MagicMock(spec=LLMConnectionOracle)
    oracle.analyze = AsyncMock(return_value=ConnectionAnalysis())
    return oracle


@pytest.fixture
def mock_ranking_oracle() -> EmbeddingRankingOracle:
    """Ranking oracle that matches nothing unless told otherwise."""
    oracle = MagicMock(spec=EmbeddingRankingOracle)
    oracle.rank = AsyncMock(return_value=[])
    return oracle


@pytest.fixture
def note_store(sample_notes: list[Note]) -> InMemoryNoteStore:
    return InMemoryNoteStore(sample_notes)


@pytest.fixture
def session(
    note_store: InMemoryNoteStore,
    mock_connection_oracle: LLMConnectionOracle,
    mock_ranking_oracle: EmbeddingRankingOracle,
    test_settings: Settings,
) -> GraphSession:
    """Graph session wired to in-memory notes and mocked oracles (not loaded yet)."""
    return GraphSession(
        note_store=note_store,
        connection_oracle=mock_connection_oracle,
        ranking_oracle=mock_ranking_oracle,
        settings=test_settings,
        simulation=ForceSimulation(LayoutConfig.from_settings(test_settings), seed=7),
    )
