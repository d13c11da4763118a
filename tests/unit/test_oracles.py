"""Tests for the LLM-backed oracles and their client."""

from unittest.mock import MagicMock

import pytest
import requests

from notegraph.models import Note
from notegraph.oracle.connections import (
    CONNECTION_SYSTEM_PROMPT,
    LLMConnectionOracle,
    format_excerpts,
    map_indexed_reply,
)
from notegraph.oracle.llm_client import LLMClient
from notegraph.oracle.output_parser import OutputParser
from notegraph.oracle.ranking import EmbeddingRankingOracle, cosine_similarity_batch


@pytest.fixture
def notes() -> list[Note]:
    return [Note(id=f"n{i}", text=f"note number {i}") for i in range(4)]


class TestIndexedReply:
    """Tests for mapping index-based model replies to note ids."""

    def test_maps_indices(self, notes: list[Note]) -> None:
        payload = map_indexed_reply(notes, {
            "connections": [{"from": 0, "to": 2, "reason": "same idea", "strength": 9}],
            "clusters": [{"label": "All", "nodes": [0, 1, "3"], "insight": "i"}],
        })
        assert payload["connections"] == [
            {"sourceId": "n0", "targetId": "n2", "reason": "same idea", "strength": 9}
        ]
        assert payload["clusters"][0]["memberIds"] == ["n0", "n1", "n3"]

    def test_drops_bad_indices(self, notes: list[Note]) -> None:
        payload = map_indexed_reply(notes, {
            "connections": [
                {"from": 0, "to": 99},
                {"from": -1, "to": 1},
                {"from": True, "to": 1},
                {"from": "x", "to": 1},
                "junk",
            ],
            "clusters": [{"label": "c", "nodes": [1, 42, None]}],
        })
        assert payload["connections"] == []
        assert payload["clusters"][0]["memberIds"] == ["n1"]

    def test_missing_strength_left_to_default(self, notes: list[Note]) -> None:
        payload = map_indexed_reply(notes, {"connections": [{"from": 0, "to": 1}]})
        assert "strength" not in payload["connections"][0]

    def test_non_object_reply(self, notes: list[Note]) -> None:
        assert map_indexed_reply(notes, ["nope"]) == {"connections": [], "clusters": []}

    def test_format_excerpts_truncates(self, notes: list[Note]) -> None:
        text = format_excerpts(notes[:2], max_chars=4)
        assert text == "[0] note\n\n[1] note"


class TestLLMConnectionOracle:
    """Tests for the connection oracle."""

    @pytest.mark.asyncio
    async def test_analyze(self, notes: list[Note], mock_llm_client: LLMClient) -> None:
        mock_llm_client.generate_json.return_value = {
            "connections": [{"from": 0, "to": 1, "reason": "r", "strength": 7}],
            "clusters": [{"label": "L", "nodes": [0, 1], "insight": "I"}],
        }
        oracle = LLMConnectionOracle(llm_client=mock_llm_client, max_notes=3, excerpt_chars=50, min_notes=2)

        analysis = await oracle.analyze(notes)

        kwargs = mock_llm_client.generate_json.await_args.kwargs
        assert kwargs["system_prompt"] == CONNECTION_SYSTEM_PROMPT
        assert "[2] note number 2" in kwargs["prompt"]
        assert "[3]" not in kwargs["prompt"]
        assert analysis.connections[0].source_id == "n0"
        assert analysis.connections[0].strength == 7
        assert analysis.clusters[0].member_ids == ("n0", "n1")

    @pytest.mark.asyncio
    async def test_too_few_notes_skips_call(self, notes: list[Note], mock_llm_client: LLMClient) -> None:
        oracle = LLMConnectionOracle(llm_client=mock_llm_client, min_notes=2)
        analysis = await oracle.analyze(notes[:1])
        assert analysis.is_empty
        mock_llm_client.generate_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_propagates(self, notes: list[Note], mock_llm_client: LLMClient) -> None:
        mock_llm_client.generate_json.side_effect = ValueError("not json")
        oracle = LLMConnectionOracle(llm_client=mock_llm_client)
        with pytest.raises(ValueError):
            await oracle.analyze(notes)


class TestEmbeddingRankingOracle:
    """Tests for the embedding-backed ranking oracle."""

    def test_cosine_similarity(self) -> None:
        scores = cosine_similarity_batch([1.0, 0.0], [[2.0, 0.0], [0.0, 1.0], [0.0, 0.0]])
        assert scores == pytest.approx([1.0, 0.0, 0.0])
        assert cosine_similarity_batch([1.0], []) == []

    @pytest.mark.asyncio
    async def test_rank_threshold_and_order(self, mock_llm_client: LLMClient) -> None:
        vectors = {"q": [1.0, 0.0], "close": [0.9, 0.1], "closer": [1.0, 0.01], "far": [0.0, 1.0]}

        async def embed(text: str) -> list[float]:
            return vectors[text]

        async def embed_batch(texts: list[str]) -> list[list[float]]:
            return [vectors[t] for t in texts]

        mock_llm_client.embed.side_effect = embed
        mock_llm_client.embed_batch.side_effect = embed_batch
        notes = [Note(id="c", text="close"), Note(id="cc", text="closer"), Note(id="f", text="far")]

        async def provider() -> list[Note]:
            return notes

        oracle = EmbeddingRankingOracle(provider, llm_client=mock_llm_client, match_threshold=0.5, match_count=10)
        ranked = await oracle.rank("q")

        assert [r.note_id for r in ranked] == ["cc", "c"]
        assert ranked[0].score > ranked[1].score

        # Note embeddings are cached between queries
        await oracle.rank("q")
        assert mock_llm_client.embed_batch.await_count == 1

    @pytest.mark.asyncio
    async def test_edited_note_reembedded(self, mock_llm_client: LLMClient) -> None:
        notes = [Note(id="a", text="first draft"), Note(id="b", text="unchanged")]

        async def provider() -> list[Note]:
            return notes

        oracle = EmbeddingRankingOracle(provider, llm_client=mock_llm_client, match_threshold=0.0)
        await oracle.rank("query")
        notes[0] = Note(id="a", text="second draft")
        await oracle.rank("query")

        assert mock_llm_client.embed_batch.await_count == 2
        assert mock_llm_client.embed_batch.await_args.args[0] == ["second draft"]
        assert oracle._cache["a"][0] == "second draft"

    @pytest.mark.asyncio
    async def test_removed_notes_evicted(self, mock_llm_client: LLMClient) -> None:
        notes = [Note(id=str(i), text=f"note {i}") for i in range(5)]

        async def provider() -> list[Note]:
            return notes

        oracle = EmbeddingRankingOracle(provider, llm_client=mock_llm_client, match_threshold=0.0)
        await oracle.rank("query")
        assert set(oracle._cache) == {"0", "1", "2", "3", "4"}

        del notes[1:]
        notes.append(Note(id="new", text="fresh"))
        await oracle.rank("query")
        assert set(oracle._cache) == {"0", "new"}

    @pytest.mark.asyncio
    async def test_match_count_limits(self, mock_llm_client: LLMClient) -> None:
        notes = [Note(id=str(i), text="same text") for i in range(5)]

        async def provider() -> list[Note]:
            return notes

        oracle = EmbeddingRankingOracle(provider, llm_client=mock_llm_client, match_threshold=0.0, match_count=2)
        ranked = await oracle.rank("same text")
        assert len(ranked) == 2

    @pytest.mark.asyncio
    async def test_empty_inputs(self, mock_llm_client: LLMClient) -> None:
        async def no_notes() -> list[Note]:
            return []

        oracle = EmbeddingRankingOracle(no_notes, llm_client=mock_llm_client)
        assert await oracle.rank("anything") == []
        mock_llm_client.embed.assert_not_awaited()


class TestOutputParser:
    """Tests for JSON extraction from model output."""

    def test_plain_json(self) -> None:
        assert OutputParser.parse_json('{"a": 1}') == {"a": 1}

    def test_strips_thinking(self) -> None:
        raw = '<think>reasoning {not json}</think>\n{"connections": []}'
        assert OutputParser.parse_json(raw) == {"connections": []}

    def test_code_fence(self) -> None:
        raw = 'Here you go:\n```json\n{"clusters": [1]}\n```\nDone.'
        assert OutputParser.parse_json(raw) == {"clusters": [1]}

    def test_embedded_object(self) -> None:
        assert OutputParser.parse_json('Result: {"x": [1, 2]} hope that helps') == {"x": [1, 2]}

    def test_fallback(self) -> None:
        assert OutputParser.parse_json("no json here", fallback={}) == {}
        assert OutputParser.parse_json(None) is None

    def test_strip_orphan_tags(self) -> None:
        assert OutputParser.strip_thinking("answer</think>") == "answer"


class TestLLMClient:
    """Tests for the requests-based client with a mocked HTTP session."""

    @pytest.fixture
    def client(self) -> LLMClient:
        return LLMClient(
            base_url="http://llm.test/v1/",
            model="test-model",
            embedding_model="test-embed",
            api_key="k",
            max_concurrent=1,
        )

    def mock_session(self, client: LLMClient, payload: dict) -> MagicMock:
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        session = MagicMock(spec=requests.Session)
        session.post.return_value = response
        client._session = session
        return session

    @pytest.mark.asyncio
    async def test_generate_json(self, client: LLMClient) -> None:
        session = self.mock_session(client, {
            "choices": [{"message": {"content": '<think>hm</think>{"connections": []}'}}]
        })
        result = await client.generate_json("prompt", system_prompt="sys")

        assert result == {"connections": []}
        url = session.post.call_args.args[0]
        body = session.post.call_args.kwargs["json"]
        assert url == "http://llm.test/v1/chat/completions"
        assert body["model"] == "test-model"
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0] == {"role": "system", "content": "sys"}

    @pytest.mark.asyncio
    async def test_generate_json_unparsable(self, client: LLMClient) -> None:
        self.mock_session(client, {"choices": [{"message": {"content": "sorry"}}]})
        with pytest.raises(ValueError):
            await client.generate_json("prompt")

    @pytest.mark.asyncio
    async def test_empty_choices(self, client: LLMClient) -> None:
        self.mock_session(client, {"choices": []})
        with pytest.raises(ValueError):
            await client.generate("prompt")

    @pytest.mark.asyncio
    async def test_embed_batch_orders_by_index(self, client: LLMClient) -> None:
        session = self.mock_session(client, {
            "data": [
                {"index": 1, "embedding": [0.0, 1.0]},
                {"index": 0, "embedding": [1.0, 0.0]},
            ]
        })
        vectors = await client.embed_batch(["a", ""])

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        body = session.post.call_args.kwargs["json"]
        assert body == {"model": "test-embed", "input": ["a", " "]}

    @pytest.mark.asyncio
    async def test_embed_count_mismatch(self, client: LLMClient) -> None:
        self.mock_session(client, {"data": [{"index": 0, "embedding": [1.0]}]})
        with pytest.raises(ValueError):
            await client.embed_batch(["a", "b"])

    @pytest.mark.asyncio
    async def test_embed_batch_empty(self, client: LLMClient) -> None:
        assert await client.embed_batch([]) == []

    @pytest.mark.asyncio
    async def test_close(self, client: LLMClient) -> None:
        session = self.mock_session(client, {})
        await client.close()
        session.close.assert_called_once()
        assert client._session is None
