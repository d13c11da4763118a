"""Tests for data models and oracle payload records."""

from datetime import datetime, timezone

import pytest

from notegraph.models import (
    Cluster,
    Edge,
    EdgeOrigin,
    KnowledgeGraph,
    Node,
    Note,
    normalize_tags,
    pair_key,
    parse_datetime,
)
from notegraph.oracle.payloads import (
    ClusterAssignment,
    ConnectionHint,
    RankedNote,
    parse_connection_analysis,
    parse_ranking,
)


class TestNote:
    """Tests for Note model."""

    def test_note_creation(self) -> None:
        """Test creating a note."""
        note = Note(id="n1", text="Graphs are sets of edges", tags=("math",))
        assert note.id == "n1"
        assert note.has_tag("math")
        assert not note.has_tag("art")
        assert note.created_at.tzinfo is not None

    def test_from_dict_store_columns(self) -> None:
        """Test building a note from note-store column names."""
        note = Note.from_dict({
            "id": 42,
            "content": "Backprop is the chain rule",
            "created_at": "2024-05-01T12:00:00Z",
            "tags": ["ml", "math", "ml"],
        })
        assert note.id == "42"
        assert note.text == "Backprop is the chain rule"
        assert note.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        assert note.tags == ("ml", "math")

    def test_from_dict_prefers_text(self) -> None:
        """Test that text wins over content and createdAt is accepted."""
        note = Note.from_dict({"id": "x", "text": "t", "content": "c", "createdAt": 0})
        assert note.text == "t"
        assert note.created_at == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_to_dict(self) -> None:
        """Test converting note to dictionary."""
        note = Note(id="n1", text="t", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc), tags=("a",))
        data = note.to_dict()
        assert data["id"] == "n1"
        assert data["tags"] == ["a"]
        assert data["created_at"].startswith("2024-01-01")


class TestHelpers:
    """Tests for model helper functions."""

    def test_parse_datetime_naive_is_utc(self) -> None:
        parsed = parse_datetime("2024-03-01T08:30:00")
        assert parsed.tzinfo == timezone.utc

    def test_parse_datetime_passthrough(self) -> None:
        value = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_datetime(value) == value

    def test_normalize_tags(self) -> None:
        assert normalize_tags([" ml ", "ml", None, "", "design"]) == ("ml", "design")
        assert normalize_tags(None) == ()

    def test_pair_key_is_unordered(self) -> None:
        assert pair_key("b", "a") == pair_key("a", "b") == ("a", "b")


class TestKnowledgeGraph:
    """Tests for KnowledgeGraph indices."""

    @pytest.fixture
    def graph(self) -> KnowledgeGraph:
        now = datetime.now(timezone.utc)
        nodes = [Node(id=i, text=i, tags=(), created_at=now, visual_size=10, label=i) for i in "abc"]
        edges = [Edge("a", "b", 0.5, "x", EdgeOrigin.AI)]
        return KnowledgeGraph(nodes=nodes, edges=edges, clusters=[Cluster("T", "", frozenset({"a", "c"}))])

    def test_neighbors(self, graph: KnowledgeGraph) -> None:
        assert graph.neighbors("a") == {"b"}
        assert graph.neighbors("c") == set()
        assert graph.neighbors("missing") == set()

    def test_edge_between_either_order(self, graph: KnowledgeGraph) -> None:
        assert graph.edge_between("b", "a") is graph.edges[0]
        assert graph.edge_between("a", "c") is None

    def test_edges_touching_and_degree(self, graph: KnowledgeGraph) -> None:
        assert graph.edges_touching("b") == [graph.edges[0]]
        assert graph.edges_touching("c") == []
        assert graph.degree("a") == 1
        assert graph.degree("c") == 0
        assert graph.degree("missing") == 0

    def test_has_node_tolerates_none(self, graph: KnowledgeGraph) -> None:
        assert graph.has_node("a")
        assert not graph.has_node(None)
        assert not graph.has_node("z")

    def test_cluster_membership(self, graph: KnowledgeGraph) -> None:
        cluster = graph.clusters[0]
        assert "a" in cluster
        assert "b" not in cluster
        assert cluster.to_dict()["member_ids"] == ["a", "c"]

    def test_to_dict(self, graph: KnowledgeGraph) -> None:
        data = graph.to_dict()
        assert [n["id"] for n in data["nodes"]] == ["a", "b", "c"]
        assert data["edges"][0]["origin"] == "ai"


class TestConnectionPayloads:
    """Tests for connection oracle payload validation."""

    def test_camel_case_aliases(self) -> None:
        hint = ConnectionHint.model_validate(
            {"sourceId": "a", "targetId": "b", "reason": "r", "strength": 7}
        )
        assert (hint.source_id, hint.target_id, hint.strength) == ("a", "b", 7)

    def test_strength_defaults_and_clamps(self) -> None:
        assert ConnectionHint(source_id="a", target_id="b").strength == 5
        assert ConnectionHint(source_id="a", target_id="b", strength=50).strength == 10
        assert ConnectionHint(source_id="a", target_id="b", strength=-3).strength == 1

    def test_cluster_members_deduplicated(self) -> None:
        cluster = ClusterAssignment.model_validate(
            {"label": "ML", "insight": None, "memberIds": ["a", "b", "a", ""]}
        )
        assert cluster.member_ids == ("a", "b")
        assert cluster.insight == ""

    def test_malformed_entries_dropped(self) -> None:
        """A broken entry is dropped, the rest survive."""
        analysis = parse_connection_analysis({
            "connections": [
                {"sourceId": "a", "targetId": "b"},
                {"sourceId": "a"},
                "garbage",
                {"sourceId": None, "targetId": "b"},
            ],
            "clusters": [{"label": "ok", "memberIds": ["a"]}, {"memberIds": ["b"]}],
        })
        assert len(analysis.connections) == 1
        assert len(analysis.clusters) == 1

    def test_non_object_payload_is_empty(self) -> None:
        assert parse_connection_analysis(None).is_empty
        assert parse_connection_analysis(["x"]).is_empty
        assert parse_connection_analysis({"connections": "nope"}).is_empty


class TestRankingPayloads:
    """Tests for ranking oracle payload validation."""

    def test_list_payload(self) -> None:
        ranked = parse_ranking([{"noteId": "a", "score": 0.9}, {"id": "b", "similarity": 1.4}])
        assert ranked == [RankedNote(note_id="a", score=0.9), RankedNote(note_id="b", score=1.0)]

    def test_wrapped_payload(self) -> None:
        ranked = parse_ranking({"results": [{"note_id": "a", "score": 0.6}, {"score": 0.2}]})
        assert [r.note_id for r in ranked] == ["a"]

    def test_garbage_payload(self) -> None:
        assert parse_ranking("nope") == []
        assert parse_ranking(None) == []
