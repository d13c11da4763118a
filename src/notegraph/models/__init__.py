"""Notegraph data models."""

from notegraph.models.graph import Cluster, Edge, EdgeOrigin, KnowledgeGraph, Node, pair_key
from notegraph.models.note import Note, normalize_tags, parse_datetime

__all__ = [
    "Note",
    "Node",
    "Edge",
    "EdgeOrigin",
    "Cluster",
    "KnowledgeGraph",
    "pair_key",
    "normalize_tags",
    "parse_datetime",
]
