"""Notegraph: semantic knowledge graph over personal notes."""

__version__ = "0.1.0"
