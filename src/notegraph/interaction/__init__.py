"""Interaction state and visual emphasis."""

from notegraph.interaction.state import (
    EdgeEmphasis,
    Emphasis,
    InteractionMode,
    InteractionState,
    NodeEmphasis,
)

__all__ = [
    "InteractionState",
    "InteractionMode",
    "Emphasis",
    "NodeEmphasis",
    "EdgeEmphasis",
]
