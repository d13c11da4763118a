"""Boundary records for oracle replies.

Oracle payloads are loosely shaped JSON. Each entry is validated on its own;
a malformed entry is dropped and logged, never raised, so a partly broken
reply still contributes whatever it got right.
"""

import logging
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ConnectionHint(BaseModel):
    """One pairwise semantic connection suggested by the connection oracle."""

    model_config = ConfigDict(frozen=True)

    source_id: str = Field(validation_alias=AliasChoices("sourceId", "source_id", "source"))
    target_id: str = Field(validation_alias=AliasChoices("targetId", "target_id", "target"))
    reason: str = ""
    strength: float = Field(default=5.0)

    @field_validator("source_id", "target_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or isinstance(value, (dict, list, bool)):
            raise ValueError("node id must be a scalar")
        text = str(value).strip()
        if not text:
            raise ValueError("node id must not be empty")
        return text

    @field_validator("reason", mode="before")
    @classmethod
    def _coerce_reason(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("strength")
    @classmethod
    def _clamp_strength(cls, value: float) -> float:
        return min(10.0, max(1.0, value))


class ClusterAssignment(BaseModel):
    """A thematic cluster and the note ids the oracle placed in it."""

    model_config = ConfigDict(frozen=True)

    label: str
    insight: str = ""
    member_ids: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("memberIds", "member_ids", "nodeIds"),
    )

    @field_validator("insight", mode="before")
    @classmethod
    def _coerce_insight(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("member_ids", mode="before")
    @classmethod
    def _coerce_members(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("memberIds must be a list")
        # Keep first-seen order, drop blanks and duplicates
        members: dict[str, None] = {}
        for item in value:
            if item is None or isinstance(item, (dict, list)):
                continue
            text = str(item).strip()
            if text:
                members.setdefault(text, None)
        return tuple(members)


class ConnectionAnalysis(BaseModel):
    """Full connection oracle reply: connections plus clusters."""

    connections: list[ConnectionHint] = Field(default_factory=list)
    clusters: list[ClusterAssignment] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.connections and not self.clusters


class RankedNote(BaseModel):
    """One entry of a ranking oracle reply."""

    model_config = ConfigDict(frozen=True)

    note_id: str = Field(validation_alias=AliasChoices("noteId", "note_id", "id"))
    score: float = Field(validation_alias=AliasChoices("score", "similarity"))

    @field_validator("note_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or isinstance(value, (dict, list, bool)):
            raise ValueError("note id must be a scalar")
        return str(value)

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return min(1.0, max(0.0, value))


def _parse_entries(items: Any, model: type[BaseModel], kind: str) -> list:
    """Validate each entry independently; drop the ones that fail."""
    if not isinstance(items, list):
        if items is not None:
            logger.warning(f"Expected a list of {kind}, got {type(items).__name__}")
        return []

    parsed = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed {kind} entry {item!r}: {e.error_count()} error(s)")
    return parsed


def parse_connection_analysis(payload: Any) -> ConnectionAnalysis:
    """Parse a connection oracle reply, degrading anything malformed to "no data"."""
    if not isinstance(payload, dict):
        if payload is not None:
            logger.warning(f"Connection oracle returned non-object payload: {type(payload).__name__}")
        return ConnectionAnalysis()

    return ConnectionAnalysis(
        connections=_parse_entries(payload.get("connections"), ConnectionHint, "connection"),
        clusters=_parse_entries(payload.get("clusters"), ClusterAssignment, "cluster"),
    )


def parse_ranking(payload: Any) -> list[RankedNote]:
    """Parse a ranking oracle reply (bare list or {"results": [...]})."""
    if isinstance(payload, dict):
        payload = payload.get("results", payload.get("matches"))
    return _parse_entries(payload, RankedNote, "ranking")
