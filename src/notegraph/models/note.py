"""Note model - one free-text record supplied by the note store."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_datetime(value: Any) -> datetime:
    """Parse datetime from various formats (ISO string, epoch seconds, or native datetime).

    Naive values are taken as UTC so notes from mixed sources stay comparable.
    """
    if value is None:
        return datetime.fromtimestamp(0, tz=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        # Python < 3.11 fromisoformat does not accept a trailing "Z"
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_tags(tags: Any) -> tuple[str, ...]:
    """Deduplicate tags keeping first-seen order; None/blank entries are dropped."""
    if not tags:
        return ()
    seen: dict[str, None] = {}
    for tag in tags:
        if tag is None:
            continue
        tag = str(tag).strip()
        if tag:
            seen.setdefault(tag, None)
    return tuple(seen)


@dataclass(frozen=True)
class Note:
    """
    A user's note as the graph sees it. Immutable.

    Tags keep their first-seen order so that "first tag" lookups
    (label of a tag edge, fallback node color) are deterministic.
    """

    id: str
    text: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tags: tuple[str, ...] = ()

    def has_tag(self, tag: str) -> bool:
        """Check whether the note carries a tag."""
        return tag in self.tags

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Note":
        """Create from a note-store record.

        Accepts both the store's column names (content, created_at) and
        the graph's own (text, createdAt).
        """
        text = data.get("text")
        if text is None:
            text = data.get("content", "")
        return cls(
            id=str(data["id"]),
            text=str(text or ""),
            created_at=parse_datetime(data.get("created_at", data.get("createdAt"))),
            tags=normalize_tags(data.get("tags")),
        )
