"""Note store: read-only source of note snapshots."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from notegraph.models import Note

logger = logging.getLogger(__name__)


class NoteStore(Protocol):
    """Supplies note records, most recent first."""

    async def fetch_recent(self, limit: int) -> list[Note]:
        ...


def dedupe_notes(notes: Iterable[Note]) -> list[Note]:
    """Drop repeated ids, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[Note] = []
    for note in notes:
        if note.id in seen:
            continue
        seen.add(note.id)
        unique.append(note)
    return unique


class InMemoryNoteStore:
    """Note store backed by a list held in memory."""

    def __init__(self, notes: Iterable[Note] = ()) -> None:
        self._notes: list[Note] = dedupe_notes(notes)

    def __len__(self) -> int:
        return len(self._notes)

    def replace(self, notes: Iterable[Note]) -> None:
        """Swap in a new set of notes."""
        self._notes = dedupe_notes(notes)

    def add(self, note: Note) -> None:
        """Add a note, replacing any existing note with the same id."""
        self._notes = [n for n in self._notes if n.id != note.id]
        self._notes.append(note)

    async def fetch_recent(self, limit: int) -> list[Note]:
        """Return up to `limit` notes, newest first."""
        ordered = sorted(self._notes, key=lambda n: n.created_at, reverse=True)
        return ordered[: max(0, limit)]

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryNoteStore":
        """Load a JSON list of note records.

        Records missing an id are skipped with a warning.
        """
        path = Path(path)
        raw = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            raw = raw.get("notes", [])

        notes: list[Note] = []
        for record in raw:
            if not isinstance(record, dict) or "id" not in record:
                logger.warning(f"Skipping note record without id in {path}")
                continue
            notes.append(Note.from_dict(record))

        logger.info(f"Loaded {len(notes)} notes from {path}")
        return cls(notes)
