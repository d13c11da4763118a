"""Note sources."""

from notegraph.notes.store import InMemoryNoteStore, NoteStore, dedupe_notes

__all__ = ["NoteStore", "InMemoryNoteStore", "dedupe_notes"]
