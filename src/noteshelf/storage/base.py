"""Persistence contract shared by every storage engine."""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from noteshelf.models.schema import Draft, Note, Tag, User

logger = logging.getLogger(__name__)


class Persister(ABC):
    """Abstract storage engine for notes and tags.

    Implementations provide the primitive operations, ``note_count``
    included. ``note`` and ``tag`` are derived from them here so every
    engine gets them for free; an engine with indexed lookups may
    override them.

    Read operations return snapshot lists of immutable notes. A snapshot
    is not updated by later writes and cannot change what is stored.
    """

    @abstractmethod
    def notes(self) -> List[Note]:
        """Get all notes that are not deleted, in storage order."""
        pass

    @abstractmethod
    def tags(self) -> List[Tag]:
        """Get every tag ever created, in storage order."""
        pass

    @abstractmethod
    def add_note(self, draft: Draft, user: User) -> Note:
        """Store a new note owned by ``user``.

        The note gets the next sequential id and its tag labels are
        resolved, creating tags that do not exist yet.
        """
        pass

    @abstractmethod
    def update_note(self, draft: Draft, note_id: int) -> Note:
        """Replace the note at ``note_id`` with the draft's content.

        The original owner is kept. Raises InvariantViolationError if no
        note slot exists at ``note_id``; a note is never created here.
        """
        pass

    @abstractmethod
    def delete_note(self, note_id: int) -> bool:
        """Soft-delete the note at ``note_id``.

        Returns:
            True if a note occupies the id, False otherwise.
        """
        pass

    @abstractmethod
    def user_notes(self, user: User) -> List[Note]:
        """Get the notes owned by ``user`` that are not deleted."""
        pass

    @abstractmethod
    def tagged_notes(self, tag: Tag) -> List[Note]:
        """Get the notes carrying ``tag`` that are not deleted."""
        pass

    @abstractmethod
    def add_tag(self, label: str) -> int:
        """Get the id of the tag with this exact label, creating it if needed."""
        pass

    @abstractmethod
    def note_count(self) -> int:
        """Get the number of note slots, deleted notes included."""
        pass

    def note(self, note_id: int) -> Optional[Note]:
        """Get an active note by id, or None if absent or deleted."""
        for note in self.notes():
            if note.id == note_id:
                return note
        return None

    def tag(self, label: str) -> Optional[Tag]:
        """Get a tag by exact label, or None if no such tag exists."""
        for tag in self.tags():
            if tag.label == label:
                return tag
        return None


class SharedPersister:
    """A persister shared between callers, one operation at a time.

    The wrapped engine is only reachable through ``acquire``, which holds
    an exclusive lock for the duration of the ``with`` block.

    Example:
        handle = SharedPersister(InMemoryPersister())
        with handle.acquire() as persister:
            note = persister.add_note(draft, user)
    """

    def __init__(self, persister: Persister):
        self._persister = persister
        self._lock = threading.Lock()

    @contextmanager
    def acquire(self) -> Iterator[Persister]:
        """Hold exclusive access to the wrapped persister."""
        with self._lock:
            yield self._persister

    @property
    def engine_name(self) -> str:
        """Name of the wrapped engine class, for logging."""
        return type(self._persister).__name__
