"""Service layer for note operations.

Applies the caller-side rules on top of a persister: who the acting user
is, ownership checks, and turning absent lookups into errors.
"""

import logging
from typing import Any, Dict, List, Optional

from noteshelf.config import config
from noteshelf.exceptions import NoteNotFoundError, TagNotFoundError, UnauthorizedError
from noteshelf.models.schema import Draft, Note, Tag, User
from noteshelf.observability import timed_operation
from noteshelf.storage.base import Persister, SharedPersister

logger = logging.getLogger(__name__)


def default_user() -> User:
    """Resolve the acting user.

    There is no authentication yet, so every request acts as the
    placeholder identity from the configuration.
    """
    return User(id=config.default_user_id, name=config.default_user_name)


class NoteService:
    """Service for managing notes on behalf of one acting user."""

    def __init__(self, handle: SharedPersister, user: Optional[User] = None):
        """Initialize the service.

        Args:
            handle: Shared persister; each call takes its lock once.
            user: Acting user. Resolved from config when None.
        """
        self.handle = handle
        self.user = user if user is not None else default_user()

    def _owned_note(self, persister: Persister, note_id: int) -> Note:
        """Look up a live note and check that the acting user owns it."""
        note = persister.note(note_id)
        if note is None:
            logger.info("--> 404")
            raise NoteNotFoundError(note_id)
        if not note.owned_by(self.user):
            logger.info("--> 401")
            raise UnauthorizedError(note_id, self.user.id)
        return note

    def all_notes(self) -> List[Note]:
        """Get every active note regardless of owner (debugging aid)."""
        with timed_operation("all_notes") as op:
            with self.handle.acquire() as persister:
                notes = persister.notes()
            op["result_count"] = len(notes)
            logger.info(f"--> 200 [{len(notes)} notes]")
            return notes

    def list_notes(self) -> List[Note]:
        """Get the acting user's active notes."""
        with timed_operation("list_notes", user_id=self.user.id) as op:
            with self.handle.acquire() as persister:
                notes = persister.user_notes(self.user)
            op["result_count"] = len(notes)
            logger.info(f"--> 200 [{len(notes)} notes]")
            return notes

    def get_note(self, note_id: int) -> Note:
        """Get one of the acting user's notes.

        Raises:
            NoteNotFoundError: If the note does not exist or was deleted.
            UnauthorizedError: If another user owns the note.
        """
        with timed_operation("get_note", note_id=note_id):
            with self.handle.acquire() as persister:
                note = self._owned_note(persister, note_id)
            logger.info("--> 200")
            return note

    def create_note(self, draft: Draft) -> Note:
        """Store a new note owned by the acting user."""
        with timed_operation("create_note", title=draft.title[:30]) as op:
            with self.handle.acquire() as persister:
                note = persister.add_note(draft, self.user)
            op["note_id"] = note.id
            logger.info("--> 200")
            return note

    def update_note(self, note_id: int, draft: Draft) -> Note:
        """Replace the content of one of the acting user's notes.

        Raises:
            NoteNotFoundError: If the note does not exist or was deleted.
            UnauthorizedError: If another user owns the note.
        """
        with timed_operation("update_note", note_id=note_id):
            with self.handle.acquire() as persister:
                self._owned_note(persister, note_id)
                note = persister.update_note(draft, note_id)
            logger.info("--> 200")
            return note

    def delete_note(self, note_id: int) -> bool:
        """Soft-delete one of the acting user's notes.

        Raises:
            NoteNotFoundError: If the note does not exist or was deleted.
            UnauthorizedError: If another user owns the note.
        """
        with timed_operation("delete_note", note_id=note_id):
            with self.handle.acquire() as persister:
                self._owned_note(persister, note_id)
                deleted = persister.delete_note(note_id)
            logger.info("--> 200")
            return deleted

    def tagged_notes(self, label: str) -> List[Note]:
        """Get the acting user's active notes carrying the tag ``label``.

        Raises:
            TagNotFoundError: If no tag with that exact label exists. No
                tag is created by this lookup.
        """
        with timed_operation("tagged_notes", label=label) as op:
            with self.handle.acquire() as persister:
                tag = persister.tag(label)
                if tag is None:
                    logger.info("--> 400")
                    raise TagNotFoundError(label)
                notes = [
                    note
                    for note in persister.tagged_notes(tag)
                    if note.owned_by(self.user)
                ]
            op["result_count"] = len(notes)
            logger.info(f"--> 200 [{len(notes)} notes]")
            return notes

    def list_tags(self) -> List[Tag]:
        """Get every tag ever created."""
        with timed_operation("list_tags") as op:
            with self.handle.acquire() as persister:
                tags = persister.tags()
            op["result_count"] = len(tags)
            logger.info(f"--> 200 [{len(tags)} tags]")
            return tags

    def storage_stats(self) -> Dict[str, Any]:
        """Describe the backing engine: its name and how much it holds."""
        with timed_operation("storage_stats"):
            with self.handle.acquire() as persister:
                slots = persister.note_count()
                active = len(persister.notes())
                tags = len(persister.tags())
            logger.info("--> 200")
            return {
                "engine": self.handle.engine_name,
                "note_slots": slots,
                "active_notes": active,
                "tags": tags,
            }
