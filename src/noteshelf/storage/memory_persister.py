"""List-backed storage engine that keeps everything in process memory."""

import logging
from typing import Iterable, List

from noteshelf.exceptions import InvariantViolationError
from noteshelf.models.schema import Draft, Note, Tag, Tags, User, Visibility
from noteshelf.storage.base import Persister

logger = logging.getLogger(__name__)


class InMemoryPersister(Persister):
    """Reference storage engine.

    Notes and tags live in two append-only lists and an id is simply the
    position of the entity in its list. Deleting a note only flips its
    visibility to Deleted, so slots are never freed or reindexed.

    Tag lookup by label is a linear scan over all tags, which is fine for
    small vocabularies and not meant for large ones.
    """

    def __init__(self):
        self._notes: List[Note] = []
        self._tags: List[Tag] = []

    def _active_notes(self) -> Iterable[Note]:
        return (note for note in self._notes if note.is_active)

    def _resolve_tags(self, labels: Iterable[str]) -> Tags:
        """Map labels to stored tags, creating the ones that are missing."""
        resolved = {self._tags[self.add_tag(label)] for label in labels}
        return Tags(frozenset(resolved))

    def notes(self) -> List[Note]:
        return list(self._active_notes())

    def tags(self) -> List[Tag]:
        return list(self._tags)

    def add_note(self, draft: Draft, user: User) -> Note:
        tags = self._resolve_tags(draft.tags)
        note = Note.from_draft(draft, id=len(self._notes), user=user.id, tags=tags)
        self._notes.append(note)
        logger.debug(f"Stored note {note.id} for user {user.id}")
        return note

    def update_note(self, draft: Draft, note_id: int) -> Note:
        if not 0 <= note_id < len(self._notes):
            raise InvariantViolationError(
                f"No note slot at id {note_id}",
                operation="update_note",
                note_id=note_id,
            )
        owner = self._notes[note_id].user
        tags = self._resolve_tags(draft.tags)
        note = Note.from_draft(draft, id=note_id, user=owner, tags=tags)
        self._notes[note_id] = note
        logger.debug(f"Replaced note {note_id}")
        return note

    def delete_note(self, note_id: int) -> bool:
        if not 0 <= note_id < len(self._notes):
            return False
        self._notes[note_id] = self._notes[note_id].model_copy(
            update={"visibility": Visibility.DELETED}
        )
        logger.debug(f"Soft-deleted note {note_id}")
        return True

    def user_notes(self, user: User) -> List[Note]:
        return [note for note in self._active_notes() if note.owned_by(user)]

    def tagged_notes(self, tag: Tag) -> List[Note]:
        return [note for note in self._active_notes() if note.tagged_with(tag)]

    def add_tag(self, label: str) -> int:
        existing = self.tag(label)
        if existing is not None:
            return existing.id
        tag = Tag(id=len(self._tags), label=label)
        self._tags.append(tag)
        logger.debug(f"Created tag {tag.id} '{label}'")
        return tag.id

    def note_count(self) -> int:
        return len(self._notes)
