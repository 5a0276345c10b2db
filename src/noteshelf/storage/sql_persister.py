"""Storage engine backed by a SQLAlchemy database."""
import logging
from typing import Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, selectinload

from noteshelf.exceptions import InvariantViolationError
from noteshelf.models.db_models import DBNote, DBTag, get_session_factory, init_db
from noteshelf.models.schema import Draft, Note, Tag, Tags, User, Visibility
from noteshelf.storage.base import Persister

logger = logging.getLogger(__name__)


def _to_tag(db_tag: DBTag) -> Tag:
    return Tag(id=db_tag.id, label=db_tag.label)


def _to_note(db_note: DBNote) -> Note:
    return Note(
        id=db_note.id,
        title=db_note.title,
        body=db_note.body,
        tags=Tags(frozenset(_to_tag(db_tag) for db_tag in db_note.tags)),
        user=db_note.user_id,
        visibility=Visibility(db_note.visibility),
    )


class SqlPersister(Persister):
    """Persister that stores notes and tags in relational tables.

    Ids follow the same rules as the in-memory engine: zero-based,
    sequential per table and never reused, because rows are never
    deleted. Lookups by note id and tag label use the table indexes
    instead of scanning every row.
    """

    def __init__(self, engine: Optional[Engine] = None):
        """Initialize the persister.

        Args:
            engine: Pre-configured SQLAlchemy engine. When None, one is
                    created from config.database_url.
        """
        self.engine = engine if engine is not None else init_db()
        self.session_factory = get_session_factory(self.engine)

    @staticmethod
    def _active_notes_query():
        return (
            select(DBNote)
            .where(DBNote.visibility != Visibility.DELETED.value)
            .options(selectinload(DBNote.tags))
            .order_by(DBNote.id)
        )

    def _get_or_create_tag(self, session: Session, label: str) -> DBTag:
        db_tag = session.scalar(select(DBTag).where(DBTag.label == label))
        if db_tag is None:
            next_id = session.scalar(select(func.count()).select_from(DBTag))
            db_tag = DBTag(id=next_id, label=label)
            session.add(db_tag)
            session.flush()
            logger.debug(f"Created tag {db_tag.id} '{label}'")
        return db_tag

    def _resolve_tags(self, session: Session, labels: List[str]) -> List[DBTag]:
        """Map labels to tag rows, collapsing duplicates and creating missing tags."""
        resolved: Dict[int, DBTag] = {}
        for label in labels:
            db_tag = self._get_or_create_tag(session, label)
            resolved.setdefault(db_tag.id, db_tag)
        return list(resolved.values())

    def notes(self) -> List[Note]:
        with self.session_factory() as session:
            db_notes = session.scalars(self._active_notes_query()).all()
            return [_to_note(db_note) for db_note in db_notes]

    def tags(self) -> List[Tag]:
        with self.session_factory() as session:
            db_tags = session.scalars(select(DBTag).order_by(DBTag.id)).all()
            return [_to_tag(db_tag) for db_tag in db_tags]

    def add_note(self, draft: Draft, user: User) -> Note:
        with self.session_factory() as session:
            next_id = session.scalar(select(func.count()).select_from(DBNote))
            db_note = DBNote(
                id=next_id,
                title=draft.title,
                body=draft.body,
                user_id=user.id,
                visibility=draft.visibility.value,
                tags=self._resolve_tags(session, draft.tags),
            )
            session.add(db_note)
            session.flush()
            note = _to_note(db_note)
            session.commit()
            logger.debug(f"Stored note {note.id} for user {user.id}")
            return note

    def update_note(self, draft: Draft, note_id: int) -> Note:
        with self.session_factory() as session:
            db_note = session.get(DBNote, note_id)
            if db_note is None:
                raise InvariantViolationError(
                    f"No note slot at id {note_id}",
                    operation="update_note",
                    note_id=note_id,
                )
            db_note.title = draft.title
            db_note.body = draft.body
            db_note.visibility = draft.visibility.value
            db_note.tags = self._resolve_tags(session, draft.tags)
            session.flush()
            note = _to_note(db_note)
            session.commit()
            logger.debug(f"Replaced note {note_id}")
            return note

    def delete_note(self, note_id: int) -> bool:
        with self.session_factory() as session:
            db_note = session.get(DBNote, note_id)
            if db_note is None:
                return False
            db_note.visibility = Visibility.DELETED.value
            session.commit()
            logger.debug(f"Soft-deleted note {note_id}")
            return True

    def user_notes(self, user: User) -> List[Note]:
        query = self._active_notes_query().where(DBNote.user_id == user.id)
        with self.session_factory() as session:
            return [_to_note(db_note) for db_note in session.scalars(query).all()]

    def tagged_notes(self, tag: Tag) -> List[Note]:
        query = self._active_notes_query().where(
            DBNote.tags.any(and_(DBTag.id == tag.id, DBTag.label == tag.label))
        )
        with self.session_factory() as session:
            return [_to_note(db_note) for db_note in session.scalars(query).all()]

    def add_tag(self, label: str) -> int:
        with self.session_factory() as session:
            db_tag = self._get_or_create_tag(session, label)
            tag_id = db_tag.id
            session.commit()
            return tag_id

    def note_count(self) -> int:
        with self.session_factory() as session:
            return session.scalar(select(func.count()).select_from(DBNote))

    def note(self, note_id: int) -> Optional[Note]:
        query = self._active_notes_query().where(DBNote.id == note_id)
        with self.session_factory() as session:
            db_note = session.scalar(query)
            return _to_note(db_note) if db_note is not None else None

    def tag(self, label: str) -> Optional[Tag]:
        with self.session_factory() as session:
            db_tag = session.scalar(select(DBTag).where(DBTag.label == label))
            return _to_tag(db_tag) if db_tag is not None else None
