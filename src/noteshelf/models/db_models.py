"""SQLAlchemy database models for the noteshelf service."""
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from noteshelf.config import config
from noteshelf.models.schema import Visibility

# Create base class for SQLAlchemy models
Base = declarative_base()

# Association table for tags and notes
note_tags = Table(
    "note_tags",
    Base.metadata,
    Column("note_id", Integer, ForeignKey("notes.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    # Ids are assigned by the persister, not by the database
    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    visibility = Column(
        String(16), default=Visibility.PRIVATE.value, nullable=False, index=True
    )

    # Relationships
    tags = relationship("DBTag", secondary=note_tags, back_populates="notes")

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, title='{self.title}')>"


class DBTag(Base):
    """Database model for a tag."""
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True, autoincrement=False)
    label = Column(String(255), unique=True, nullable=False, index=True)

    # Relationships
    notes = relationship("DBNote", secondary=note_tags, back_populates="tags")

    def __repr__(self) -> str:
        """Return string representation of tag."""
        return f"<Tag(id={self.id}, label='{self.label}')>"


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def init_db(database_url: Optional[str] = None) -> Engine:
    """Create an engine for ``database_url`` and make sure the tables exist.

    An in-memory SQLite database only lives as long as its connection, so
    for that case every session shares one connection (StaticPool). Access
    is serialized by the caller's SharedPersister lock.
    """
    database_url = database_url or config.database_url
    if _is_memory_sqlite(database_url):
        engine = create_engine(
            database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(database_url, pool_pre_ping=True)

    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine: Optional[Engine] = None):
    """Get a session factory for the database."""
    if engine is None:
        engine = init_db()
    return sessionmaker(bind=engine)
