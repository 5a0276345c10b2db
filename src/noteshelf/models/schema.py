"""Data models for the noteshelf service.

The models try to use a style that could support both relational and
document-based storage: every entity is keyed by a plain integer id.
"""

from enum import Enum
from typing import FrozenSet, Iterator, List

from pydantic import BaseModel, Field, NonNegativeInt, RootModel, model_serializer

# Id represents a foreign and/or primary key. Notes and tags have independent
# id spaces, both starting at 0.
Id = NonNegativeInt


class Tag(BaseModel):
    """A label attached to notes.

    Tags are immutable once created; equality and hashing cover both
    the id and the label.
    """

    id: Id = Field(..., description="Primary key of the tag")
    label: str = Field(..., description="Exact, case-sensitive label text")

    model_config = {"extra": "forbid", "frozen": True}

    def __str__(self) -> str:
        """Return string representation of tag."""
        return self.label


class Tags(RootModel[FrozenSet[Tag]]):
    """The unordered set of unique tags attached to one note.

    Immutable: a note's tag set is fixed when the note is stored, so
    snapshots handed to callers cannot change what the store holds.
    """

    root: FrozenSet[Tag] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    def __contains__(self, tag: object) -> bool:
        return tag in self.root

    def __iter__(self) -> Iterator[Tag]:  # type: ignore[override]
        # Sets have no order; iterate by id so output is reproducible
        return iter(sorted(self.root, key=lambda t: (t.id, t.label)))

    def __len__(self) -> int:
        return len(self.root)

    def with_tag(self, tag: Tag) -> "Tags":
        """Return a tag set that also contains ``tag``."""
        if tag in self.root:
            return self
        return Tags(self.root | {tag})

    def labels(self) -> List[str]:
        """Get the labels of all tags in iteration order."""
        return [tag.label for tag in self]

    @model_serializer
    def serialize(self) -> List[dict]:
        return [tag.model_dump() for tag in self]


class User(BaseModel):
    """Owner of notes.

    User management is not built in; every request acts as a single
    placeholder identity.
    """

    id: Id = Field(default=0, description="Primary key of the user")
    name: str = Field(default="", description="Display name")

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def default(cls) -> "User":
        """Return the placeholder identity (id 0)."""
        return cls()


class Visibility(str, Enum):
    """Visibility of a note.

    Deleted doubles as the soft-delete marker: deleted notes keep their
    storage slot but drop out of every listing.
    """

    PRIVATE = "Private"
    PUBLIC = "Public"
    DELETED = "Deleted"


class Draft(BaseModel):
    """Caller-supplied note content, without id or owner.

    Used both to create a note and to replace one wholesale.
    """

    title: str = Field(default="", description="Title of the note")
    body: str = Field(default="", description="Body text of the note")
    tags: List[str] = Field(
        default_factory=list,
        description="Tag labels; may repeat or name tags that do not exist yet",
    )
    visibility: Visibility = Field(
        default=Visibility.PRIVATE, description="Visibility of the note"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @classmethod
    def from_note(cls, note: "Note") -> "Draft":
        """Project a stored note back to a draft, dropping id and owner."""
        return cls(
            title=note.title,
            body=note.body,
            tags=note.tags.labels(),
            visibility=note.visibility,
        )


class Note(BaseModel):
    """A stored note. Only persisters create notes."""

    id: Id = Field(..., description="Primary key of the note")
    title: str = Field(..., description="Title of the note")
    body: str = Field(..., description="Body text of the note")
    tags: Tags = Field(
        default_factory=lambda: Tags(frozenset()), description="Tags of the note"
    )
    user: Id = Field(..., description="Id of the owning user")
    visibility: Visibility = Field(
        default=Visibility.PRIVATE, description="Visibility of the note"
    )

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_draft(cls, draft: Draft, id: int, user: int, tags: Tags) -> "Note":
        """Build a note from a draft and the resolved tag set."""
        return cls(
            id=id,
            title=draft.title,
            body=draft.body,
            tags=tags,
            user=user,
            visibility=draft.visibility,
        )

    @property
    def is_active(self) -> bool:
        """Whether the note has not been soft-deleted."""
        return self.visibility != Visibility.DELETED

    def tagged_with(self, tag: Tag) -> bool:
        return tag in self.tags

    def owned_by(self, user: User) -> bool:
        return self.user == user.id

    def __str__(self) -> str:
        return f"{self.title}: {self.body}"
