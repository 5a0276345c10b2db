"""Common test fixtures for the noteshelf service."""

import pytest

from noteshelf.models.db_models import init_db
from noteshelf.models.schema import User
from noteshelf.services.note_service import NoteService
from noteshelf.storage.base import SharedPersister
from noteshelf.storage.memory_persister import InMemoryPersister
from noteshelf.storage.sql_persister import SqlPersister


@pytest.fixture
def memory_persister():
    """Create an empty in-memory persister."""
    return InMemoryPersister()


@pytest.fixture
def sql_persister():
    """Create a SQL persister on a private in-memory SQLite database."""
    engine = init_db("sqlite://")
    yield SqlPersister(engine=engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def persister(request):
    """Every storage engine, for tests of the shared persister contract."""
    return request.getfixturevalue(f"{request.param}_persister")


@pytest.fixture
def user():
    """The placeholder user every request resolves to."""
    return User.default()


@pytest.fixture
def other_user():
    """A second user, for ownership checks."""
    return User(id=7, name="someone-else")


@pytest.fixture
def handle(memory_persister):
    """Shared handle around an in-memory persister."""
    return SharedPersister(memory_persister)


@pytest.fixture
def note_service(handle, user):
    """Create a NoteService acting as the default user."""
    return NoteService(handle, user=user)
