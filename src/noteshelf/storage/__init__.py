"""Storage layer for the noteshelf service."""

from typing import Optional

from noteshelf.config import config
from noteshelf.exceptions import ConfigurationError
from noteshelf.storage.base import Persister, SharedPersister
from noteshelf.storage.memory_persister import InMemoryPersister
from noteshelf.storage.sql_persister import SqlPersister

__all__ = [
    "Persister",
    "SharedPersister",
    "InMemoryPersister",
    "SqlPersister",
    "create_persister",
]


def create_persister(backend: Optional[str] = None) -> Persister:
    """Create the storage engine named by ``backend`` (config default when None)."""
    backend = backend or config.storage_backend
    if backend == "memory":
        return InMemoryPersister()
    if backend == "sql":
        return SqlPersister()
    raise ConfigurationError(
        f"Unknown storage backend '{backend}'", config_key="storage_backend"
    )
