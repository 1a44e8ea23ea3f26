"""
Connection - the collaborators an operation talks to.
"""

from dataclasses import dataclass, field

from .config import Config
from .store.base import ContentStore, DirectoryIndex, FeedService


@dataclass
class Connection:
    """Content store, feed service and directory index, plus settings."""
    store: ContentStore
    feeds: FeedService
    directory: DirectoryIndex
    config: Config = field(default_factory=Config)

    @classmethod
    def in_memory(cls, config: Config = None) -> 'Connection':
        """Connection backed by fresh in-memory collaborators."""
        from .store.memory import MemoryDirectory, MemoryFeeds, MemoryStore

        return cls(
            store=MemoryStore(),
            feeds=MemoryFeeds(),
            directory=MemoryDirectory(),
            config=config or Config(),
        )
