"""
Collaborator Interfaces

The file layer talks to three remote services. Anything that implements these
protocols can back it: the in-memory versions in ``memory``, the local
disk/SQLite deployment in ``disk``/``database``, or a network client.

Missing data is reported as ``None`` (content, feeds) so the caller can pick
the right error kind. Every other failure is raised by the implementation and
passed through unchanged.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol


@dataclass(frozen=True)
class FeedUpdate:
    """A signed payload for one (topic, owner) feed."""
    topic: str         # hex SHA3-256 of the full path
    owner: str         # address of the signing pod
    public_key: bytes  # raw Ed25519 public key of the owner
    payload: bytes
    signature: bytes   # signature over topic bytes + payload


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    is_file: bool


class ContentStore(Protocol):
    """Immutable, content-addressed blob store."""

    async def put(self, data: bytes) -> str:
        """Store a blob and return its hex content address."""
        ...

    async def get(self, reference: str) -> Optional[bytes]:
        """Fetch a blob, or None if the store does not have it."""
        ...


class FeedService(Protocol):
    """Mutable pointers keyed by (topic, owner address)."""

    async def publish(self, update: FeedUpdate) -> None:
        """Store an update atomically. Invalid signatures are rejected."""
        ...

    async def resolve(self, topic: str, owner: str) -> Optional[bytes]:
        """Latest payload for the feed, or None if nothing was published."""
        ...


class DirectoryIndex(Protocol):
    """Tracks which names exist under each directory of a pod."""

    async def add_entry(self, owner: str, dir_path: str, name: str, is_file: bool) -> None:
        ...

    async def remove_entry(self, owner: str, dir_path: str, name: str, is_file: bool) -> None:
        ...

    async def list_entries(self, owner: str, dir_path: str) -> List[DirectoryEntry]:
        ...
