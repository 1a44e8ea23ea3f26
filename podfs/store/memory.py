"""
In-Memory Collaborators

Process-local implementations of the store, feed and directory interfaces.
Used by the test-suite and by embedders that do not need persistence.
"""

import asyncio
import hashlib
from collections import defaultdict
from typing import Dict, List, Optional, Set, Tuple

from ..feed import verify_feed_update
from .base import DirectoryEntry, FeedUpdate


class MemoryStore:
    """Content-addressed blobs in a dict."""

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self.put_count = 0
        self.get_count = 0

    async def put(self, data: bytes) -> str:
        data = bytes(data)
        reference = hashlib.sha256(data).hexdigest()
        self._blobs[reference] = data
        self.put_count += 1
        return reference

    async def get(self, reference: str) -> Optional[bytes]:
        self.get_count += 1
        return self._blobs.get(reference)

    def delete(self, reference: str) -> bool:
        """Drop a blob, simulating pruned content."""
        return self._blobs.pop(reference, None) is not None

    def __len__(self) -> int:
        return len(self._blobs)


class MemoryFeeds:
    """Append-only feed history per (topic, owner)."""

    def __init__(self):
        self._history: Dict[Tuple[str, str], List[bytes]] = defaultdict(list)
        self._lock = asyncio.Lock()

    async def publish(self, update: FeedUpdate) -> None:
        verify_feed_update(update)
        async with self._lock:
            self._history[(update.topic, update.owner)].append(update.payload)

    async def resolve(self, topic: str, owner: str) -> Optional[bytes]:
        history = self._history.get((topic, owner))
        return history[-1] if history else None

    def history(self, topic: str, owner: str) -> List[bytes]:
        return list(self._history.get((topic, owner), []))


class MemoryDirectory:
    """Directory entries per (owner, directory path)."""

    def __init__(self):
        self._entries: Dict[Tuple[str, str], Set[DirectoryEntry]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def add_entry(self, owner: str, dir_path: str, name: str, is_file: bool) -> None:
        async with self._lock:
            self._entries[(owner, dir_path)].add(DirectoryEntry(name=name, is_file=is_file))

    async def remove_entry(self, owner: str, dir_path: str, name: str, is_file: bool) -> None:
        async with self._lock:
            self._entries[(owner, dir_path)].discard(DirectoryEntry(name=name, is_file=is_file))

    async def list_entries(self, owner: str, dir_path: str) -> List[DirectoryEntry]:
        return sorted(self._entries.get((owner, dir_path), set()), key=lambda e: e.name)
