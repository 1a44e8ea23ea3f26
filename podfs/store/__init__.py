"""
Store Module - Collaborator Interfaces and Local Implementations

Only the interfaces are exported here; ``memory``, ``disk`` and ``database``
are imported where they are used.
"""

from .base import ContentStore, DirectoryEntry, DirectoryIndex, FeedService, FeedUpdate

__all__ = [
    'ContentStore',
    'DirectoryEntry',
    'DirectoryIndex',
    'FeedService',
    'FeedUpdate',
]
