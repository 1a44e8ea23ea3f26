"""
Disk Content Store

Design Decision: Blob Layout
============================

Options Considered:
1. Flat directory named by address
   - A pod with large files produces millions of blobs in one directory
2. Fan-out by the first byte of the address
   - 256 subdirectories, the layout Git uses for loose objects
3. Blobs inside the SQLite database
   - One file to back up, but large rows bloat the database

Decision: Fan-out by the first address byte
- blobs/<ab>/<abcdef...>, where <ab> is the first two hex chars
- A blob is written under temp/ and renamed into place, so a reader never
  sees a half-written blob
- Reads re-hash the bytes; a blob that no longer matches its address is an
  error, not missing data

```
<data_dir>/
├── blobs/
│   ├── 3f/
│   │   └── 3f9a...
│   └── c0/
│       └── c01d...
└── temp/
```
"""

import hashlib
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from ..errors import StoreError
from ..utils import is_reference

logger = logging.getLogger(__name__)


@dataclass
class StorageStats:
    total_blobs: int
    total_bytes: int


class DiskStore:
    """ContentStore on the local filesystem, addressed by SHA-256."""

    def __init__(self, data_dir: Path):
        root = Path(data_dir)
        self.blobs_dir = root / "blobs"
        self.temp_dir = root / "temp"
        self.blobs_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def _blob_path(self, reference: str) -> Path:
        return self.blobs_dir / reference[:2] / reference

    async def put(self, data: bytes) -> str:
        data = bytes(data)
        reference = hashlib.sha256(data).hexdigest()
        blob_path = self._blob_path(reference)

        # Same address means same bytes
        if blob_path.exists():
            return reference

        await aiofiles.os.makedirs(blob_path.parent, exist_ok=True)
        staging = self.temp_dir / f"{reference}.{uuid.uuid4().hex}.tmp"
        async with aiofiles.open(staging, 'wb') as f:
            await f.write(data)
        await aiofiles.os.rename(staging, blob_path)

        logger.debug(f"Stored blob {reference[:16]}... ({len(data)} bytes)")
        return reference

    async def get(self, reference: str) -> Optional[bytes]:
        """
        Read a blob back.

        Returns:
            The blob, or None when nothing is stored under ``reference``

        Raises:
            StoreError: the bytes on disk no longer hash to ``reference``
        """
        if not is_reference(reference):
            return None
        blob_path = self._blob_path(reference)
        if not blob_path.exists():
            return None

        async with aiofiles.open(blob_path, 'rb') as f:
            blob = await f.read()

        if hashlib.sha256(blob).hexdigest() != reference:
            raise StoreError(f"Blob {reference} is corrupted on disk")
        return blob

    async def has(self, reference: str) -> bool:
        return is_reference(reference) and self._blob_path(reference).exists()

    async def get_stats(self) -> StorageStats:
        sizes = [
            blob.stat().st_size
            for fan_out in self.blobs_dir.iterdir() if fan_out.is_dir()
            for blob in fan_out.iterdir()
        ]
        return StorageStats(total_blobs=len(sizes), total_bytes=sum(sizes))
