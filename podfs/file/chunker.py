"""
Block Chunker

Design Decision: Block Size
===========================

Options Considered:
| Size    | Pros                          | Cons                           |
|---------|-------------------------------|--------------------------------|
| 256KB   | Fine-grained, cheap retries   | Many store round-trips         |
| 1MB     | Good balance for remote store | Coarser partial reads          |
| 4MB     | Very low overhead             | Large single-request payloads  |

Decision: 1,000,000 bytes by default, configurable per upload
- The block size is recorded in the file metadata, so readers never guess
- The last block may be shorter, no block is ever longer

Chunking Strategy: Fixed-Size
- Pure and deterministic: same (data, block_size) -> same boundaries
- Block names come from the ordinal ("block-00000"), never from content,
  so manifest order is stable regardless of content addresses
"""

from pathlib import Path
from typing import AsyncIterator, Iterable, List, Tuple

import aiofiles

from ..config import DEFAULT_BLOCK_SIZE, assert_block_size


def generate_block_name(block_index: int) -> str:
    """Name of the block at the given ordinal."""
    return f"block-{block_index:05d}"


def split(data: bytes, block_size: int) -> List[bytes]:
    """
    Split a byte string into ordered blocks.

    Every block has exactly ``block_size`` bytes except possibly the last.
    Empty input yields no blocks.
    """
    assert_block_size(block_size)
    data = bytes(data)
    return [data[i:i + block_size] for i in range(0, len(data), block_size)]


def join(blocks: Iterable[bytes]) -> bytes:
    """Concatenate blocks in the given order."""
    return b''.join(blocks)


class BlockChunker:
    """
    Splits payloads and local files into fixed-size blocks.

    Features:
    - Configurable block size (validated on construction)
    - In-memory split for bytes payloads
    - Async file reading for uploads from disk
    """

    def __init__(self, block_size: int = DEFAULT_BLOCK_SIZE):
        assert_block_size(block_size)
        self.block_size = block_size

    def get_block_count(self, file_size: int) -> int:
        """Calculate number of blocks for a payload of given size."""
        return (file_size + self.block_size - 1) // self.block_size

    def get_block_bounds(self, block_index: int, file_size: int) -> Tuple[int, int]:
        """
        Get byte range for a specific block.

        Returns:
            (start_offset, length) tuple
        """
        start = block_index * self.block_size
        length = min(self.block_size, file_size - start)
        return start, length

    def split(self, data: bytes) -> List[bytes]:
        return split(data, self.block_size)

    async def chunk_file(self, file_path: Path) -> AsyncIterator[Tuple[int, bytes]]:
        """
        Split a local file into blocks.

        Yields:
            (block_index, block_data) tuples
        """
        file_path = Path(file_path)
        file_size = file_path.stat().st_size
        block_count = self.get_block_count(file_size)

        async with aiofiles.open(file_path, 'rb') as f:
            for block_index in range(block_count):
                yield block_index, await f.read(self.block_size)
