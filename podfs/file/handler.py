"""
Block Transfer and Download Pipeline

Design Decision: Transfer Strategy
==================================

Options Considered:
1. Sequential upload/download, one block at a time
   - Simple, but one round-trip per block
2. Unbounded parallelism
   - Fast, but memory and connection use grow with file size
3. Bounded parallelism (semaphore)
   - Fast, predictable resource use

Decision: Bounded parallelism
- ``max_concurrent_uploads`` / ``max_concurrent_downloads`` from Config
- Blocks are independent, so completion order does not matter
- Results are kept in block order; the manifest is only built after every
  block upload finished, and blocks are only fetched after the manifest
  was decoded

Upload Flow:
1. Split payload (or read file) into blocks
2. Upload blocks in parallel, collect one descriptor per block
3. Upload manifest, its reference becomes ``blocks_reference``

Download Flow:
1. Resolve feed -> metadata
2. Fetch and decode manifest
3. Fetch blocks in parallel
4. Join in manifest order
"""

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Optional, Tuple

from ..errors import (
    CorruptManifest,
    CorruptMetadata,
    DecodeError,
    DecryptionError,
    IncompleteBlocks,
    NotFound,
)
from ..feed import read_feed_data
from ..store.encryption import (
    decrypt,
    encrypt,
    make_encrypted_reference,
    split_encrypted_reference,
)
from ..utils import assert_reference, is_encrypted_reference
from .chunker import BlockChunker, generate_block_name, join, split
from .manifest import Block, Blocks, blocks_to_manifest, manifest_to_blocks
from .metadata import FileMetadata, decode_metadata, parse_raw_metadata

logger = logging.getLogger(__name__)


# === Single objects ===

async def upload_bytes(connection, data: bytes, encrypt_data: bool = False) -> str:
    """
    Upload one object.

    Returns:
        A plain reference, or an encrypted reference when ``encrypt_data``
    """
    if not encrypt_data:
        return await connection.store.put(data)

    key, stored = encrypt(data)
    address = await connection.store.put(stored)
    return make_encrypted_reference(address, key)


async def download_bytes(connection, reference: str) -> Optional[bytes]:
    """
    Fetch one object, decrypting when given an encrypted reference.

    Returns:
        Object bytes, or None if the store does not have it

    Raises:
        DecryptionError: the key in the reference does not open the object
    """
    assert_reference(reference)

    if not is_encrypted_reference(reference):
        return await connection.store.get(reference)

    address, key = split_encrypted_reference(reference)
    stored = await connection.store.get(address)
    if stored is None:
        return None
    return decrypt(key, stored)


# === Blocks ===

async def _iter_payload(data: bytes, block_size: int) -> AsyncIterator[Tuple[int, bytes]]:
    for index, block in enumerate(split(data, block_size)):
        yield index, block


async def upload_block_stream(connection, blocks: AsyncIterator[Tuple[int, bytes]]) -> Blocks:
    """
    Upload a stream of (index, data) blocks with bounded concurrency.

    At most ``max_concurrent_uploads`` blocks are held in memory at once.
    Descriptors come back in stream order, whatever order uploads finish in.
    """
    semaphore = asyncio.Semaphore(connection.config.max_concurrent_uploads)
    encrypt_blocks = connection.config.encrypt_blocks
    tasks = []

    async def upload_one(index: int, data: bytes) -> Block:
        reference = await upload_bytes(connection, data, encrypt_blocks)
        logger.debug(f"Uploaded {generate_block_name(index)} ({len(data)} bytes)")
        return Block(
            name=generate_block_name(index),
            size=len(data),
            compressed_size=len(data),
            reference=reference,
        )

    try:
        async for index, data in blocks:
            # The slot is taken before the next block is read and given back
            # when the task is done, also when it was cancelled before running
            await semaphore.acquire()
            task = asyncio.create_task(upload_one(index, data))
            task.add_done_callback(lambda _: semaphore.release())
            tasks.append(task)
        results = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        raise

    return Blocks(blocks=list(results))


async def upload_blocks(connection, data: bytes, block_size: int) -> Blocks:
    """Split a payload and upload its blocks."""
    return await upload_block_stream(connection, _iter_payload(data, block_size))


async def upload_file_blocks(connection, file_path: Path, block_size: int) -> Blocks:
    """Read a local file block by block and upload it."""
    chunker = BlockChunker(block_size)
    return await upload_block_stream(connection, chunker.chunk_file(Path(file_path)))


async def upload_manifest(connection, blocks: Blocks) -> str:
    """Upload the manifest of a block collection, return its reference."""
    return await upload_bytes(connection, blocks_to_manifest(blocks))


async def download_blocks(connection, blocks: Blocks) -> bytes:
    """
    Fetch all blocks of a manifest and join them in manifest order.

    Raises:
        IncompleteBlocks: any block is missing from the store
        CorruptManifest: a block does not decrypt, or fetched sizes disagree
            with the manifest
    """
    semaphore = asyncio.Semaphore(connection.config.max_concurrent_downloads)

    async def fetch(block: Block) -> Optional[bytes]:
        async with semaphore:
            try:
                return await download_bytes(connection, block.reference)
            except DecryptionError as e:
                raise CorruptManifest(f"{block.name}: {e}")

    results = await asyncio.gather(*(fetch(block) for block in blocks.blocks))

    missing = [block.name for block, data in zip(blocks.blocks, results) if data is None]
    if missing:
        raise IncompleteBlocks(missing)

    for block, data in zip(blocks.blocks, results):
        if len(data) != block.size:
            raise CorruptManifest(
                f"{block.name} is {len(data)} bytes, manifest says {block.size}"
            )

    return join(results)


# === Metadata ===

async def get_raw_metadata(connection, full_path: str, address: str) -> dict:
    """
    Resolve the feed of a path and parse its payload as a JSON object.

    Raises:
        NotFound: no feed entry
        CorruptMetadata: payload is not a JSON object
    """
    payload = await read_feed_data(connection, full_path, address)
    try:
        return parse_raw_metadata(payload)
    except DecodeError as e:
        raise CorruptMetadata(str(e))


async def get_file_metadata(connection, full_path: str, address: str) -> FileMetadata:
    """
    Resolve and decode the metadata of a path.

    Raises:
        NotFound: no feed entry
        CorruptMetadata: structurally invalid record
        VersionError: record has an unsupported version
    """
    payload = await read_feed_data(connection, full_path, address)
    try:
        return decode_metadata(payload)
    except DecodeError as e:
        raise CorruptMetadata(str(e))


async def download_data(connection, full_path: str, address: str) -> bytes:
    """
    Download the content of a path published under ``address``.

    Raises:
        NotFound: no feed entry, or the manifest is gone
        CorruptMetadata / CorruptManifest: structural decode failure
        IncompleteBlocks: some blocks are missing
    """
    meta = await get_file_metadata(connection, full_path, address)

    try:
        manifest = await download_bytes(connection, meta.blocks_reference)
    except DecryptionError as e:
        raise CorruptManifest(f"Manifest of {full_path}: {e}")
    if manifest is None:
        raise NotFound(f"Manifest {meta.blocks_reference[:16]}... of {full_path} not found")

    try:
        blocks = manifest_to_blocks(manifest)
    except DecodeError as e:
        raise CorruptManifest(str(e))

    data = await download_blocks(connection, blocks)
    if len(data) != meta.file_size:
        raise CorruptManifest(
            f"{full_path} assembled to {len(data)} bytes, metadata says {meta.file_size}"
        )

    logger.info(f"Downloaded {full_path} ({len(data)} bytes, {len(blocks.blocks)} blocks)")
    return data
