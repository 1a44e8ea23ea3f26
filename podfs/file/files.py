"""
Files - upload, download, delete and share files inside pods.

This is the public entry point of the file layer. It holds no identity of its
own: every writing operation takes the caller's ``Session``. Reading shared
content needs no session at all.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from ..account import Session, assert_pod_name
from ..connection import Connection
from ..config import assert_block_size
from ..errors import CorruptMetadata, DecodeError, InvalidPath
from ..feed import write_feed_data
from ..share.capsule import (
    FileShareInfo,
    create_file_share_info,
    get_shared_file_info,
    get_shared_pod_info,
    update_file_metadata,
    upload_share_info,
)
from ..store.base import DirectoryEntry
from ..utils import (
    assert_file_name,
    assert_full_path_with_name,
    combine,
    extract_path_info,
    get_unix_timestamp,
)
from . import handler
from .manifest import Blocks
from .metadata import META_VERSION, FileMetadata, encode_metadata, raw_to_file_metadata

logger = logging.getLogger(__name__)


@dataclass
class DataUploadOptions:
    """Per-upload settings; ``None`` falls back to the connection's Config."""
    block_size: Optional[int] = None
    content_type: Optional[str] = None


class Files:
    """
    Files management.

    Upload:
        blocks -> manifest -> metadata -> directory entry -> feed
    Download:
        feed -> metadata -> manifest -> blocks
    Share:
        published metadata + pod address -> encrypted capsule
    """

    def __init__(self, connection: Connection):
        self.connection = connection

    def _resolve_options(self, options: Optional[DataUploadOptions]) -> DataUploadOptions:
        options = options or DataUploadOptions()
        config = self.connection.config
        resolved = DataUploadOptions(
            block_size=config.block_size if options.block_size is None else options.block_size,
            content_type=config.content_type if options.content_type is None else options.content_type,
        )
        assert_block_size(resolved.block_size)
        return resolved

    # === Upload ===

    async def upload_data(self, session: Session, pod_name: str, full_path: str,
                          data: Union[bytes, str],
                          options: DataUploadOptions = None) -> FileMetadata:
        """
        Upload file content.

        Args:
            session: caller identity
            pod_name: pod where the file is stored
            full_path: full path of the file, e.g. "/docs/a.txt"
            data: file content; str is encoded as UTF-8
            options: block size and content type

        Returns:
            The published metadata
        """
        assert_pod_name(pod_name)
        assert_full_path_with_name(full_path)
        options = self._resolve_options(options)
        data = data.encode('utf-8') if isinstance(data, str) else bytes(data)

        pod = session.get_pod(pod_name)
        blocks = await handler.upload_blocks(self.connection, data, options.block_size)
        return await self._publish_new_file(pod, full_path, blocks, options)

    async def upload_file(self, session: Session, pod_name: str, full_path: str,
                          local_path: Path,
                          options: DataUploadOptions = None) -> FileMetadata:
        """Upload a local file, reading it block by block."""
        assert_pod_name(pod_name)
        assert_full_path_with_name(full_path)
        options = self._resolve_options(options)
        local_path = Path(local_path)
        if not local_path.is_file():
            raise FileNotFoundError(f"File not found: {local_path}")

        pod = session.get_pod(pod_name)
        blocks = await handler.upload_file_blocks(self.connection, local_path, options.block_size)
        return await self._publish_new_file(pod, full_path, blocks, options)

    async def _publish_new_file(self, pod, full_path: str, blocks: Blocks,
                                options: DataUploadOptions) -> FileMetadata:
        blocks_reference = await handler.upload_manifest(self.connection, blocks)
        path_info = extract_path_info(full_path)
        now = get_unix_timestamp()

        meta = FileMetadata(
            version=META_VERSION,
            pod_address=pod.pod_address,
            pod_name=pod.pod_name,
            file_path=path_info.path,
            file_name=path_info.filename,
            file_size=blocks.total_size,
            block_size=options.block_size,
            content_type=options.content_type,
            compression='',
            creation_time=now,
            access_time=now,
            modification_time=now,
            blocks_reference=blocks_reference,
        )

        await self._publish(pod, meta)
        logger.info(
            f"Uploaded {combine(meta.file_path, meta.file_name)} to pod {pod.pod_name} "
            f"({meta.file_size} bytes, {len(blocks.blocks)} blocks)"
        )
        return meta

    async def _publish(self, pod, meta: FileMetadata):
        """Register the directory entry, then publish metadata to the path's feed."""
        full_path = combine(meta.file_path, meta.file_name)
        await self.connection.directory.add_entry(
            pod.pod_address, meta.file_path, meta.file_name, True
        )
        await write_feed_data(self.connection, full_path, encode_metadata(meta), pod.pod_wallet)

    # === Download ===

    async def download_data(self, session: Session, pod_name: str, full_path: str) -> bytes:
        """
        Download file content.

        Args:
            session: caller identity
            pod_name: pod where the file is stored
            full_path: full path of the file
        """
        assert_pod_name(pod_name)
        assert_full_path_with_name(full_path)
        pod = session.get_pod(pod_name)
        return await handler.download_data(self.connection, _normalize(full_path), pod.pod_address)

    async def download_from_address(self, address: str, full_path: str) -> bytes:
        """Download a file published under an explicit pod address. Needs no session."""
        assert_full_path_with_name(full_path)
        return await handler.download_data(self.connection, _normalize(full_path), address)

    async def get_metadata(self, session: Session, pod_name: str, full_path: str) -> FileMetadata:
        assert_pod_name(pod_name)
        assert_full_path_with_name(full_path)
        pod = session.get_pod(pod_name)
        return await handler.get_file_metadata(self.connection, _normalize(full_path), pod.pod_address)

    # === Delete ===

    async def delete(self, session: Session, pod_name: str, full_path: str):
        """
        Delete a file from its directory.

        Blocks and feed history stay in place; only the name disappears.
        """
        assert_pod_name(pod_name)
        assert_full_path_with_name(full_path)
        pod = session.get_pod(pod_name)
        path_info = extract_path_info(full_path)
        await self.connection.directory.remove_entry(
            pod.pod_address, path_info.path, path_info.filename, True
        )
        logger.info(f"Deleted {full_path} from pod {pod_name}")

    async def list_directory(self, session: Session, pod_name: str,
                             dir_path: str = '/') -> List[DirectoryEntry]:
        """List the entries of a directory in a pod."""
        assert_pod_name(pod_name)
        if not isinstance(dir_path, str) or not dir_path.startswith('/'):
            raise InvalidPath(f"Directory path must be absolute: {dir_path!r}")
        pod = session.get_pod(pod_name)
        return await self.connection.directory.list_entries(pod.pod_address, combine(dir_path))

    # === Sharing ===

    async def share(self, session: Session, pod_name: str, full_path: str) -> str:
        """
        Share a file.

        Returns:
            Encrypted reference of the share capsule
        """
        assert_pod_name(pod_name)
        assert_full_path_with_name(full_path)
        pod = session.get_pod(pod_name)
        full_path = _normalize(full_path)

        meta = await handler.get_raw_metadata(self.connection, full_path, pod.pod_address)
        try:
            raw_to_file_metadata(meta)
        except DecodeError as e:
            raise CorruptMetadata(str(e))

        reference = await upload_share_info(
            self.connection, create_file_share_info(meta, pod.pod_address)
        )
        logger.info(f"Shared {full_path} from pod {pod_name}")
        return reference

    async def get_shared_info(self, reference: str) -> FileShareInfo:
        """
        Get shared file information.

        Can be executed without authentication.
        """
        return await get_shared_file_info(self.connection, reference)

    async def save_shared(self, session: Session, pod_name: str, parent_path: str,
                          reference: str, name: Optional[str] = None) -> FileMetadata:
        """
        Save a shared file into one of the caller's pods.

        No block is uploaded again: the metadata is re-homed and published
        under the importing pod.

        Args:
            session: caller identity
            pod_name: destination pod
            parent_path: destination directory
            reference: encrypted reference of the file capsule
            name: new file name (defaults to the shared name)

        Raises:
            InvalidPath: the file name is not a single path segment
        """
        assert_pod_name(pod_name)
        if not isinstance(parent_path, str) or not parent_path.startswith('/'):
            raise InvalidPath(f"Parent path must be absolute: {parent_path!r}")
        if name is not None:
            assert_file_name(name)

        info = await self.get_shared_info(reference)
        pod = session.get_pod(pod_name)
        meta = info.metadata

        # the shared name comes from the sender
        file_name = meta.file_name if name is None else name
        assert_file_name(file_name)
        full_path = combine(parent_path, file_name)
        assert_full_path_with_name(full_path)
        path_info = extract_path_info(full_path)

        meta = update_file_metadata(
            meta, pod_name, path_info.path, path_info.filename, pod.pod_address
        )
        await self._publish(pod, meta)
        logger.info(f"Saved shared file as {full_path} in pod {pod_name}")
        return meta

    async def download_shared(self, reference: str) -> bytes:
        """
        Download a shared file.

        Can be executed without authentication.
        """
        info = await self.get_shared_info(reference)
        meta = info.metadata
        return await handler.download_data(
            self.connection,
            combine(meta.file_path, meta.file_name),
            info.source_address,
        )

    async def download_from_shared_pod(self, pod_reference: str, full_path: str) -> bytes:
        """
        Download a file from a shared pod.

        Can be executed without authentication.
        """
        assert_full_path_with_name(full_path)
        info = await get_shared_pod_info(self.connection, pod_reference)
        return await handler.download_data(self.connection, _normalize(full_path), info.pod_address)


def _normalize(full_path: str) -> str:
    path_info = extract_path_info(full_path)
    return combine(path_info.path, path_info.filename)
