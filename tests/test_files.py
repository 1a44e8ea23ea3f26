"""Tests for upload, download and delete through the Files API."""

import asyncio
import json
import random

import pytest

from podfs.account import Session
from podfs.config import Config
from podfs.connection import Connection
from podfs.errors import (
    CorruptManifest,
    CorruptMetadata,
    IncompleteBlocks,
    InvalidPath,
    NotAuthenticated,
    NotFound,
    PodNotFound,
    StoreError,
    ValidationError,
    VersionError,
)
from podfs.feed import write_feed_data
from podfs.file import DataUploadOptions, Files
from podfs.file.handler import upload_bytes, upload_manifest
from podfs.file.manifest import Block, Blocks, manifest_to_blocks
from podfs.file.metadata import encode_metadata, file_metadata_to_raw
from podfs.store.memory import MemoryStore
from podfs.utils import is_encrypted_reference, is_reference


async def read_manifest(connection, meta):
    return manifest_to_blocks(await connection.store.get(meta.blocks_reference))


class TestUploadDownload:
    """Test the upload-then-download round trip."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", [0, 1, 4, 13])
    async def test_round_trip(self, files, session, size):
        data = bytes(random.getrandbits(8) for _ in range(size))

        await files.upload_data(session, 'photos', '/docs/file.bin', data)

        assert await files.download_data(session, 'photos', '/docs/file.bin') == data

    @pytest.mark.asyncio
    async def test_text_payload_is_utf8(self, files, session):
        await files.upload_data(session, 'photos', '/notes.txt', 'héllo wörld')

        assert await files.download_data(session, 'photos', '/notes.txt') == 'héllo wörld'.encode()

    @pytest.mark.asyncio
    async def test_two_and_a_half_megabytes(self, files, connection, session):
        data = bytes(range(256)) * (2_500_000 // 256) + b'\x01' * (2_500_000 % 256)

        meta = await files.upload_data(
            session, 'photos', '/big.bin', data, DataUploadOptions(block_size=1_000_000)
        )
        blocks = await read_manifest(connection, meta)

        assert meta.file_size == 2_500_000
        assert meta.block_size == 1_000_000
        assert [b.size for b in blocks.blocks] == [1_000_000, 1_000_000, 500_000]
        assert [b.name for b in blocks.blocks] == ['block-00000', 'block-00001', 'block-00002']
        assert await files.download_data(session, 'photos', '/big.bin') == data

    @pytest.mark.asyncio
    async def test_metadata_fields(self, files, session):
        meta = await files.upload_data(
            session, 'photos', '/docs/a/report.pdf', b'0123456789',
            DataUploadOptions(content_type='application/pdf'),
        )

        assert meta.pod_name == 'photos'
        assert meta.pod_address == session.pods['photos'].address
        assert meta.file_path == '/docs/a'
        assert meta.file_name == 'report.pdf'
        assert meta.file_size == 10
        assert meta.block_size == 4
        assert meta.content_type == 'application/pdf'
        assert meta.compression == ''
        assert meta.creation_time == meta.access_time == meta.modification_time
        assert is_reference(meta.blocks_reference)

    @pytest.mark.asyncio
    async def test_published_metadata_matches_returned(self, files, session):
        meta = await files.upload_data(session, 'photos', '/a.txt', b'abc')

        assert await files.get_metadata(session, 'photos', '/a.txt') == meta

    @pytest.mark.asyncio
    async def test_reupload_overwrites(self, files, session):
        await files.upload_data(session, 'photos', '/a.txt', b'first version')
        await files.upload_data(session, 'photos', '/a.txt', b'second')

        assert await files.download_data(session, 'photos', '/a.txt') == b'second'
        entries = await files.list_directory(session, 'photos', '/')
        assert [e.name for e in entries] == ['a.txt']

    @pytest.mark.asyncio
    async def test_pods_are_separate(self, files, session):
        await files.upload_data(session, 'photos', '/a.txt', b'photo')

        with pytest.raises(NotFound):
            await files.download_data(session, 'backup', '/a.txt')

    @pytest.mark.asyncio
    async def test_download_from_address_needs_no_session(self, files, session):
        await files.upload_data(session, 'photos', '/a.txt', b'public')

        data = await files.download_from_address(session.pods['photos'].address, '/a.txt')

        assert data == b'public'

    @pytest.mark.asyncio
    async def test_upload_file(self, files, session, tmp_path):
        local = tmp_path / 'local.bin'
        local.write_bytes(b'local file content')

        meta = await files.upload_file(session, 'photos', '/local.bin', local)

        assert meta.file_size == len(b'local file content')
        assert await files.download_data(session, 'photos', '/local.bin') == b'local file content'

    @pytest.mark.asyncio
    async def test_encrypted_blocks(self, session):
        connection = Connection.in_memory(Config(block_size=4, encrypt_blocks=True))
        files = Files(connection)

        meta = await files.upload_data(session, 'photos', '/secret.txt', b'top secret data')
        blocks = await read_manifest(connection, meta)

        assert all(is_encrypted_reference(b.reference) for b in blocks.blocks)
        assert await files.download_data(session, 'photos', '/secret.txt') == b'top secret data'


class TestOrdering:
    """Test concurrency limits and ordering guarantees."""

    @pytest.mark.asyncio
    async def test_out_of_order_completion_keeps_block_order(self, session):
        class JitterStore(MemoryStore):
            async def put(self, data):
                await asyncio.sleep(random.random() / 100)
                return await super().put(data)

            async def get(self, reference):
                await asyncio.sleep(random.random() / 100)
                return await super().get(reference)

        connection = Connection.in_memory(Config(block_size=3))
        connection.store = JitterStore()
        files = Files(connection)
        data = bytes(range(100))

        meta = await files.upload_data(session, 'photos', '/a.bin', data)
        blocks = await read_manifest(connection, meta)

        assert [b.name for b in blocks.blocks] == sorted(b.name for b in blocks.blocks)
        assert await files.download_data(session, 'photos', '/a.bin') == data

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, session):
        class CountingStore(MemoryStore):
            def __init__(self):
                super().__init__()
                self.in_flight = 0
                self.peak = 0

            async def put(self, data):
                self.in_flight += 1
                self.peak = max(self.peak, self.in_flight)
                await asyncio.sleep(0.001)
                self.in_flight -= 1
                return await super().put(data)

        store = CountingStore()
        connection = Connection.in_memory(Config(block_size=1, max_concurrent_uploads=2))
        connection.store = store

        await Files(connection).upload_data(session, 'photos', '/a.bin', b'x' * 20)

        assert store.peak == 2

    @pytest.mark.asyncio
    async def test_manifest_is_uploaded_last(self, session):
        class RecordingStore(MemoryStore):
            def __init__(self):
                super().__init__()
                self.puts = []

            async def put(self, data):
                self.puts.append(bytes(data))
                return await super().put(data)

        store = RecordingStore()
        connection = Connection.in_memory(Config(block_size=2))
        connection.store = store

        meta = await Files(connection).upload_data(session, 'photos', '/a.bin', b'abcdefg')

        assert len(store.puts) == 5
        assert json.loads(store.puts[-1])['Blocks']
        assert await store.get(meta.blocks_reference) == store.puts[-1]

    @pytest.mark.asyncio
    async def test_failed_block_aborts_upload(self, session):
        class FailingStore(MemoryStore):
            async def put(self, data):
                if self.put_count == 2:
                    raise StoreError("disk full")
                return await super().put(data)

        connection = Connection.in_memory(Config(block_size=1, max_concurrent_uploads=2))
        connection.store = FailingStore()
        files = Files(connection)

        with pytest.raises(StoreError):
            await files.upload_data(session, 'photos', '/a.bin', b'x' * 10)

        assert connection.store.put_count == 2
        assert await files.list_directory(session, 'photos', '/') == []
        with pytest.raises(NotFound):
            await files.download_data(session, 'photos', '/a.bin')



class TestValidation:
    """Test input validation happens before any store access."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ['', '/', '/docs/', 'relative.txt', '/docs/..'])
    async def test_invalid_path(self, files, connection, session, path):
        with pytest.raises(InvalidPath):
            await files.upload_data(session, 'photos', path, b'data')

        assert connection.store.put_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("pod_name", ['', 'a/b', 'x' * 65])
    async def test_invalid_pod_name(self, files, connection, session, pod_name):
        with pytest.raises(ValidationError):
            await files.upload_data(session, pod_name, '/a.txt', b'data')

        assert connection.store.put_count == 0

    @pytest.mark.asyncio
    async def test_invalid_block_size(self, files, connection, session):
        with pytest.raises(ValidationError):
            await files.upload_data(
                session, 'photos', '/a.txt', b'data', DataUploadOptions(block_size=0)
            )

        assert connection.store.put_count == 0

    @pytest.mark.asyncio
    async def test_not_authenticated(self, files, connection):
        with pytest.raises(NotAuthenticated):
            await files.upload_data(Session.anonymous(), 'photos', '/a.txt', b'data')

        assert connection.store.put_count == 0

    @pytest.mark.asyncio
    async def test_pod_not_found(self, files, session):
        with pytest.raises(PodNotFound):
            await files.upload_data(session, 'missing', '/a.txt', b'data')


class TestDownloadErrors:

    @pytest.mark.asyncio
    async def test_not_found(self, files, session):
        with pytest.raises(NotFound):
            await files.download_data(session, 'photos', '/nothing.txt')

    @pytest.mark.asyncio
    async def test_missing_block(self, files, connection, session):
        meta = await files.upload_data(session, 'photos', '/a.bin', b'0123456789')
        blocks = await read_manifest(connection, meta)
        connection.store.delete(blocks.blocks[1].reference)

        with pytest.raises(IncompleteBlocks) as exc_info:
            await files.download_data(session, 'photos', '/a.bin')

        assert exc_info.value.missing == ['block-00001']

    @pytest.mark.asyncio
    async def test_corrupt_metadata(self, files, connection, session):
        await write_feed_data(connection, '/a.bin', b'not metadata', session.pods['photos'])

        with pytest.raises(CorruptMetadata):
            await files.download_data(session, 'photos', '/a.bin')

    @pytest.mark.asyncio
    async def test_unsupported_metadata_version(self, files, connection, session):
        meta = await files.upload_data(session, 'photos', '/a.bin', b'data')
        raw = file_metadata_to_raw(meta)
        raw['version'] = 99
        await write_feed_data(connection, '/a.bin', json.dumps(raw).encode(), session.pods['photos'])

        with pytest.raises(VersionError):
            await files.download_data(session, 'photos', '/a.bin')

    @pytest.mark.asyncio
    async def test_corrupt_manifest(self, files, connection, session):
        meta = await files.upload_data(session, 'photos', '/a.bin', b'data')
        meta.blocks_reference = await connection.store.put(b'{"Blocks": "nope"}')
        await write_feed_data(connection, '/a.bin', encode_metadata(meta), session.pods['photos'])

        with pytest.raises(CorruptManifest):
            await files.download_data(session, 'photos', '/a.bin')

    @pytest.mark.asyncio
    async def test_size_mismatch_is_corrupt(self, files, connection, session):
        meta = await files.upload_data(session, 'photos', '/a.bin', b'data')
        meta.file_size = 5
        await write_feed_data(connection, '/a.bin', encode_metadata(meta), session.pods['photos'])

        with pytest.raises(CorruptManifest):
            await files.download_data(session, 'photos', '/a.bin')

    @pytest.mark.asyncio
    async def test_block_key_that_does_not_decrypt(self, files, connection, session):
        meta = await files.upload_data(session, 'photos', '/a.bin', b'data')
        reference = await upload_bytes(connection, b'data', encrypt_data=True)
        wrong_key = reference[:64] + '00' * 32
        meta.blocks_reference = await upload_manifest(
            connection, Blocks(blocks=[Block('block-00000', 4, 4, wrong_key)])
        )
        await write_feed_data(connection, '/a.bin', encode_metadata(meta), session.pods['photos'])

        with pytest.raises(CorruptManifest):
            await files.download_data(session, 'photos', '/a.bin')

    @pytest.mark.asyncio
    async def test_manifest_key_that_does_not_decrypt(self, files, connection, session):
        meta = await files.upload_data(session, 'photos', '/a.bin', b'data')
        manifest = await connection.store.get(meta.blocks_reference)
        reference = await upload_bytes(connection, manifest, encrypt_data=True)
        meta.blocks_reference = reference[:64] + '00' * 32
        await write_feed_data(connection, '/a.bin', encode_metadata(meta), session.pods['photos'])

        with pytest.raises(CorruptManifest):
            await files.download_data(session, 'photos', '/a.bin')



class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_hides_directory_entry(self, files, session):
        await files.upload_data(session, 'photos', '/docs/a.txt', b'a')
        await files.upload_data(session, 'photos', '/docs/b.txt', b'b')

        await files.delete(session, 'photos', '/docs/a.txt')

        entries = await files.list_directory(session, 'photos', '/docs')
        assert [e.name for e in entries] == ['b.txt']

    @pytest.mark.asyncio
    async def test_delete_is_logical(self, files, session):
        await files.upload_data(session, 'photos', '/docs/a.txt', b'still here')

        await files.delete(session, 'photos', '/docs/a.txt')

        assert await files.download_data(session, 'photos', '/docs/a.txt') == b'still here'

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, files, session):
        await files.delete(session, 'photos', '/never/uploaded.txt')
        await files.delete(session, 'photos', '/never/uploaded.txt')

        assert await files.list_directory(session, 'photos', '/never') == []
