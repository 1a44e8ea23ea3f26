"""
File Module - Blocks, Manifests, Metadata and the Files API

This module handles file operations for the pod storage layer.
"""

from .chunker import BlockChunker, generate_block_name, join, split
from .manifest import Block, Blocks, blocks_to_manifest, manifest_to_blocks
from .metadata import META_VERSION, FileMetadata, decode_metadata, encode_metadata
from .files import DataUploadOptions, Files

__all__ = [
    'BlockChunker',
    'generate_block_name',
    'split',
    'join',
    'Block',
    'Blocks',
    'blocks_to_manifest',
    'manifest_to_blocks',
    'META_VERSION',
    'FileMetadata',
    'encode_metadata',
    'decode_metadata',
    'DataUploadOptions',
    'Files',
]
