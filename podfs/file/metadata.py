"""
File Metadata Codec

The metadata record is what gets published through a path's feed. It is the
only entry point to a file: it names the manifest (``blocks_reference``) and
carries the sizes needed to read it back.

Wire format (JSON, snake_case, versioned):
```
{"version": 2, "pod_address": "...", "pod_name": "...", "file_path": "/docs",
 "file_name": "a.txt", "file_size": 2500000, "block_size": 1000000,
 "content_type": "", "compression": "", "creation_time": 1700000000,
 "access_time": 1700000000, "modification_time": 1700000000,
 "file_inode_reference": "<base64 of manifest reference>"}
```

The codec checks structure only. Consistency between ``file_size`` and the
manifest is established by the code that builds the record.
"""

import json
from dataclasses import dataclass, asdict
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ..errors import FormatError, SchemaError, VersionError
from .manifest import base64_to_reference, reference_to_base64

# Schema version for the metadata record
META_VERSION = 2
SUPPORTED_VERSIONS = frozenset({META_VERSION})


@dataclass
class FileMetadata:
    """Versioned metadata of a stored file."""
    version: int
    pod_address: str
    pod_name: str
    file_path: str
    file_name: str
    file_size: int
    block_size: int
    content_type: str
    compression: str
    creation_time: int
    access_time: int
    modification_time: int
    blocks_reference: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RawFileMetadata(BaseModel):
    """Metadata record as it appears on the wire."""
    model_config = ConfigDict(extra='ignore')

    version: StrictInt
    pod_address: StrictStr = ''
    pod_name: StrictStr
    file_path: StrictStr
    file_name: StrictStr
    file_size: StrictInt = Field(ge=0)
    block_size: StrictInt = Field(ge=0)
    content_type: StrictStr
    compression: StrictStr
    creation_time: StrictInt
    access_time: StrictInt
    modification_time: StrictInt
    file_inode_reference: StrictStr


def file_metadata_to_raw(meta: FileMetadata) -> Dict[str, Any]:
    """Convert metadata into its wire dictionary."""
    return {
        'version': meta.version,
        'pod_address': meta.pod_address,
        'pod_name': meta.pod_name,
        'file_path': meta.file_path,
        'file_name': meta.file_name,
        'file_size': meta.file_size,
        'block_size': meta.block_size,
        'content_type': meta.content_type,
        'compression': meta.compression,
        'creation_time': meta.creation_time,
        'access_time': meta.access_time,
        'modification_time': meta.modification_time,
        'file_inode_reference': reference_to_base64(meta.blocks_reference),
    }


def raw_to_file_metadata(raw: Any) -> FileMetadata:
    """
    Convert a wire dictionary into FileMetadata.

    Raises:
        VersionError: ``version`` present but not recognized
        SchemaError: required fields absent or mistyped
    """
    if not isinstance(raw, dict):
        raise SchemaError("Metadata must be a JSON object")

    if 'version' not in raw:
        raise SchemaError("Metadata has no version")
    version = raw['version']
    if isinstance(version, bool) or not isinstance(version, int):
        raise SchemaError(f"Metadata version must be an integer, got {version!r}")
    if version not in SUPPORTED_VERSIONS:
        raise VersionError(version)

    try:
        record = RawFileMetadata.model_validate(raw)
    except PydanticValidationError as e:
        raise SchemaError(f"Invalid metadata: {e}")

    return FileMetadata(
        version=record.version,
        pod_address=record.pod_address,
        pod_name=record.pod_name,
        file_path=record.file_path,
        file_name=record.file_name,
        file_size=record.file_size,
        block_size=record.block_size,
        content_type=record.content_type,
        compression=record.compression,
        creation_time=record.creation_time,
        access_time=record.access_time,
        modification_time=record.modification_time,
        blocks_reference=base64_to_reference(record.file_inode_reference),
    )


def encode_metadata(meta: FileMetadata) -> bytes:
    return json.dumps(file_metadata_to_raw(meta), separators=(',', ':')).encode('utf-8')


def parse_raw_metadata(data: bytes) -> Dict[str, Any]:
    """Parse metadata bytes into the raw dictionary without converting it."""
    try:
        raw = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise FormatError(f"Metadata is not valid JSON: {e}")
    if not isinstance(raw, dict):
        raise FormatError("Metadata must be a JSON object")
    return raw


def decode_metadata(data: bytes) -> FileMetadata:
    return raw_to_file_metadata(parse_raw_metadata(data))
