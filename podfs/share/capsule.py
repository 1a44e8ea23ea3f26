"""
Share Capsules

A share capsule is a small JSON document uploaded as an encrypted object.
Its encrypted reference is the only thing handed to the recipient: it locates
the capsule and carries the key to open it.

File capsule:
```
{"meta": {<raw file metadata, as published>}, "source_address": "<pod address>"}
```

Pod capsule:
```
{"pod_name": "...", "pod_address": "...", "user_address": "..."}
```

``source_address`` is needed because metadata alone does not say whose feed
the file lives under.
"""

import json
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ..account import assert_pod_name
from ..errors import CorruptShareInfo, DecodeError, NotFound, ValidationError
from ..file.handler import download_bytes, upload_bytes
from ..file.metadata import FileMetadata, raw_to_file_metadata
from ..utils import assert_encrypted_reference, get_unix_timestamp, prepare_address

logger = logging.getLogger(__name__)


@dataclass
class FileShareInfo:
    """Decoded file capsule."""
    meta: Dict[str, Any]
    source_address: str

    def to_dict(self) -> Dict[str, Any]:
        return {'meta': self.meta, 'source_address': self.source_address}

    @property
    def metadata(self) -> FileMetadata:
        return raw_to_file_metadata(self.meta)


@dataclass
class PodShareInfo:
    """Decoded pod capsule."""
    pod_name: str
    pod_address: str
    user_address: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pod_name': self.pod_name,
            'pod_address': self.pod_address,
            'user_address': self.user_address,
        }


class _RawFileShareInfo(BaseModel):
    model_config = ConfigDict(extra='ignore')

    meta: Dict[str, Any]
    source_address: StrictStr


class _RawPodShareInfo(BaseModel):
    model_config = ConfigDict(extra='ignore')

    pod_name: StrictStr
    pod_address: StrictStr
    user_address: StrictStr = ''


def create_file_share_info(meta: Dict[str, Any], pod_address: str) -> FileShareInfo:
    return FileShareInfo(meta=meta, source_address=prepare_address(pod_address))


def encode_share_info(info) -> bytes:
    return json.dumps(info.to_dict(), separators=(',', ':')).encode('utf-8')


def _load_json_object(data: bytes) -> Dict[str, Any]:
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptShareInfo(f"Share info is not valid JSON: {e}")
    if not isinstance(document, dict):
        raise CorruptShareInfo("Share info must be a JSON object")
    return document


def decode_file_share_info(data: bytes) -> FileShareInfo:
    """
    Decode a file capsule.

    The embedded metadata must itself be a valid metadata record, and the
    source address must be an address.
    """
    try:
        raw = _RawFileShareInfo.model_validate(_load_json_object(data))
    except PydanticValidationError as e:
        raise CorruptShareInfo(f"Invalid file share info: {e}")

    try:
        raw_to_file_metadata(raw.meta)
        source_address = prepare_address(raw.source_address)
    except (DecodeError, ValidationError) as e:
        raise CorruptShareInfo(f"Invalid file share info: {e}")

    return FileShareInfo(meta=raw.meta, source_address=source_address)


def decode_pod_share_info(data: bytes) -> PodShareInfo:
    try:
        raw = _RawPodShareInfo.model_validate(_load_json_object(data))
        pod_address = prepare_address(raw.pod_address)
    except (PydanticValidationError, ValidationError) as e:
        raise CorruptShareInfo(f"Invalid pod share info: {e}")

    return PodShareInfo(
        pod_name=raw.pod_name,
        pod_address=pod_address,
        user_address=raw.user_address,
    )


def update_file_metadata(meta: FileMetadata, pod_name: str, file_path: str,
                         file_name: str, pod_address: str) -> FileMetadata:
    """
    Re-home shared metadata into the importing pod.

    Content fields (size, block size, blocks reference, content type,
    creation time) are kept; access and modification time are refreshed.
    """
    now = get_unix_timestamp()
    return replace(
        meta,
        pod_name=pod_name,
        pod_address=pod_address,
        file_path=file_path,
        file_name=file_name,
        access_time=now,
        modification_time=now,
    )


async def upload_share_info(connection, info) -> str:
    """Upload a capsule as an encrypted object, return its encrypted reference."""
    return await upload_bytes(connection, encode_share_info(info), encrypt_data=True)


async def _download_capsule(connection, reference: str) -> bytes:
    assert_encrypted_reference(reference)
    try:
        data = await download_bytes(connection, reference)
    except DecodeError as e:
        raise CorruptShareInfo(str(e))
    if data is None:
        raise NotFound(f"Share info {reference[:16]}... not found")
    return data


async def get_shared_file_info(connection, reference: str) -> FileShareInfo:
    """
    Open a file capsule. Needs no session.

    Raises:
        InvalidReference: not an encrypted reference (before any store access)
        NotFound: capsule is not in the store
        CorruptShareInfo: capsule does not decrypt or does not parse
    """
    return decode_file_share_info(await _download_capsule(connection, reference))


async def get_shared_pod_info(connection, reference: str) -> PodShareInfo:
    """Open a pod capsule. Needs no session."""
    return decode_pod_share_info(await _download_capsule(connection, reference))


async def share_pod(connection, session, pod_name: str) -> str:
    """
    Share a whole pod for reading.

    Returns:
        Encrypted reference of the pod capsule
    """
    assert_pod_name(pod_name)
    pod = session.get_pod(pod_name)
    info = PodShareInfo(
        pod_name=pod_name,
        pod_address=pod.pod_address,
        user_address=session.user_address,
    )
    reference = await upload_share_info(connection, info)
    logger.info(f"Shared pod {pod_name}")
    return reference
