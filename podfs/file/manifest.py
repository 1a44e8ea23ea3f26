"""
Blocks Manifest

Design Decision: Manifest Format
================================

The manifest lists a file's blocks in reassembly order. It is stored as one
more content-addressed object and its reference becomes the metadata's
``blocks_reference``.

Options Considered:
1. JSON - Human readable, interoperable with other clients
2. Protocol Buffers - Compact, typed
3. Custom binary - Most compact

Decision: JSON with the field names other pod clients already read
```
{"Blocks": [
    {"Name": "block-00000", "Size": 1000000, "CompressedSize": 1000000,
     "Reference": {"R": "<base64 of reference bytes>"}}
]}
```
- Order in the document is the collection order, never sorted
- Compact separators so identical Blocks give identical bytes
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import List

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from ..errors import FormatError, InvalidReference, SchemaError
from ..utils import assert_reference


@dataclass
class Block:
    """Descriptor of a single stored block."""
    name: str
    size: int
    compressed_size: int
    reference: str  # hex content reference


@dataclass
class Blocks:
    """Ordered collection of block descriptors."""
    blocks: List[Block] = field(default_factory=list)

    @property
    def total_size(self) -> int:
        return sum(block.size for block in self.blocks)


# === Wire models ===

class _RawReference(BaseModel):
    model_config = ConfigDict(extra='ignore')

    R: StrictStr


class _RawBlock(BaseModel):
    model_config = ConfigDict(extra='ignore')

    Name: StrictStr
    Size: StrictInt = Field(ge=0)
    CompressedSize: StrictInt = Field(ge=0)
    Reference: _RawReference


class _RawBlocks(BaseModel):
    model_config = ConfigDict(extra='ignore')

    Blocks: List[_RawBlock]


def reference_to_base64(reference: str) -> str:
    """
    Encode a hex reference for the wire.

    Raises:
        InvalidReference: not a lowercase plain or encrypted reference
    """
    return base64.b64encode(bytes.fromhex(assert_reference(reference))).decode('ascii')



def base64_to_reference(value: str) -> str:
    """Decode a base64 reference and check its shape."""
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise SchemaError(f"Reference is not valid base64: {value!r}")
    try:
        return assert_reference(raw.hex())
    except InvalidReference as e:
        raise SchemaError(str(e))


def blocks_to_manifest(blocks: Blocks) -> bytes:
    """
    Encode a Blocks collection into its manifest document.

    Raises:
        InvalidReference: a block carries a malformed reference
    """
    items = [
        {
            'Name': block.name,
            'Size': block.size,
            'CompressedSize': block.compressed_size,
            'Reference': {'R': reference_to_base64(block.reference)},
        }
        for block in blocks.blocks
    ]
    return json.dumps({'Blocks': items}, separators=(',', ':')).encode('utf-8')


def manifest_to_blocks(data: bytes) -> Blocks:
    """
    Decode a manifest document.

    Raises:
        FormatError: not a JSON object
        SchemaError: descriptor fields missing or of the wrong type
    """
    try:
        document = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise FormatError(f"Manifest is not valid JSON: {e}")

    if not isinstance(document, dict):
        raise FormatError("Manifest must be a JSON object")

    try:
        raw = _RawBlocks.model_validate(document)
    except PydanticValidationError as e:
        raise SchemaError(f"Invalid manifest: {e}")

    return Blocks(blocks=[
        Block(
            name=item.Name,
            size=item.Size,
            compressed_size=item.CompressedSize,
            reference=base64_to_reference(item.Reference.R),
        )
        for item in raw.Blocks
    ])
