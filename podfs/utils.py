"""
Reference, Address and Path Utilities

Design Decision: Reference Shapes
=================================

Options Considered:
1. Opaque strings with a type prefix ("enc:...")
2. Length-distinguished hex strings
3. Multihash / CID style self-describing bytes

Decision: Length-distinguished lowercase hex
- Plain reference: 32 bytes (64 hex chars), SHA-256 of the stored bytes
- Encrypted reference: 64 bytes (128 hex chars), address + 32-byte key
- Shape alone tells the two apart, no prefix parsing needed
- Same hex form is used for account addresses (20 bytes, 40 hex chars)

Paths are POSIX-style and always absolute ("/docs/a.txt").
"""

import hashlib
import posixpath
import re
import time
from dataclasses import dataclass

from .errors import InvalidPath, InvalidReference, ValidationError

# Constants
REFERENCE_BYTES = 32
ENCRYPTED_REFERENCE_BYTES = 64
ADDRESS_BYTES = 20

_HEX_RE = re.compile(r'^[0-9a-f]*$')


def _is_hex_of_length(value, byte_length: int) -> bool:
    return (
        isinstance(value, str)
        and len(value) == byte_length * 2
        and _HEX_RE.match(value) is not None
    )


def is_reference(value) -> bool:
    """Check for a plain 32-byte content reference."""
    return _is_hex_of_length(value, REFERENCE_BYTES)


def is_encrypted_reference(value) -> bool:
    """Check for a 64-byte encrypted reference (address + key)."""
    return _is_hex_of_length(value, ENCRYPTED_REFERENCE_BYTES)


def assert_reference(value) -> str:
    if not (is_reference(value) or is_encrypted_reference(value)):
        raise InvalidReference(f"Invalid reference: {value!r}")
    return value


def assert_encrypted_reference(value) -> str:
    """
    Validate the encrypted reference shape.

    Raised before anything touches the store, so malformed input never
    costs a round-trip.
    """
    if not is_encrypted_reference(value):
        raise InvalidReference(f"Expected an encrypted reference, got: {value!r}")
    return value


def content_address(data: bytes) -> str:
    """Content address of a blob: SHA-256 as hex."""
    return hashlib.sha256(data).hexdigest()


def prepare_address(address: str) -> str:
    """Normalize an account address to 40 lowercase hex chars."""
    if isinstance(address, str):
        address = address.lower()
        if address.startswith('0x'):
            address = address[2:]
    if not _is_hex_of_length(address, ADDRESS_BYTES):
        raise ValidationError(f"Invalid address: {address!r}")
    return address


def get_unix_timestamp() -> int:
    return int(time.time())


# === Paths ===

@dataclass(frozen=True)
class PathInfo:
    """A full path split into its parent directory and leaf name."""
    path: str
    filename: str


def assert_full_path_with_name(full_path: str):
    """Reject paths that do not end in a non-empty leaf name."""
    if not isinstance(full_path, str) or not full_path.strip():
        raise InvalidPath("Path must be a non-empty string")
    if not full_path.startswith('/'):
        raise InvalidPath(f"Path must be absolute: {full_path}")
    if full_path.endswith('/') or not extract_path_info(full_path).filename:
        raise InvalidPath(f"Path has no file name: {full_path}")


def assert_file_name(name: str):
    """Reject leaf names that would leave their parent directory."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidPath("File name must be a non-empty string")
    if '/' in name or name in ('.', '..'):
        raise InvalidPath(f"File name must be a single path segment: {name!r}")


def extract_path_info(full_path: str) -> PathInfo:
    """
    Split a full path into (parent path, file name).

    "/a/b/c.txt" -> ("/a/b", "c.txt"); "/c.txt" -> ("/", "c.txt").
    """
    normalized = posixpath.normpath(full_path)
    if normalized.startswith('//'):
        normalized = '/' + normalized.lstrip('/')
    parent, filename = posixpath.split(normalized)
    if filename in ('', '.', '..'):
        filename = ''
    return PathInfo(path=parent or '/', filename=filename)


def combine(*parts: str) -> str:
    """Join path parts into one absolute path."""
    joined = posixpath.join('/', *[p.strip('/') for p in parts if p and p.strip('/')])
    return posixpath.normpath(joined)
