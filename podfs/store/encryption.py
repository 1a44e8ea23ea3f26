"""
Encrypted References

Design Decision: Capability-Bearing References
==============================================

Options Considered:
1. Sealed-box encryption to the recipient's public key
   - Needs the recipient's key up front, no anonymous sharing
2. Symmetric key distributed next to the reference
   - Two things to hand over instead of one
3. Random symmetric key appended to the content address

Decision: AES-256-GCM with a random per-object key, appended to the address
- Reference = address(32 bytes) || key(32 bytes), as 128 hex chars
- The reference alone locates and decrypts the object
- The store only ever sees ciphertext
- GCM authenticates the payload, so a wrong key is detected, not garbled

Stored object layout:
```
+-------------+--------------------------------+
| Nonce (12B) | Ciphertext + GCM tag (16B)     |
+-------------+--------------------------------+
```
"""

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..errors import DecryptionError
from ..utils import REFERENCE_BYTES, assert_encrypted_reference

KEY_BYTES = 32
NONCE_BYTES = 12


def encrypt(data: bytes) -> tuple:
    """
    Encrypt a payload under a fresh key.

    Returns:
        (key, stored_object) tuple
    """
    key = AESGCM.generate_key(bit_length=KEY_BYTES * 8)
    nonce = os.urandom(NONCE_BYTES)
    return key, nonce + AESGCM(key).encrypt(nonce, bytes(data), None)


def decrypt(key: bytes, stored: bytes) -> bytes:
    if len(stored) < NONCE_BYTES:
        raise DecryptionError("Encrypted object is too short")
    nonce, ciphertext = stored[:NONCE_BYTES], stored[NONCE_BYTES:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, None)
    except InvalidTag:
        raise DecryptionError("Encrypted object does not match its reference key")


def make_encrypted_reference(address: str, key: bytes) -> str:
    return address + key.hex()


def split_encrypted_reference(reference: str) -> tuple:
    """
    Split an encrypted reference.

    Returns:
        (address_hex, key_bytes) tuple
    """
    assert_encrypted_reference(reference)
    address = reference[:REFERENCE_BYTES * 2]
    key = bytes.fromhex(reference[REFERENCE_BYTES * 2:])
    return address, key
