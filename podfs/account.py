"""
Pod Identities and Sessions

Design Decision: Explicit Session Context
=========================================

Options Considered:
1. Long-lived client object holding "the current account"
2. Session value passed into every operation

Decision: Session value passed explicitly
- No hidden global state; one process can serve callers with different
  identities concurrently
- Share recipients use ``Session.anonymous()`` (or nothing at all)

Pod keys: Ed25519
- Feed updates are signed with the pod key, the feed service verifies them
- Pod address = last 20 bytes of SHA3-256(public key), as hex
"""

import hashlib
from dataclasses import dataclass, field
from typing import Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .errors import NotAuthenticated, PodNotFound, ValidationError
from .utils import ADDRESS_BYTES

MAX_POD_NAME_LENGTH = 64


def assert_pod_name(pod_name: str):
    if not isinstance(pod_name, str) or not pod_name.strip():
        raise ValidationError("Pod name must be a non-empty string")
    if '/' in pod_name:
        raise ValidationError(f"Pod name must not contain '/': {pod_name}")
    if len(pod_name) > MAX_POD_NAME_LENGTH:
        raise ValidationError(f"Pod name longer than {MAX_POD_NAME_LENGTH} chars: {pod_name}")


def public_key_to_address(public_key: bytes) -> str:
    """Derive an account address from raw Ed25519 public key bytes."""
    return hashlib.sha3_256(public_key).digest()[-ADDRESS_BYTES:].hex()


class PodWallet:
    """Signing key of a pod, plus its derived network address."""

    def __init__(self, private_key: Optional[Ed25519PrivateKey] = None):
        self._private_key = private_key or Ed25519PrivateKey.generate()
        self.public_key = self._private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.address = public_key_to_address(self.public_key)

    @classmethod
    def from_private_bytes(cls, data: bytes) -> 'PodWallet':
        return cls(Ed25519PrivateKey.from_private_bytes(data))

    def private_bytes(self) -> bytes:
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def sign(self, data: bytes) -> bytes:
        return self._private_key.sign(data)

    def __repr__(self) -> str:
        return f"PodWallet(address={self.address})"


def verify_signature(public_key: bytes, signature: bytes, data: bytes) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, data)
    except (InvalidSignature, ValueError):
        return False
    return True


@dataclass(frozen=True)
class PodInfo:
    """What an operation needs to write into a pod."""
    pod_name: str
    pod_address: str
    pod_wallet: PodWallet


@dataclass
class Session:
    """
    Identity of the caller for one or more operations.

    Holds the wallets of the pods the caller can write to.
    """
    pods: Dict[str, PodWallet] = field(default_factory=dict)
    user_address: str = ''
    authenticated: bool = True

    @classmethod
    def anonymous(cls) -> 'Session':
        return cls(authenticated=False)

    def add_pod(self, pod_name: str, wallet: Optional[PodWallet] = None) -> PodWallet:
        """Register a pod (a fresh key is generated when none is given)."""
        assert_pod_name(pod_name)
        wallet = wallet or PodWallet()
        self.pods[pod_name] = wallet
        return wallet

    def get_pod(self, pod_name: str) -> PodInfo:
        """
        Resolve a pod name to its address and signing key.

        Raises:
            NotAuthenticated: anonymous session
            PodNotFound: the account has no such pod
        """
        if not self.authenticated:
            raise NotAuthenticated("An authenticated session is required")
        wallet = self.pods.get(pod_name)
        if wallet is None:
            raise PodNotFound(pod_name)
        return PodInfo(pod_name=pod_name, pod_address=wallet.address, pod_wallet=wallet)
