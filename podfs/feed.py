"""
Feeds - Mutable Pointers per Path

A feed maps (topic, owner address) to the latest payload the owner
published. The file layer uses one feed per full path to publish the current
metadata record of that path.

- Topic = SHA3-256 of the UTF-8 full path, as hex
- Updates are signed with the pod key over ``topic bytes || payload``
- Services verify the signature and that the key matches the owner address
"""

import hashlib
import logging

from .account import PodWallet, public_key_to_address, verify_signature
from .errors import FeedError, NotFound
from .store.base import FeedUpdate
from .utils import prepare_address

logger = logging.getLogger(__name__)


def feed_topic(full_path: str) -> str:
    return hashlib.sha3_256(full_path.encode('utf-8')).hexdigest()


def _signed_message(topic: str, payload: bytes) -> bytes:
    return bytes.fromhex(topic) + payload


def make_feed_update(topic: str, payload: bytes, wallet: PodWallet) -> FeedUpdate:
    return FeedUpdate(
        topic=topic,
        owner=wallet.address,
        public_key=wallet.public_key,
        payload=bytes(payload),
        signature=wallet.sign(_signed_message(topic, payload)),
    )


def verify_feed_update(update: FeedUpdate):
    """
    Check that an update was signed by the owner of the feed.

    Raises:
        FeedError: malformed update, foreign key or bad signature
    """
    try:
        message = _signed_message(update.topic, update.payload)
    except ValueError:
        raise FeedError(f"Malformed feed topic: {update.topic!r}")

    if public_key_to_address(update.public_key) != update.owner:
        raise FeedError("Feed update key does not match its owner address")

    if not verify_signature(update.public_key, update.signature, message):
        raise FeedError("Feed update signature is invalid")


async def write_feed_data(connection, full_path: str, payload: bytes, wallet: PodWallet):
    """Publish a payload to the feed of a path, signed with the pod key."""
    topic = feed_topic(full_path)
    await connection.feeds.publish(make_feed_update(topic, payload, wallet))
    logger.debug(f"Published feed {topic[:16]}... for {full_path}")


async def read_feed_data(connection, full_path: str, address: str) -> bytes:
    """
    Resolve the latest payload of a path's feed.

    Raises:
        NotFound: nothing was ever published there
    """
    address = prepare_address(address)
    payload = await connection.feeds.resolve(feed_topic(full_path), address)
    if payload is None:
        raise NotFound(f"No feed entry for {full_path} under {address}")
    return payload
