"""Shared pytest fixtures for all tests."""

import pytest

from podfs.account import Session
from podfs.config import Config
from podfs.connection import Connection
from podfs.file import Files


@pytest.fixture
def config():
    """Config with a small block size so tests produce several blocks."""
    return Config(block_size=4, max_concurrent_uploads=3, max_concurrent_downloads=3)


@pytest.fixture
def connection(config):
    """Connection backed by in-memory store, feeds and directory."""
    return Connection.in_memory(config)


@pytest.fixture
def files(connection):
    return Files(connection)


@pytest.fixture
def session():
    """Authenticated session owning two pods."""
    session = Session(user_address='11' * 20)
    session.add_pod('photos')
    session.add_pod('backup')
    return session


@pytest.fixture
def other_session():
    """A second account, used as the share recipient."""
    session = Session()
    session.add_pod('inbox')
    return session
