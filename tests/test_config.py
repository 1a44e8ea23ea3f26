"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from podfs.config import DEFAULT_BLOCK_SIZE, Config, load_config
from podfs.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ['PODFS_DATA_DIR', 'PODFS_BLOCK_SIZE', 'PODFS_CONTENT_TYPE',
                 'PODFS_ENCRYPT_BLOCKS', 'PODFS_MAX_CONCURRENT_UPLOADS',
                 'PODFS_MAX_CONCURRENT_DOWNLOADS', 'PODFS_LOG_LEVEL']:
        monkeypatch.delenv(name, raising=False)
    # keep load_dotenv away from any .env in the working tree
    monkeypatch.chdir(tmp_path)


class TestConfig:

    def test_defaults(self):
        config = Config()

        assert config.block_size == DEFAULT_BLOCK_SIZE == 1_000_000
        assert config.content_type == ''
        assert config.encrypt_blocks is False
        assert config.max_concurrent_uploads == 5

    @pytest.mark.parametrize("block_size", [0, -1, 1.5, '10', True])
    def test_invalid_block_size(self, block_size):
        with pytest.raises(ConfigurationError):
            Config(block_size=block_size)

    def test_invalid_concurrency(self):
        with pytest.raises(ConfigurationError):
            Config(max_concurrent_downloads=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv('PODFS_DATA_DIR', '/tmp/podfs')
        monkeypatch.setenv('PODFS_BLOCK_SIZE', '4096')
        monkeypatch.setenv('PODFS_ENCRYPT_BLOCKS', 'true')
        monkeypatch.setenv('PODFS_LOG_LEVEL', 'DEBUG')

        config = Config.from_env()

        assert config.data_dir == Path('/tmp/podfs')
        assert config.block_size == 4096
        assert config.encrypt_blocks is True
        assert config.log_level == 'DEBUG'

    def test_from_env_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv('PODFS_BLOCK_SIZE', 'big')

        with pytest.raises(ConfigurationError):
            Config.from_env()

    def test_file_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        Config(block_size=2048, content_type='text/plain').save(path)

        config = Config.from_file(path)

        assert config.block_size == 2048
        assert config.content_type == 'text/plain'

    def test_from_file_rejects_invalid_block_size(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'block_size': 0}))

        with pytest.raises(ConfigurationError):
            Config.from_file(path)

    def test_env_overrides_file(self, monkeypatch, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'block_size': 2048, 'content_type': 'text/plain'}))
        monkeypatch.setenv('PODFS_BLOCK_SIZE', '512')

        config = load_config(path)

        assert config.block_size == 512
        assert config.content_type == 'text/plain'
