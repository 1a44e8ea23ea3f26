"""
podfs Settings

Upload defaults and worker limits, read from ``PODFS_*`` environment
variables (a ``.env`` file is honoured) and from an optional JSON file.
"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Default block size: 1MB (1,000,000 bytes, decimal on purpose)
DEFAULT_BLOCK_SIZE = 1_000_000

ENV_PREFIX = 'PODFS_'


@dataclass
class Config:
    """
    podfs Configuration.

    Precedence, strongest first:
    1. PODFS_* environment variables
    2. JSON config file
    3. Defaults below
    """
    # Where the CLI keeps blobs and the SQLite database
    data_dir: Path = field(default_factory=lambda: Path('./podfs_data'))

    # Upload defaults
    block_size: int = DEFAULT_BLOCK_SIZE
    content_type: str = ''
    encrypt_blocks: bool = False

    # Parallel block transfers
    max_concurrent_uploads: int = 5
    max_concurrent_downloads: int = 5

    log_level: str = 'INFO'

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Reject values that would break chunking or the worker pools."""
        assert_block_size(self.block_size)
        for name in ('max_concurrent_uploads', 'max_concurrent_downloads'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")

    def update(self, values: Dict[str, Any]) -> 'Config':
        """Apply known keys from ``values``, coercing ``data_dir`` to a Path."""
        for f in fields(self):
            if f.name in values:
                value = values[f.name]
                setattr(self, f.name, Path(value) if f.name == 'data_dir' else value)
        self.validate()
        return self

    @classmethod
    def from_env(cls) -> 'Config':
        """Defaults overridden by whatever PODFS_* variables are set."""
        load_dotenv()
        return cls().update(_env_values())

    @classmethod
    def from_file(cls, path: Path) -> 'Config':
        """Defaults overridden by a JSON file; a missing file means defaults."""
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            values = json.loads(path.read_text())
        except ValueError as e:
            raise ConfigurationError(f"Config file {path} is not valid JSON: {e}")
        if not isinstance(values, dict):
            raise ConfigurationError(f"Config file {path} must hold a JSON object")
        return cls().update(values)

    def to_dict(self) -> dict:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values['data_dir'] = str(self.data_dir)
        return values

    def save(self, path: Path):
        Path(path).write_text(json.dumps(self.to_dict(), indent=2))


def assert_block_size(block_size):
    """A block size must be a positive integer."""
    if isinstance(block_size, bool) or not isinstance(block_size, int) or block_size <= 0:
        raise ConfigurationError(f"block_size must be a positive integer, got {block_size!r}")


def _env_values() -> Dict[str, Any]:
    """Collect the PODFS_* variables that are set, typed like the fields."""
    values = {}
    for f in fields(Config):
        name = ENV_PREFIX + f.name.upper()
        raw = os.getenv(name)
        if raw is None:
            continue
        if f.type is int:
            try:
                values[f.name] = int(raw)
            except ValueError:
                raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
        elif f.type is bool:
            values[f.name] = raw.strip().lower() in ('1', 'true', 'yes')
        else:
            values[f.name] = raw
    return values


def load_config(config_path: Optional[Path] = None) -> Config:
    """File settings (if a file is given), then environment on top."""
    load_dotenv()
    config = Config.from_file(config_path) if config_path else Config()
    return config.update(_env_values())
