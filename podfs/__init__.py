"""
podfs - chunked file storage and sharing on content-addressed pods.
"""

from .account import PodWallet, Session
from .config import Config, load_config
from .connection import Connection
from .file import DataUploadOptions, FileMetadata, Files
from .share import FileShareInfo, PodShareInfo, share_pod

__version__ = '0.1.0'

__all__ = [
    'PodWallet',
    'Session',
    'Config',
    'load_config',
    'Connection',
    'DataUploadOptions',
    'FileMetadata',
    'Files',
    'FileShareInfo',
    'PodShareInfo',
    'share_pod',
]
