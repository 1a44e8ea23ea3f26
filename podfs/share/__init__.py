"""
Share Module - Encrypted Share Capsules

Lets a third party resolve a shared file or pod from one encrypted reference.
"""

from .capsule import (
    FileShareInfo,
    PodShareInfo,
    create_file_share_info,
    decode_file_share_info,
    decode_pod_share_info,
    encode_share_info,
    get_shared_file_info,
    get_shared_pod_info,
    share_pod,
    upload_share_info,
)

__all__ = [
    'FileShareInfo',
    'PodShareInfo',
    'create_file_share_info',
    'encode_share_info',
    'decode_file_share_info',
    'decode_pod_share_info',
    'get_shared_file_info',
    'get_shared_pod_info',
    'share_pod',
    'upload_share_info',
]
