"""
Error Taxonomy

Every public operation either returns a complete result or raises exactly
one of the errors below. Validation errors are raised before any call to a
collaborator. Errors coming from the store or feed service that do not mean
"missing" are propagated unchanged.

```
PodfsError
├── ValidationError
│   ├── InvalidPath
│   ├── InvalidReference
│   └── ConfigurationError
├── NotAuthenticated
├── PodNotFound
├── NotFound
├── IncompleteBlocks
├── DecodeError
│   ├── FormatError
│   ├── SchemaError
│   ├── CorruptManifest
│   ├── CorruptMetadata
│   ├── CorruptShareInfo
│   └── DecryptionError
├── VersionError
├── FeedError
└── StoreError
```
"""


class PodfsError(Exception):
    """Base class for all podfs errors."""


class ValidationError(PodfsError):
    """Caller input rejected before any remote call."""


class InvalidPath(ValidationError):
    pass


class InvalidReference(ValidationError):
    pass


class ConfigurationError(ValidationError):
    pass


class NotAuthenticated(PodfsError):
    pass


class PodNotFound(PodfsError):
    def __init__(self, pod_name: str):
        super().__init__(f"Pod not found: {pod_name}")
        self.pod_name = pod_name


class NotFound(PodfsError):
    """Expected remote data (feed entry or content) does not exist."""


class IncompleteBlocks(PodfsError):
    """One or more blocks listed in a manifest could not be fetched."""

    def __init__(self, missing):
        missing = list(missing)
        super().__init__(f"{len(missing)} block(s) missing: {', '.join(missing)}")
        self.missing = missing


class DecodeError(PodfsError):
    """Fetched data does not parse as expected."""


class FormatError(DecodeError):
    pass


class SchemaError(DecodeError):
    pass


class CorruptManifest(DecodeError):
    pass


class CorruptMetadata(DecodeError):
    pass


class CorruptShareInfo(DecodeError):
    pass


class DecryptionError(DecodeError):
    """An encrypted object did not decrypt with the key in its reference."""


class VersionError(PodfsError):
    def __init__(self, version):
        super().__init__(f"Unsupported metadata version: {version!r}")
        self.version = version


class FeedError(PodfsError):
    """A feed update was rejected (bad signature or malformed update)."""


class StoreError(PodfsError):
    """Content store failure that is not a simple miss."""
