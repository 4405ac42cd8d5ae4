from driver_api.integrations.errors import (
    BlobStorageError,
    BlobStorageRejectedError,
    BlobStorageTimeoutError,
    BlobStorageUnavailableError,
)

__all__ = [
    "BlobStorageError",
    "BlobStorageTimeoutError",
    "BlobStorageUnavailableError",
    "BlobStorageRejectedError",
]
