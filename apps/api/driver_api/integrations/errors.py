from dataclasses import dataclass


@dataclass
class BlobStorageError(Exception):
    operation: str
    code: str
    message: str
    retryable: bool = False

    def __str__(self) -> str:
        return f"blob_storage:{self.operation}:{self.code}:{self.message}"


class BlobStorageTimeoutError(BlobStorageError):
    def __init__(self, operation: str, message: str = "Object store timeout") -> None:
        super().__init__(operation=operation, code="TIMEOUT", message=message, retryable=True)


class BlobStorageUnavailableError(BlobStorageError):
    def __init__(self, operation: str, message: str = "Object store unavailable") -> None:
        super().__init__(operation=operation, code="UNAVAILABLE", message=message, retryable=True)


class BlobStorageRejectedError(BlobStorageError):
    def __init__(self, operation: str, message: str = "Object store rejected the request") -> None:
        super().__init__(operation=operation, code="REJECTED", message=message, retryable=False)
