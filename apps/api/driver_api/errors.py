from dataclasses import dataclass
from typing import ClassVar


@dataclass
class DomainError(Exception):
    """Base for failures a service reports back to the caller.

    ``code`` is the stable machine-readable value clients branch on;
    ``message`` is the short human-readable text.
    """

    message: str
    code: str | None = None

    http_status: ClassVar[int] = 500

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}:{self.message}"
        return self.message


class NotFound(DomainError):
    http_status = 404


class InvalidArgument(DomainError):
    http_status = 400


class Forbidden(DomainError):
    http_status = 403


class Conflict(DomainError):
    http_status = 409


class PipelineConflict(Conflict):
    """A completion/invoicing/archival stage whose precondition is not met."""

    http_status = 400


class Unavailable(DomainError):
    http_status = 503


ORDER_LOCKED = "ORDER_LOCKED"
DRIVER_PROFILE_NOT_FOUND = "DRIVER_PROFILE_NOT_FOUND"
NOT_YOUR_ORDER = "NOT_YOUR_ORDER"
EPOD_ALREADY_EXISTS = "EPOD_ALREADY_EXISTS"
EPOD_BLOBNAME_MISMATCH = "EPOD_BLOBNAME_MISMATCH"
EPOD_NOT_DELIVERED = "EPOD_NOT_DELIVERED"
EPOD_MISSING = "EPOD_MISSING"
EPOD_BLOB_NOT_FOUND = "EPOD_BLOB_NOT_FOUND"
EPOD_NOT_FOUND = "EPOD_NOT_FOUND"
BLOB_NOT_FOUND = "BLOB_NOT_FOUND"
BLOB_NAME_REQUIRED = "BLOB_NAME_REQUIRED"
NO_PHOTOS = "NO_PHOTOS"
INVALID_PHOTO = "INVALID_PHOTO"
