"""Custom exception hierarchy for the sync gateway."""

from __future__ import annotations

from fastapi import status


class ApplicationError(Exception):
    """Base application error with HTTP semantics."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "application_error"

    def __init__(self, message: str, *, status_code: int | None = None, code: str | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message


class MalformedPayloadError(ApplicationError):
    """Request input that cannot be interpreted. No store call is made."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "malformed_payload"


class DocumentDecodeError(MalformedPayloadError):
    """Raised by the codec when a binary or id-set payload is invalid."""

    code = "decode_error"


class MissingIdentifierError(ApplicationError):
    """A document presented for update carries no identifier."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "missing_identifier"

    def __init__(self, message: str = "Missing ID") -> None:
        super().__init__(message)


class DocumentRejectedError(ApplicationError):
    """The store refused a single document, for instance one over the size limit."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "document_rejected"


class StoreError(ApplicationError):
    """Any other failure reported by the backing store."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "store_error"


class StoreUnavailableError(StoreError):
    """The backing document store cannot be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_unavailable"


__all__ = [
    "ApplicationError",
    "DocumentDecodeError",
    "DocumentRejectedError",
    "MalformedPayloadError",
    "MissingIdentifierError",
    "StoreError",
    "StoreUnavailableError",
]
