"""
Exception types raised by vaultsearch.

Two kinds come out of filter construction and must never be conflated:
- InternalError: a defect in the calling code (e.g. a malformed filter key).
  Keys are derived internally, so these are bugs and should not be retried.
- InvalidSchemaError: a user-authored index schema is wrong. The message
  names the violated constraint and echoes the offending value.
"""


class VaultSearchError(Exception):
    """Base exception."""


class InternalError(VaultSearchError):
    """Contract violation inside the client."""


class InvalidSchemaError(VaultSearchError):
    """Collection or index schema is invalid."""


class IndexOnlyRecordError(VaultSearchError):
    """Record was stored for indexing only and has no data."""


class TransportError(VaultSearchError):
    """Remote store returned an error response."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class RecordNotFoundError(TransportError):
    """Requested record does not exist."""
