"""Error taxonomy shared by the index store, the registry and the HTTP layer.

Every failure the service reports is one member of the closed ``ErrorKind``
enumeration. Each kind has exactly one exception class; callers match on
``exc.kind`` (or the class) and translate it, e.g. to an HTTP status.
"""

from enum import Enum
from typing import Any


class ErrorKind(Enum):
    """Closed set of domain error kinds."""
    INVALID_LOCATION = "invalid_location"
    NOT_FOUND = "not_found"
    RESERVED_NAME = "reserved_name"
    ENGINE_FAILURE = "engine_failure"
    MISSING_PARAMETER = "missing_parameter"
    INVALID_PARAMETER = "invalid_parameter"
    CACHE_STORAGE = "cache_storage"


class IndexServiceError(Exception):
    """Base exception for index service operations.

    ``context`` keeps structured details (index name, location, parameter)
    for logging. It is never sent to HTTP clients.
    """
    kind: ErrorKind

    def __init__(self, message: str = "", **context: Any):
        super().__init__(message or self.kind.value)
        self.context = context


class InvalidLocationError(IndexServiceError):
    """No openable index exists at the given location."""
    kind = ErrorKind.INVALID_LOCATION


class IndexNotFoundError(IndexServiceError):
    """No open index is registered under the given name."""
    kind = ErrorKind.NOT_FOUND


class ReservedNameError(IndexServiceError):
    """Operation attempted on the reserved meta-index name."""
    kind = ErrorKind.RESERVED_NAME


class EngineFailureError(IndexServiceError):
    """The search engine failed while executing a query."""
    kind = ErrorKind.ENGINE_FAILURE


class MissingParameterError(IndexServiceError):
    """A required request parameter is absent."""
    kind = ErrorKind.MISSING_PARAMETER


class InvalidParameterError(IndexServiceError):
    """A request parameter is present but malformed."""
    kind = ErrorKind.INVALID_PARAMETER


class CacheStorageError(IndexServiceError):
    """The location cache's storage layer failed (disk, permissions, Redis)."""
    kind = ErrorKind.CACHE_STORAGE
