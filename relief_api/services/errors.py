"""Proximity search error taxonomy"""
import enum
from typing import Optional


class StorageErrorKind(str, enum.Enum):
    """What a failed statement says about the spatial backend"""
    EXTENSION_MISSING = "extension_missing"
    FUNCTION_BROKEN = "function_broken"
    PERMISSION_DENIED = "permission_denied"
    OTHER = "other"


# kinds that mean "PostGIS cannot serve this query", as opposed to a general DB failure
SPATIAL_UNAVAILABLE_KINDS = frozenset({
    StorageErrorKind.EXTENSION_MISSING,
    StorageErrorKind.FUNCTION_BROKEN,
})


class StorageError(Exception):
    """Raised by SpatialStore; wraps the driver exception with a classified kind"""

    def __init__(self, kind: StorageErrorKind, message: str, sqlstate: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.sqlstate = sqlstate


class SearchError(Exception):
    """Base class for errors surfaced by the proximity search engine"""


class ValidationError(SearchError):
    """Malformed query input (client error, no backend is called)"""


class BackendUnavailableError(SearchError):
    """PostGIS functions are missing or broken; recoverable by the scan backend"""

    def __init__(self, message: str, kind: StorageErrorKind = StorageErrorKind.EXTENSION_MISSING):
        super().__init__(message)
        self.kind = kind


class QueryExecutionError(SearchError):
    """Any other backend failure (server error, not retried)"""
