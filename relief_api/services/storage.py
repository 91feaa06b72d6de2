"""Persistence adapter used by the search backends.

Wraps a SQLAlchemy Session and converts driver exceptions into StorageError
with a kind decided from the PostgreSQL SQLSTATE, so callers dispatch on an
enum instead of matching error text.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import StorageError, StorageErrorKind

logger = logging.getLogger(__name__)

# SQLSTATE -> kind
SQLSTATE_KINDS = {
    "42704": StorageErrorKind.EXTENSION_MISSING,   # undefined_object: type "geography" does not exist
    "3F000": StorageErrorKind.EXTENSION_MISSING,   # invalid_schema_name: extension schema dropped
    "42883": StorageErrorKind.FUNCTION_BROKEN,     # undefined_function: function/operator does not exist
    "XX000": StorageErrorKind.FUNCTION_BROKEN,     # internal_error: raised by a broken postgis library
    "58P01": StorageErrorKind.FUNCTION_BROKEN,     # undefined_file: postgis .so missing on the server
    "42501": StorageErrorKind.PERMISSION_DENIED,   # insufficient_privilege
}


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg 3 sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def classify(exc: SQLAlchemyError) -> StorageError:
    """Wrap a SQLAlchemy exception as a StorageError"""
    sqlstate = _sqlstate(exc) if isinstance(exc, DBAPIError) else None
    kind = SQLSTATE_KINDS.get(sqlstate, StorageErrorKind.OTHER)
    message = str(getattr(exc, "orig", None) or exc).strip()
    return StorageError(kind, message, sqlstate=sqlstate)


class SpatialStore:
    """Read-only access to searchable tables for one session"""

    def __init__(self, db: Session):
        self.db = db

    @property
    def dialect(self) -> str:
        return self.db.get_bind().dialect.name

    def execute(self, statement, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a parameterized statement and return rows as dicts"""
        try:
            result = self.db.execute(statement, params or {})
            return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            # an aborted PostgreSQL transaction would poison the next statement
            self.db.rollback()
            error = classify(e)
            logger.debug(f"Statement failed [{error.kind.value} {error.sqlstate}]: {error}")
            raise error from e

    def fetch_candidates(self, model, scope_column: Optional[str] = None,
                         scope_id: Optional[str] = None, bbox: Optional[dict] = None) -> list:
        """All rows of a model, optionally narrowed by parent id and bounding box"""
        query = select(model)
        if scope_column and scope_id is not None:
            query = query.where(getattr(model, scope_column) == scope_id)
        if bbox:
            query = query.where(
                model.latitude >= bbox["min_lat"],
                model.latitude <= bbox["max_lat"],
                model.longitude >= bbox["min_lng"],
                model.longitude <= bbox["max_lng"],
            )
        try:
            return list(self.db.scalars(query).all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise classify(e) from e

    def begin_snapshot(self) -> None:
        """Start a fresh transaction that sees one consistent snapshot (PostgreSQL only)"""
        self.db.rollback()
        if self.dialect != "postgresql":
            return
        try:
            self.db.execute(text("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ"))
        except SQLAlchemyError as e:
            self.db.rollback()
            raise classify(e) from e
