"""PostGIS capability probe.

Decides whether the indexed backend may be used. The result is cached on the
probe instance (one instance per process, owned by the app) until an explicit
re-probe. Concurrent probes are harmless: they observe the same database and
write the same state.
"""
import enum
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import text
from sqlalchemy.orm import Session

from .errors import StorageError, StorageErrorKind, SPATIAL_UNAVAILABLE_KINDS
from .storage import SpatialStore

logger = logging.getLogger(__name__)

REGISTRATION_SQL = text("SELECT 1 AS registered FROM pg_extension WHERE extname = 'postgis'")
FUNCTIONAL_SQL = text(
    "SELECT ST_Distance(ST_MakePoint(0, 0)::geography, ST_MakePoint(0, 1)::geography) AS meters"
)

INSTALL_HINT = "Run as a database owner: CREATE EXTENSION IF NOT EXISTS postgis;"
REPAIR_HINT = (
    "PostGIS is registered but does not execute. Reinstall it: "
    "DROP EXTENSION IF EXISTS postgis CASCADE; CREATE EXTENSION postgis; "
    "then re-probe via GET /api/v1/diagnostics/spatial?refresh=true"
)
PERMISSION_HINT = (
    "The database role cannot read pg_extension; grant it or run the probe as a "
    "privileged role. Assuming PostGIS is NOT available."
)


class CapabilityState(str, enum.Enum):
    UNKNOWN = "unknown"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    BROKEN = "broken"


class CapabilityProbe:
    """Registration check + functional check against the spatial extension"""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._state = CapabilityState.UNKNOWN
        self._reason: Optional[str] = None
        self._remediation: Optional[str] = None
        self._probed_at: Optional[datetime] = None

    @property
    def state(self) -> CapabilityState:
        return self._state

    def is_indexed_backend_available(self) -> bool:
        if self._state is CapabilityState.UNKNOWN:
            self.probe()
        return self._state is CapabilityState.AVAILABLE

    def diagnostics(self) -> dict:
        return {
            "available": self._state is CapabilityState.AVAILABLE,
            "state": self._state.value,
            "reason": self._reason,
            "remediation": self._remediation,
            "probed_at": self._probed_at.isoformat() if self._probed_at else None,
        }

    def probe(self, force: bool = False) -> bool:
        """Run both checks unless a cached result exists (or force=True)"""
        if self._state is not CapabilityState.UNKNOWN and not force:
            return self._state is CapabilityState.AVAILABLE

        db = self._session_factory()
        try:
            self._run_checks(SpatialStore(db))
        finally:
            db.close()
        return self._state is CapabilityState.AVAILABLE

    def mark_unavailable(self, reason: str, kind: StorageErrorKind = StorageErrorKind.FUNCTION_BROKEN) -> None:
        """Record a spatial failure seen while serving a query; logs only on transition"""
        if self._state in (CapabilityState.UNAVAILABLE, CapabilityState.BROKEN):
            return
        state = CapabilityState.UNAVAILABLE if kind is StorageErrorKind.EXTENSION_MISSING else CapabilityState.BROKEN
        hint = INSTALL_HINT if state is CapabilityState.UNAVAILABLE else REPAIR_HINT
        self._set(state, reason, hint)

    def _run_checks(self, store: SpatialStore) -> None:
        if store.dialect != "postgresql":
            self._set(
                CapabilityState.UNAVAILABLE,
                f"database dialect '{store.dialect}' has no PostGIS support",
                "Point DATABASE_URL at PostgreSQL with PostGIS to enable indexed search.",
            )
            return

        try:
            registered = store.execute(REGISTRATION_SQL)
        except StorageError as e:
            if e.kind is StorageErrorKind.PERMISSION_DENIED:
                self._set(CapabilityState.UNAVAILABLE, f"permission denied reading pg_extension: {e}",
                          PERMISSION_HINT)
            else:
                self._unknown(f"registration check failed: {e}")
            return

        if not registered:
            self._set(CapabilityState.UNAVAILABLE, "postgis extension is not installed", INSTALL_HINT)
            return

        try:
            rows = store.execute(FUNCTIONAL_SQL)
        except StorageError as e:
            if e.kind in SPATIAL_UNAVAILABLE_KINDS:
                self._set(CapabilityState.BROKEN, f"postgis registered but not working: {e}", REPAIR_HINT)
            elif e.kind is StorageErrorKind.PERMISSION_DENIED:
                self._set(CapabilityState.UNAVAILABLE, f"permission denied calling postgis: {e}",
                          PERMISSION_HINT)
            else:
                self._unknown(f"functional check failed: {e}")
            return

        meters = rows[0]["meters"] if rows else None
        if not meters or meters <= 0:
            self._set(CapabilityState.BROKEN, f"postgis returned an invalid distance ({meters})", REPAIR_HINT)
            return

        self._set(CapabilityState.AVAILABLE, None, None)

    def _set(self, state: CapabilityState, reason: Optional[str], remediation: Optional[str]) -> None:
        changed = state is not self._state
        self._state = state
        self._reason = reason
        self._remediation = remediation
        self._probed_at = datetime.now(timezone.utc)
        if not changed:
            return
        if state is CapabilityState.AVAILABLE:
            logger.info("PostGIS: available, indexed proximity search enabled")
        else:
            logger.warning(f"PostGIS: {state.value} ({reason}); falling back to scan search. {remediation}")

    def _unknown(self, reason: str) -> None:
        # not cached: the next call probes again
        self._state = CapabilityState.UNKNOWN
        self._reason = reason
        self._remediation = None
        self._probed_at = datetime.now(timezone.utc)
        logger.error(f"PostGIS probe inconclusive: {reason}")
