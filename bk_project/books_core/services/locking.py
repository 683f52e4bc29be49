import logging
from contextlib import contextmanager

from django.db import OperationalError

from ..exceptions import ConcurrencyConflictError

logger = logging.getLogger(__name__)

# lock_not_available, deadlock_detected, serialization_failure
LOCK_PGCODES = {"55P03", "40P01", "40001"}


def is_lock_error(exc: OperationalError) -> bool:
    cause = exc.__cause__
    pgcode = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if pgcode in LOCK_PGCODES:
        return True
    # SQLite: "database is locked" / "database table is locked"
    message = str(exc).lower()
    return "locked" in message or "lock wait timeout" in message or "deadlock" in message


@contextmanager
def lock_conflicts(resource):
    """
    Turn row-lock contention into ConcurrencyConflictError.
    Other database errors propagate unchanged.
    """
    try:
        yield
    except OperationalError as exc:
        if not is_lock_error(exc):
            raise
        logger.warning("Lock conflict on %s: %s", resource, exc)
        raise ConcurrencyConflictError(
            f"Could not lock {resource}, retry the whole operation"
        ) from exc
