import contextlib
import logging
import math
import threading
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Optional, Protocol

from sqlalchemy import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from query_service.core.pagination import paginate
from query_service.core.schemas import QueryResult


# -----------------------------------------------------------------------------
# ENGINE ADAPTER
# Purpose: run one SQL statement and hand back columns/rows with pagination applied
# The adapter is synchronous, the dispatcher runs it on a worker thread
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

# SQLite VM instructions between two checks of the cancellation flag
PROGRESS_STEPS = 1000


class EngineError(Exception):
    """The engine refused or failed to run a statement."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class QueryEngine(Protocol):
    def execute(
        self,
        sql: str,
        limit: int = 0,
        offset: int = 0,
        cancelled: Optional[threading.Event] = None,
    ) -> QueryResult: ...


def to_scalar(value: Any):
    """Fold a driver value into bool/int/float/str/None."""
    if isinstance(value, float) and not math.isfinite(value):
        # JSON has no inf/nan
        return str(value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Decimal):
        return to_scalar(float(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    return str(value)


class SqlQueryEngine:
    """Engine adapter on top of a SQLAlchemy engine."""

    def __init__(self, db_engine: Engine):
        self.db_engine = db_engine

        # StaticPool hands the same connection to every caller
        if isinstance(db_engine.pool, StaticPool):
            self._guard = threading.Lock()
        else:
            self._guard = contextlib.nullcontext()

    def execute(
        self,
        sql: str,
        limit: int = 0,
        offset: int = 0,
        cancelled: Optional[threading.Event] = None,
    ) -> QueryResult:
        if not sql.strip():
            raise EngineError("empty query")

        with self._guard:
            if cancelled is not None and cancelled.is_set():
                raise EngineError("query cancelled")

            try:
                with self.db_engine.begin() as conn:
                    with self._watch(conn, cancelled):
                        result = conn.exec_driver_sql(sql)

                        if not result.returns_rows:
                            return QueryResult(columns=[], rows=[])

                        columns = list(result.keys())
                        rows = [[to_scalar(value) for value in row] for row in result]
            except SQLAlchemyError as error:
                reason = str(getattr(error, "orig", None) or error)
                logger.info(f"Statement failed: {reason}")
                raise EngineError(reason) from error

        return QueryResult(columns=columns, rows=paginate(rows, limit, offset))

    @contextlib.contextmanager
    def _watch(self, conn: Connection, cancelled: Optional[threading.Event]):
        """Abort a running SQLite statement once `cancelled` is set."""
        if cancelled is None or conn.dialect.name != "sqlite":
            yield
            return

        raw = conn.connection.driver_connection
        raw.set_progress_handler(lambda: int(cancelled.is_set()), PROGRESS_STEPS)
        try:
            yield
        finally:
            raw.set_progress_handler(None, PROGRESS_STEPS)
