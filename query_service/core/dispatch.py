import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Union

from query_service.core.audit import AuditSink
from query_service.core.engine import EngineError, QueryEngine
from query_service.core.schemas import QueryRequest, QueryResult


# -----------------------------------------------------------------------------
# DISPATCH MODULE - Coordination
# Purpose: run one query on a worker thread and race it against its deadline
# Exactly one outcome comes out of every dispatch: completed, failed or timed out
# -----------------------------------------------------------------------------

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True)
class Completed:
    result: QueryResult


@dataclass(frozen=True)
class Failed:
    reason: str


@dataclass(frozen=True)
class TimedOut:
    timeout: float


DispatchOutcome = Union[Completed, Failed, TimedOut]


def _discard(execution: asyncio.Future) -> None:
    """Consume the result of an abandoned execution."""
    if not execution.cancelled():
        execution.exception()


class QueryDispatcher:
    """
    Per-request orchestration around a query engine.

    The dispatcher keeps no per-request state, one instance serves every
    request of an application.
    """

    def __init__(
        self,
        engine: QueryEngine,
        audit: AuditSink,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        if default_timeout <= 0:
            raise ValueError("default_timeout must be positive")

        self.engine = engine
        self.audit = audit
        self.default_timeout = default_timeout

    def effective_timeout(self, query: QueryRequest) -> float:
        return query.timeout or self.default_timeout

    def _record(self, sql: str) -> None:
        # Audit is a side channel, it never decides the response
        try:
            self.audit.record(sql)
        except Exception:
            logger.exception("Audit sink failed to record query")

    async def dispatch(self, query: QueryRequest) -> DispatchOutcome:
        self._record(query.sql)

        timeout = self.effective_timeout(query)
        cancelled = threading.Event()

        execution = asyncio.ensure_future(
            asyncio.to_thread(
                self.engine.execute, query.sql, query.limit, query.offset, cancelled
            )
        )

        try:
            done, _ = await asyncio.wait({execution}, timeout=timeout)
        finally:
            if not execution.done():
                # Deadline won, or the request itself went away
                cancelled.set()
                execution.add_done_callback(_discard)

        if execution not in done:
            logger.warning(f"Query timed out after {timeout}s: {query.sql}")
            return TimedOut(timeout=timeout)

        try:
            return Completed(result=execution.result())
        except EngineError as error:
            return Failed(reason=error.reason)
        except Exception as error:
            logger.exception(f"Engine crashed while running: {query.sql}")
            return Failed(reason=str(error) or type(error).__name__)
