"""Host-side orchestration of attempt sessions.

Starting an attempt allocates the attempt row in the store first (the
store owns attempt ids), then builds an AttemptSession around it with its
own ticker.  Live sessions are kept in this process, keyed by attempt id,
until the user closes them or, once submitted and saved (or queued), until
the review window runs out.  Expired sessions are pruned lazily on start
and lookup.

Hooks wired into every session:
  on_persisted: drop the user's cached readiness report
  on_warning:   enqueue the failed write for the worker to retry
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from prep_service.core.metrics import ACTIVE_ATTEMPT_SESSIONS
from prep_service.models.assessment import (
    PersistenceWarning,
    Phase,
    ScoredResult,
    TestDefinition,
)
from prep_service.models.principal import Principal
from prep_service.repos.attempt_repo import AttemptNotFoundError, AttemptStore
from prep_service.repos.test_repo import TestRepo
from prep_service.services.attempt_session import AttemptSession
from prep_service.services.cache import CacheService, cache_service, readiness_key
from prep_service.services.clock import AsyncioTicker, Ticker
from prep_service.services.question_bank import QuestionBankError
from prep_service.services.stores import attempt_store, test_repo
from prep_service.services.task_queue import (
    ATTEMPT_PERSISTENCE_QUEUE,
    TaskQueue,
    task_queue,
)

logger = logging.getLogger(__name__)

TickerFactory = Callable[[], Ticker]

REVIEW_WINDOW = timedelta(minutes=10)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TestNotFoundError(LookupError):
    __test__ = False


class EmptyTestError(ValueError):
    pass


def warning_payload(warning: PersistenceWarning, user_id: str) -> dict:
    update = warning.update
    return {
        "attempt_id": update.attempt_id,
        "user_id": user_id,
        "completed_at": update.completed_at.isoformat(),
        "score": update.score,
        "answers": list(update.answers),
        "error": warning.error,
    }


class AttemptService:
    def __init__(
        self,
        tests: TestRepo,
        attempts: AttemptStore,
        queue: TaskQueue,
        cache: CacheService,
        *,
        ticker_factory: TickerFactory = AsyncioTicker,
        review_window: timedelta = REVIEW_WINDOW,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._tests = tests
        self._attempts = attempts
        self._queue = queue
        self._cache = cache
        self.ticker_factory = ticker_factory
        self._review_window = review_window
        self._now = now
        self._sessions: dict[str, AttemptSession] = {}

    async def list_tests(self) -> list[TestDefinition]:
        return await self._tests.list_all()

    async def best_scores(self, user_id: str) -> dict[str, int]:
        """Best completed score per test id."""
        best: dict[str, int] = {}
        for attempt in await self._attempts.completed_for_user(user_id):
            if attempt.score > best.get(attempt.test_id, -1):
                best[attempt.test_id] = attempt.score
        return best

    async def start_attempt(self, principal: Principal, test_id: str) -> AttemptSession:
        self.prune()
        try:
            definition = await self._tests.get(test_id)
        except QuestionBankError as exc:
            logger.warning("Refused to start malformed test=%s: %s", test_id, exc)
            raise TestNotFoundError(test_id) from exc
        if definition is None:
            raise TestNotFoundError(test_id)
        if definition.question_count == 0:
            logger.warning("Refused to start test=%s with no questions", test_id)
            raise EmptyTestError(f"test {test_id} has no questions yet")

        attempt_id = await self._attempts.create_attempt(
            user_id=principal.user_id,
            test_id=definition.id,
            test_type=definition.test_type,
            total_questions=definition.question_count,
        )
        session = AttemptSession(
            definition,
            attempt_id,
            principal,
            self._attempts,
            ticker=self.ticker_factory(),
            on_warning=self._make_warning_handler(principal),
            on_persisted=self._invalidate_readiness,
            now=self._now,
        )
        self._sessions[attempt_id] = session
        session.start()
        self._refresh_gauge()
        return session

    def get_session(self, principal: Principal, attempt_id: str) -> AttemptSession:
        self.prune()
        session = self._sessions.get(attempt_id)
        # Someone else's attempt looks exactly like a missing one.
        if session is None or session.principal.user_id != principal.user_id:
            raise AttemptNotFoundError(attempt_id)
        return session

    async def submit(
        self, principal: Principal, attempt_id: str
    ) -> tuple[ScoredResult, PersistenceWarning | None]:
        session = self.get_session(principal, attempt_id)
        result = session.submit()
        self._refresh_gauge()
        warning = await session.wait_for_persistence()
        return result, warning

    def close(self, principal: Principal, attempt_id: str) -> None:
        session = self.get_session(principal, attempt_id)
        session.abandon()
        del self._sessions[attempt_id]
        self._refresh_gauge()

    def prune(self) -> int:
        """Drop submitted sessions whose write settled over a window ago."""
        cutoff = self._now() - self._review_window
        expired = [
            attempt_id
            for attempt_id, s in self._sessions.items()
            if s.settled and s.submitted_at is not None and s.submitted_at <= cutoff
        ]
        for attempt_id in expired:
            del self._sessions[attempt_id]
        if expired:
            logger.debug("Pruned %d reviewed sessions", len(expired))
        return len(expired)

    def reset(self) -> None:
        for session in self._sessions.values():
            session.abandon()
        self._sessions.clear()
        self._refresh_gauge()

    def _refresh_gauge(self) -> None:
        ACTIVE_ATTEMPT_SESSIONS.set(
            sum(1 for s in self._sessions.values() if s.phase is Phase.IN_PROGRESS)
        )

    def _make_warning_handler(self, principal: Principal):
        async def _enqueue_retry(warning: PersistenceWarning) -> None:
            self._refresh_gauge()
            task = await self._queue.enqueue(
                ATTEMPT_PERSISTENCE_QUEUE, warning_payload(warning, principal.user_id)
            )
            logger.info(
                "Queued retry task=%s for unsaved attempt",
                task.id,
                extra={"attempt_id": warning.attempt_id, "user_id": principal.user_id},
            )

        return _enqueue_retry

    async def _invalidate_readiness(self, session: AttemptSession) -> None:
        self._refresh_gauge()
        await self._cache.delete(readiness_key(session.principal.user_id))


attempt_service = AttemptService(test_repo, attempt_store, task_queue, cache_service)
