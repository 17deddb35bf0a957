"""Controller for one timed multiple-choice attempt.

LIFECYCLE
---------
  in_progress ──submit() / tick() reaching 0──▶ submitted   (terminal)

While ``in_progress`` the session accepts answer selection, free
navigation, and one tick per elapsed second.  The first submission,
whichever trigger gets there first (the Submit button or the countdown),
scores the attempt, cancels the ticker, and hands exactly one
AttemptUpdate to the store.  Every call after that is a no-op; ``submit()``
keeps returning the same ScoredResult.

All state changes happen synchronously inside the entry points, and the
event loop is single threaded, so "manual submit and timer expiry in the
same tick" reduces to "two calls to submit() in a row".

PERSISTENCE
-----------
The store write is the only slow step.  ``submit()`` does not wait for it:
the write runs as its own task and the result is returned straight away.
A failed write never takes the result away from the user.  It becomes a
PersistenceWarning, passed to ``on_warning`` and returned from
``wait_for_persistence()``, so the host can queue a retry and tell the user
their score may not be saved.  The session writes once; retries belong to
whoever handles ``on_warning``, and ``persisted`` keeps describing the
submit-time write even if a later retry lands.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from prep_service.core.metrics import (
    ATTEMPT_PERSISTENCE_FAILURES,
    ATTEMPT_SUBMISSIONS,
)
from prep_service.models.assessment import (
    AttemptState,
    AttemptUpdate,
    PersistenceWarning,
    Phase,
    Question,
    ScoredResult,
    SubmitTrigger,
    TestDefinition,
)
from prep_service.models.principal import Principal
from prep_service.repos.attempt_repo import AttemptStore
from prep_service.services.clock import Ticker
from prep_service.services.scoring import score_answers

logger = logging.getLogger(__name__)

WarningHandler = Callable[[PersistenceWarning], Awaitable[None]]
PersistedHandler = Callable[["AttemptSession"], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AttemptSession:
    def __init__(
        self,
        definition: TestDefinition,
        attempt_id: str,
        principal: Principal,
        store: AttemptStore,
        *,
        ticker: Ticker | None = None,
        on_warning: WarningHandler | None = None,
        on_persisted: PersistedHandler | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._definition = definition
        self._attempt_id = attempt_id
        self._principal = principal
        self._store = store
        self._ticker = ticker
        self._on_warning = on_warning
        self._on_persisted = on_persisted
        self._now = now

        self._phase = Phase.IN_PROGRESS
        self._current = 0
        self._answers: list[int | None] = [None] * definition.question_count
        self._remaining = definition.time_limit_seconds

        self._result: ScoredResult | None = None
        self._trigger: SubmitTrigger | None = None
        self._update: AttemptUpdate | None = None
        self._write_task: asyncio.Task[PersistenceWarning | None] | None = None
        self._persisted = False
        self._warning: PersistenceWarning | None = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def attempt_id(self) -> str:
        return self._attempt_id

    @property
    def definition(self) -> TestDefinition:
        return self._definition

    @property
    def principal(self) -> Principal:
        return self._principal

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def result(self) -> ScoredResult | None:
        return self._result

    @property
    def trigger(self) -> SubmitTrigger | None:
        return self._trigger

    @property
    def persisted(self) -> bool:
        return self._persisted

    @property
    def submitted_at(self) -> datetime | None:
        return self._update.completed_at if self._update is not None else None

    @property
    def settled(self) -> bool:
        """True once the submit-time write has finished, either way."""
        return self._write_task is not None and self._write_task.done()

    @property
    def persistence_warning(self) -> PersistenceWarning | None:
        return self._warning

    @property
    def state(self) -> AttemptState:
        return AttemptState(
            attempt_id=self._attempt_id,
            current_index=self._current,
            answers=tuple(self._answers),
            remaining_seconds=self._remaining,
            phase=self._phase,
        )

    @property
    def current_question(self) -> Question:
        return self._definition.questions[self._current]

    @property
    def answered_count(self) -> int:
        return sum(1 for a in self._answers if a is not None)

    def format_remaining(self) -> str:
        minutes, seconds = divmod(self._remaining, 60)
        return f"{minutes}:{seconds:02d}"

    # ------------------------------------------------------------------
    # Mutations (all no-ops once submitted)
    # ------------------------------------------------------------------

    def start(self) -> AttemptSession:
        """Begin the countdown on the attached ticker, if any."""
        if self._ticker is not None and self._phase is Phase.IN_PROGRESS:
            self._ticker.start(self.tick)
        logger.info(
            "Attempt started: test=%s questions=%d limit=%ds",
            self._definition.id,
            self._definition.question_count,
            self._remaining,
            extra={"attempt_id": self._attempt_id, "user_id": self._principal.user_id},
        )
        return self

    def select_answer(self, option_index: int) -> bool:
        if self._phase is not Phase.IN_PROGRESS:
            return False
        if not self.current_question.has_option(option_index):
            logger.debug(
                "Rejected option=%d for question=%d", option_index, self._current
            )
            return False
        self._answers[self._current] = option_index
        return True

    def navigate(self, target_index: int) -> bool:
        if self._phase is not Phase.IN_PROGRESS:
            return False
        if not 0 <= target_index < self._definition.question_count:
            logger.debug("Rejected navigation to index=%d", target_index)
            return False
        self._current = target_index
        return True

    def next(self) -> bool:
        return self.navigate(self._current + 1)

    def previous(self) -> bool:
        return self.navigate(self._current - 1)

    def tick(self) -> None:
        if self._phase is not Phase.IN_PROGRESS:
            return
        self._remaining = max(0, self._remaining - 1)
        if self._remaining == 0:
            self.submit(trigger=SubmitTrigger.TIMER)

    def submit(self, trigger: SubmitTrigger = SubmitTrigger.MANUAL) -> ScoredResult:
        if self._result is not None:
            logger.debug(
                "Duplicate submit (%s) ignored; already submitted by %s",
                trigger,
                self._trigger,
                extra={"attempt_id": self._attempt_id},
            )
            return self._result

        self._phase = Phase.SUBMITTED
        self._trigger = trigger
        if self._ticker is not None:
            self._ticker.cancel()

        result = score_answers(self._definition.questions, self._answers)
        self._result = result
        self._update = AttemptUpdate(
            attempt_id=self._attempt_id,
            completed_at=self._now(),
            score=result.percentage,
            answers=tuple(self._answers),
        )

        ATTEMPT_SUBMISSIONS.labels(trigger=trigger.value).inc()
        logger.info(
            "Attempt submitted: score=%d correct=%d incorrect=%d skipped=%d",
            result.percentage,
            result.correct_count,
            result.incorrect_count,
            result.skipped_count,
            extra={
                "attempt_id": self._attempt_id,
                "user_id": self._principal.user_id,
                "trigger": trigger.value,
            },
        )

        self._schedule_write()
        return result

    def abandon(self) -> None:
        """Stop the countdown without submitting.  Nothing is written."""
        if self._ticker is not None:
            self._ticker.cancel()
        if self._phase is Phase.IN_PROGRESS:
            logger.info(
                "Attempt abandoned with %ds left",
                self._remaining,
                extra={"attempt_id": self._attempt_id, "user_id": self._principal.user_id},
            )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _schedule_write(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync caller): the write starts in wait_for_persistence().
            return
        self._write_task = loop.create_task(self._write())

    async def _write(self) -> PersistenceWarning | None:
        assert self._update is not None
        try:
            await self._store.complete_attempt(self._update)
        except Exception as exc:
            warning = PersistenceWarning(
                attempt_id=self._attempt_id,
                update=self._update,
                error=str(exc) or type(exc).__name__,
            )
            self._warning = warning
            ATTEMPT_PERSISTENCE_FAILURES.inc()
            logger.warning(
                "Attempt result not saved: %s",
                warning.error,
                extra={"attempt_id": self._attempt_id, "user_id": self._principal.user_id},
            )
            if self._on_warning is not None:
                try:
                    await self._on_warning(warning)
                except Exception:
                    logger.exception(
                        "Persistence warning handler failed",
                        extra={"attempt_id": self._attempt_id},
                    )
            return warning

        self._persisted = True
        self._warning = None
        if self._on_persisted is not None:
            try:
                await self._on_persisted(self)
            except Exception:
                logger.exception(
                    "Persisted hook failed", extra={"attempt_id": self._attempt_id}
                )
        return None

    async def wait_for_persistence(self) -> PersistenceWarning | None:
        """Wait for the submit-time write; None means it landed."""
        if self._update is None:
            raise RuntimeError("attempt has not been submitted")
        if self._write_task is None:
            self._write_task = asyncio.get_running_loop().create_task(self._write())
        return await self._write_task
