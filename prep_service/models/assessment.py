from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class Phase(StrEnum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class SubmitTrigger(StrEnum):
    MANUAL = "manual"
    TIMER = "timer"


@dataclass(frozen=True, slots=True)
class Question:
    prompt: str
    options: tuple[str, ...]
    correct_index: int

    def has_option(self, index: int) -> bool:
        return 0 <= index < len(self.options)


@dataclass(frozen=True, slots=True)
class TestDefinition:
    """A timed multiple-choice test as supplied by the store.

    ``questions`` keeps the display and navigation order.
    """

    id: str
    title: str
    time_limit_minutes: int
    questions: tuple[Question, ...]
    test_type: str = "general"  # aptitude|verbal|technical|general
    difficulty: str = "medium"  # easy|medium|hard
    description: str = ""

    __test__ = False  # not a pytest class

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def time_limit_seconds(self) -> int:
        return self.time_limit_minutes * 60


@dataclass(frozen=True, slots=True)
class AttemptState:
    """Point-in-time copy of a session's mutable state."""

    attempt_id: str
    current_index: int
    answers: tuple[int | None, ...]
    remaining_seconds: int
    phase: Phase


@dataclass(frozen=True, slots=True)
class ReviewEntry:
    question: str
    chosen_option: str | None  # None means skipped
    correct_option: str
    is_correct: bool


@dataclass(frozen=True, slots=True)
class ScoredResult:
    percentage: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    review: tuple[ReviewEntry, ...]

    @property
    def question_count(self) -> int:
        return self.correct_count + self.incorrect_count + self.skipped_count


@dataclass(frozen=True, slots=True)
class AttemptUpdate:
    """The single write issued when an attempt is submitted."""

    attempt_id: str
    completed_at: datetime
    score: int
    answers: tuple[int | None, ...]


@dataclass(frozen=True, slots=True)
class PersistenceWarning:
    """Non-fatal report that the final attempt write did not land.

    The score is still shown to the user; the host decides whether to
    retry (``retryable``) or tell the user the result may not be saved.
    """

    attempt_id: str
    update: AttemptUpdate
    error: str
    retryable: bool = True
