from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class TestCase:
    __test__ = False

    input: str
    expected_output: str
    hidden: bool = False


@dataclass(frozen=True, slots=True)
class Problem:
    id: str
    topic: str | None = None
    difficulty: str = "easy"  # easy|medium|hard
    title: str = ""
    test_cases: tuple[TestCase, ...] = ()


@dataclass(frozen=True, slots=True)
class CodingSubmission:
    problem_id: str
    status: str  # accepted|rejected|pending

    @property
    def accepted(self) -> bool:
        return self.status == "accepted"


@dataclass(frozen=True, slots=True)
class CompletedAttempt:
    test_id: str
    score: int
    completed_at: datetime
    test_type: str = "general"


@dataclass(frozen=True, slots=True)
class SpeechSession:
    fluency_score: int | None = None
    grammar_score: int | None = None
    confidence_score: int | None = None


@dataclass(frozen=True, slots=True)
class ActivitySnapshot:
    """Everything the readiness report reads for one user.

    Assembled by the activity repo; the aggregator never writes back.
    """

    submissions: tuple[CodingSubmission, ...] = field(default_factory=tuple)
    attempts: tuple[CompletedAttempt, ...] = field(default_factory=tuple)
    speech_sessions: tuple[SpeechSession, ...] = field(default_factory=tuple)
