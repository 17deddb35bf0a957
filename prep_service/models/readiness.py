from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TopicScore:
    topic: str
    score: int


@dataclass(frozen=True, slots=True)
class SkillAxis:
    subject: str
    score: int


@dataclass(frozen=True, slots=True)
class WeakArea:
    topic: str
    score: int
    recommendation: str


@dataclass(frozen=True, slots=True)
class DifficultyCount:
    name: str
    value: int


@dataclass(frozen=True, slots=True)
class ReadinessReport:
    """Derived view over one user's activity.  Recomputed on demand."""

    readiness_score: int
    coding_score: int
    average_test_score: int
    communication_score: int
    topic_performance: tuple[TopicScore, ...]
    skill_profile: tuple[SkillAxis, ...]
    weak_areas: tuple[WeakArea, ...]
    difficulty_breakdown: tuple[DifficultyCount, ...]
    problems_solved: int
    tests_taken: int
    speech_sessions: int
