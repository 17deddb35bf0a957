"""Readiness report: a pure function of one user's activity.

Inputs are the problem catalog and an ActivitySnapshot; the output is a
ReadinessReport.  Nothing here touches I/O or shared state, and the inputs
are copied into tuples up front, so the same call with the same data
always gives the same report.

The composite score weights three signals:

    readiness = round(0.40 * coding + 0.35 * avg_test + 0.25 * communication)

Each signal is itself a rounded percentage, and the weighted sum is kept
exact (Fraction) before the final half-up rounding.
"""

from __future__ import annotations

from collections.abc import Iterable
from fractions import Fraction

from prep_service.models.activity import ActivitySnapshot, Problem, SpeechSession
from prep_service.models.readiness import (
    DifficultyCount,
    ReadinessReport,
    SkillAxis,
    TopicScore,
    WeakArea,
)
from prep_service.services.scoring import mean, percentage, round_half_up

DEFAULT_TOPIC = "General"
WEAK_AREA_THRESHOLD = 70
WEAK_AREA_LIMIT = 3

CODING_WEIGHT = Fraction(40, 100)
TEST_WEIGHT = Fraction(35, 100)
COMMUNICATION_WEIGHT = Fraction(25, 100)

# radar axis -> test type feeding it
TEST_TYPE_AXES = (
    ("Aptitude", "aptitude"),
    ("Verbal", "verbal"),
    ("Technical MCQ", "technical"),
)

DIFFICULTIES = (("Easy", "easy"), ("Medium", "medium"), ("Hard", "hard"))


def _topic_of(problem: Problem) -> str:
    return problem.topic or DEFAULT_TOPIC


def topic_performance(
    problems: Iterable[Problem], solved_ids: set[str]
) -> tuple[TopicScore, ...]:
    totals: dict[str, int] = {}
    solved: dict[str, int] = {}
    for problem in problems:
        topic = _topic_of(problem)
        totals[topic] = totals.get(topic, 0) + 1
        if problem.id in solved_ids:
            solved[topic] = solved.get(topic, 0) + 1

    scores = [
        TopicScore(topic=topic, score=percentage(solved.get(topic, 0), total))
        for topic, total in totals.items()
    ]
    # stable: ties keep catalog order
    return tuple(sorted(scores, key=lambda t: t.score, reverse=True))


def weak_areas(topics: Iterable[TopicScore]) -> tuple[WeakArea, ...]:
    weak = sorted(
        (t for t in topics if t.score < WEAK_AREA_THRESHOLD), key=lambda t: t.score
    )
    return tuple(
        WeakArea(
            topic=t.topic,
            score=t.score,
            recommendation=f"Practice more {t.topic} problems to improve your score.",
        )
        for t in weak[:WEAK_AREA_LIMIT]
    )


def _session_average(session: SpeechSession) -> Fraction:
    total = (
        (session.fluency_score or 0)
        + (session.grammar_score or 0)
        + (session.confidence_score or 0)
    )
    return Fraction(total, 3)


def communication_score(sessions: Iterable[SpeechSession]) -> int:
    return mean([_session_average(s) for s in sessions])


def composite_score(coding: int, average_test: int, communication: int) -> int:
    weighted = (
        CODING_WEIGHT * coding
        + TEST_WEIGHT * average_test
        + COMMUNICATION_WEIGHT * communication
    )
    return round_half_up(weighted)


def build_report(
    problems: Iterable[Problem], snapshot: ActivitySnapshot
) -> ReadinessReport:
    catalog = tuple(problems)
    by_id = {p.id: p for p in catalog}
    attempts = tuple(snapshot.attempts)
    sessions = tuple(snapshot.speech_sessions)

    accepted = [s for s in snapshot.submissions if s.accepted]
    # submissions for problems no longer in the catalog do not count
    solved_ids = {s.problem_id for s in accepted if s.problem_id in by_id}

    topics = topic_performance(catalog, solved_ids)

    coding = percentage(len(solved_ids), len(catalog))
    average_test = mean([a.score for a in attempts])
    communication = communication_score(sessions)

    by_type: dict[str, list[int]] = {}
    for attempt in attempts:
        by_type.setdefault(attempt.test_type or "general", []).append(attempt.score)

    type_scores = {
        axis: mean(by_type.get(test_type, [])) for axis, test_type in TEST_TYPE_AXES
    }
    skill_profile = (
        SkillAxis(subject="Coding", score=coding),
        SkillAxis(subject="Aptitude", score=type_scores["Aptitude"]),
        SkillAxis(subject="Verbal", score=type_scores["Verbal"]),
        SkillAxis(subject="Communication", score=communication),
        SkillAxis(subject="Technical MCQ", score=type_scores["Technical MCQ"]),
    )

    # One entry per accepted submission, like the coding dashboard counts them.
    difficulty_breakdown = tuple(
        DifficultyCount(
            name=label,
            value=sum(
                1
                for s in accepted
                if s.problem_id in by_id and by_id[s.problem_id].difficulty == key
            ),
        )
        for label, key in DIFFICULTIES
    )

    return ReadinessReport(
        readiness_score=composite_score(coding, average_test, communication),
        coding_score=coding,
        average_test_score=average_test,
        communication_score=communication,
        topic_performance=topics,
        skill_profile=skill_profile,
        weak_areas=weak_areas(topics),
        difficulty_breakdown=difficulty_breakdown,
        problems_solved=len(solved_ids),
        tests_taken=len(attempts),
        speech_sessions=len(sessions),
    )
