from __future__ import annotations

from typing import Protocol

from prep_service.models.activity import (
    ActivitySnapshot,
    CodingSubmission,
    Problem,
    SpeechSession,
)
from prep_service.models.speech import SpeechAnalysis
from prep_service.repos.attempt_repo import AttemptStore


class ActivityRepo(Protocol):
    async def problems(self) -> list[Problem]: ...
    async def snapshot(self, user_id: str) -> ActivitySnapshot: ...
    async def record_speech_session(
        self, user_id: str, question: str, transcript: str, analysis: SpeechAnalysis
    ) -> None: ...


class InMemoryActivityRepo:
    """Problems, submissions and speech sessions kept in dicts.

    Completed attempts come from the attempt store so a submitted attempt
    shows up in the next snapshot without a second write.
    """

    def __init__(self, attempts: AttemptStore) -> None:
        self._attempts = attempts
        self._problems: dict[str, Problem] = {}
        self._submissions: dict[str, list[CodingSubmission]] = {}
        self._speech: dict[str, list[SpeechSession]] = {}

    async def problems(self) -> list[Problem]:
        return list(self._problems.values())

    async def snapshot(self, user_id: str) -> ActivitySnapshot:
        return ActivitySnapshot(
            submissions=tuple(self._submissions.get(user_id, [])),
            attempts=tuple(await self._attempts.completed_for_user(user_id)),
            speech_sessions=tuple(self._speech.get(user_id, [])),
        )

    async def record_speech_session(
        self, user_id: str, question: str, transcript: str, analysis: SpeechAnalysis
    ) -> None:
        self.add_speech_session(
            user_id,
            SpeechSession(
                fluency_score=analysis.fluency_score,
                grammar_score=analysis.grammar_score,
                confidence_score=analysis.confidence_score,
            ),
        )

    def add_problem(self, problem: Problem) -> None:
        self._problems[problem.id] = problem

    def add_submission(self, user_id: str, submission: CodingSubmission) -> None:
        self._submissions.setdefault(user_id, []).append(submission)

    def add_speech_session(self, user_id: str, session: SpeechSession) -> None:
        self._speech.setdefault(user_id, []).append(session)

    def clear(self) -> None:
        self._problems.clear()
        self._submissions.clear()
        self._speech.clear()
