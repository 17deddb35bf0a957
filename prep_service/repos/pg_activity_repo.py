"""PostgreSQL implementation of ActivityRepo."""

from __future__ import annotations

import logging

from sqlalchemy import select

from prep_service.db.engine import session_scope
from prep_service.db.tables import (
    CodingProblemRow,
    CodingSubmissionRow,
    SpeechSessionRow,
)
from prep_service.models.activity import (
    ActivitySnapshot,
    CodingSubmission,
    Problem,
    SpeechSession,
)
from prep_service.models.speech import SpeechAnalysis
from prep_service.repos.attempt_repo import AttemptStore
from prep_service.services.question_bank import QuestionBankError, parse_problem

logger = logging.getLogger(__name__)


class PgActivityRepo:
    def __init__(self, attempts: AttemptStore) -> None:
        self._attempts = attempts

    async def problems(self) -> list[Problem]:
        async with session_scope() as session:
            rows = (await session.execute(select(CodingProblemRow))).scalars().all()
        problems: list[Problem] = []
        for row in rows:
            try:
                problems.append(parse_problem(_problem_row_to_dict(row)))
            except QuestionBankError as exc:
                logger.warning("Skipping malformed problem %s: %s", row.id, exc)
        return problems

    async def snapshot(self, user_id: str) -> ActivitySnapshot:
        async with session_scope() as session:
            submissions = (
                await session.execute(
                    select(CodingSubmissionRow).where(
                        CodingSubmissionRow.user_id == user_id
                    )
                )
            ).scalars().all()
            speech = (
                await session.execute(
                    select(SpeechSessionRow).where(SpeechSessionRow.user_id == user_id)
                )
            ).scalars().all()

        return ActivitySnapshot(
            submissions=tuple(
                CodingSubmission(problem_id=str(s.problem_id), status=s.status)
                for s in submissions
            ),
            attempts=tuple(await self._attempts.completed_for_user(user_id)),
            speech_sessions=tuple(
                SpeechSession(
                    fluency_score=s.fluency_score,
                    grammar_score=s.grammar_score,
                    confidence_score=s.confidence_score,
                )
                for s in speech
            ),
        )

    async def record_speech_session(
        self, user_id: str, question: str, transcript: str, analysis: SpeechAnalysis
    ) -> None:
        async with session_scope() as session:
            session.add(
                SpeechSessionRow(
                    user_id=user_id,
                    question=question,
                    transcript=transcript,
                    fluency_score=analysis.fluency_score,
                    grammar_score=analysis.grammar_score,
                    confidence_score=analysis.confidence_score,
                    filler_count=analysis.filler_count,
                    wpm=analysis.words_per_minute,
                    ai_feedback=analysis.feedback,
                )
            )


def _problem_row_to_dict(row: CodingProblemRow) -> dict:
    return {
        "id": row.id,
        "title": row.title,
        "topic": row.topic,
        "difficulty": row.difficulty,
        "test_cases": row.test_cases,
    }
