"""PostgreSQL implementation of AttemptStore."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update

from prep_service.db.engine import session_scope
from prep_service.db.tables import TestAttemptRow, TestRow
from prep_service.models.activity import CompletedAttempt
from prep_service.models.assessment import AttemptUpdate
from prep_service.repos.attempt_repo import AttemptNotFoundError


class PgAttemptStore:
    """Satisfies the AttemptStore Protocol using PostgreSQL via SQLAlchemy."""

    async def create_attempt(
        self, *, user_id: str, test_id: str, test_type: str, total_questions: int
    ) -> str:
        async with session_scope() as session:
            row = TestAttemptRow(
                user_id=user_id,
                test_id=UUID(test_id),
                total_questions=total_questions,
            )
            session.add(row)
            await session.flush()
            return str(row.id)

    async def complete_attempt(self, attempt: AttemptUpdate) -> None:
        async with session_scope() as session:
            stmt = (
                update(TestAttemptRow)
                .where(TestAttemptRow.id == UUID(attempt.attempt_id))
                .values(
                    completed_at=attempt.completed_at,
                    score=attempt.score,
                    answers=list(attempt.answers),
                )
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise AttemptNotFoundError(attempt.attempt_id)

    async def completed_for_user(self, user_id: str) -> list[CompletedAttempt]:
        async with session_scope() as session:
            stmt = (
                select(TestAttemptRow, TestRow.type)
                .join(TestRow, TestRow.id == TestAttemptRow.test_id)
                .where(
                    TestAttemptRow.user_id == user_id,
                    TestAttemptRow.completed_at.is_not(None),
                )
            )
            rows = (await session.execute(stmt)).all()
        return [
            CompletedAttempt(
                test_id=str(row.test_id),
                score=row.score or 0,
                completed_at=row.completed_at,
                test_type=test_type or "general",
            )
            for row, test_type in rows
        ]
