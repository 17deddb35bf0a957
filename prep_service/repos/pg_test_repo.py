"""PostgreSQL implementation of TestRepo."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import select

from prep_service.db.engine import session_scope
from prep_service.db.tables import TestRow
from prep_service.models.assessment import TestDefinition
from prep_service.services.question_bank import (
    QuestionBankError,
    parse_test_definition,
)

logger = logging.getLogger(__name__)


class PgTestRepo:
    async def get(self, test_id: str) -> TestDefinition | None:
        try:
            key = UUID(test_id)
        except ValueError:
            return None
        async with session_scope() as session:
            row = (
                await session.execute(select(TestRow).where(TestRow.id == key))
            ).scalar_one_or_none()
        if row is None:
            return None
        return parse_test_definition(_row_to_dict(row))

    async def list_all(self) -> list[TestDefinition]:
        async with session_scope() as session:
            rows = (
                await session.execute(select(TestRow).order_by(TestRow.created_at.desc()))
            ).scalars().all()

        definitions: list[TestDefinition] = []
        for row in rows:
            try:
                definitions.append(parse_test_definition(_row_to_dict(row)))
            except QuestionBankError as exc:
                # One broken test must not hide the rest of the catalog.
                logger.warning("Skipping malformed test %s: %s", row.id, exc)
        return definitions


def _row_to_dict(row: TestRow) -> dict:
    return {
        "id": row.id,
        "title": row.title,
        "type": row.type,
        "difficulty": row.difficulty,
        "time_limit": row.time_limit,
        "description": row.description,
        "questions": row.questions,
    }
