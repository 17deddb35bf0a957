from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from prep_service.models.activity import CompletedAttempt
from prep_service.models.assessment import AttemptUpdate


class AttemptNotFoundError(KeyError):
    pass


class AttemptStore(Protocol):
    async def create_attempt(
        self, *, user_id: str, test_id: str, test_type: str, total_questions: int
    ) -> str: ...
    async def complete_attempt(self, update: AttemptUpdate) -> None: ...
    async def completed_for_user(self, user_id: str) -> list[CompletedAttempt]: ...


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    id: str
    user_id: str
    test_id: str
    test_type: str
    total_questions: int
    started_at: datetime
    completed_at: datetime | None = None
    score: int | None = None
    answers: tuple[int | None, ...] | None = None


class InMemoryAttemptStore:
    def __init__(self) -> None:
        self._records: dict[str, AttemptRecord] = {}
        # every complete_attempt call, in order
        self.writes: list[AttemptUpdate] = []

    async def create_attempt(
        self, *, user_id: str, test_id: str, test_type: str, total_questions: int
    ) -> str:
        attempt_id = str(uuid.uuid4())
        self._records[attempt_id] = AttemptRecord(
            id=attempt_id,
            user_id=user_id,
            test_id=test_id,
            test_type=test_type,
            total_questions=total_questions,
            started_at=datetime.now(UTC),
        )
        return attempt_id

    async def complete_attempt(self, update: AttemptUpdate) -> None:
        record = self._records.get(update.attempt_id)
        if record is None:
            raise AttemptNotFoundError(update.attempt_id)
        self.writes.append(update)
        self._records[update.attempt_id] = replace(
            record,
            completed_at=update.completed_at,
            score=update.score,
            answers=update.answers,
        )

    async def completed_for_user(self, user_id: str) -> list[CompletedAttempt]:
        return [
            CompletedAttempt(
                test_id=r.test_id,
                score=r.score or 0,
                completed_at=r.completed_at,
                test_type=r.test_type,
            )
            for r in self._records.values()
            if r.user_id == user_id and r.completed_at is not None
        ]

    def get(self, attempt_id: str) -> AttemptRecord | None:
        return self._records.get(attempt_id)
