"""Test catalog endpoint.

GET /v1/tests lists every published test with the caller's best completed
score, the data behind the assessments page.  Questions are never included;
they are only served one at a time through an attempt.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from prep_service.api.dependencies import require_user
from prep_service.models.principal import Principal
from prep_service.services.attempt_service import attempt_service

router = APIRouter(prefix="/v1/tests", tags=["tests"])


class TestSummaryOut(BaseModel):
    id: str
    title: str
    type: str
    difficulty: str
    description: str
    time_limit_minutes: int
    question_count: int
    best_score: int | None


@router.get("", response_model=list[TestSummaryOut])
async def list_tests(
    principal: Annotated[Principal, Depends(require_user)],
) -> list[TestSummaryOut]:
    best = await attempt_service.best_scores(principal.user_id)
    return [
        TestSummaryOut(
            id=t.id,
            title=t.title,
            type=t.test_type,
            difficulty=t.difficulty,
            description=t.description,
            time_limit_minutes=t.time_limit_minutes,
            question_count=t.question_count,
            best_score=best.get(t.id),
        )
        for t in await attempt_service.list_tests()
    ]
