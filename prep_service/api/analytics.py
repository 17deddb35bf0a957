"""Readiness analytics endpoint.

GET /v1/analytics/readiness is a read-through cache over
``services.readiness.build_report``:

  1. look up ``readiness:{user_id}``
  2. HIT  -> return the cached JSON
  3. MISS -> load catalog + activity, build the report, cache it, return

Entries are deleted when one of the user's attempts is persisted (see
AttemptService).  Coding submissions and speech sessions are written
elsewhere, so the TTL bounds how stale those parts can get.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from prep_service.api.dependencies import require_user
from prep_service.core.metrics import CACHE_OPERATIONS
from prep_service.models.principal import Principal
from prep_service.services.cache import cache_service, readiness_key
from prep_service.services.readiness import build_report
from prep_service.services.stores import activity_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])

_READINESS_CACHE_TTL = 300


class TopicScoreOut(BaseModel):
    topic: str
    score: int


class SkillAxisOut(BaseModel):
    subject: str
    score: int


class WeakAreaOut(BaseModel):
    topic: str
    score: int
    recommendation: str


class DifficultyCountOut(BaseModel):
    name: str
    value: int


class ReadinessOut(BaseModel):
    readiness_score: int
    coding_score: int
    average_test_score: int
    communication_score: int
    topic_performance: list[TopicScoreOut]
    skill_profile: list[SkillAxisOut]
    weak_areas: list[WeakAreaOut]
    difficulty_breakdown: list[DifficultyCountOut]
    problems_solved: int
    tests_taken: int
    speech_sessions: int


@router.get("/readiness", response_model=ReadinessOut)
async def get_readiness(
    principal: Annotated[Principal, Depends(require_user)],
) -> ReadinessOut:
    cache_key = readiness_key(principal.user_id)

    cached = await cache_service.get(cache_key)
    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return ReadinessOut.model_validate_json(cached)
    CACHE_OPERATIONS.labels(operation="miss").inc()

    problems = await activity_repo.problems()
    snapshot = await activity_repo.snapshot(principal.user_id)
    report = ReadinessOut.model_validate(asdict(build_report(problems, snapshot)))
    logger.info(
        "Readiness computed: score=%d tests=%d problems=%d",
        report.readiness_score,
        report.tests_taken,
        report.problems_solved,
        extra={"user_id": principal.user_id},
    )

    await cache_service.set(cache_key, report.model_dump_json(), _READINESS_CACHE_TTL)
    return report
