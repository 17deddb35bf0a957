"""Mock-interview answer analysis.

POST /v1/speech/analyze sends the transcript to the analysis gateway and
records the scored session for the caller.  The response is always a
SpeechAnalysis: gateway failures and unreadable replies yield the neutral
fallback (all scores 50, 120 wpm) instead of an error.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from prep_service.api.dependencies import require_user
from prep_service.models.principal import Principal
from prep_service.services.cache import cache_service, readiness_key
from prep_service.services.speech_analysis import build_analyzer
from prep_service.services.stores import activity_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/speech", tags=["speech"])

speech_analyzer = build_analyzer()


class AnalyzeIn(BaseModel):
    transcript: str = Field(min_length=1, max_length=20_000)
    question: str = Field(min_length=1, max_length=1_000)


class AnalysisOut(BaseModel):
    fluency_score: int
    grammar_score: int
    confidence_score: int
    filler_count: int
    wpm: int
    feedback: str


@router.post("/analyze", response_model=AnalysisOut)
async def analyze(
    body: AnalyzeIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AnalysisOut:
    analysis = await speech_analyzer.analyze(body.transcript, body.question)

    try:
        await activity_repo.record_speech_session(
            principal.user_id, body.question, body.transcript, analysis
        )
    except Exception:
        # The user still gets their feedback; only the history entry is lost.
        logger.exception(
            "Speech session not recorded", extra={"user_id": principal.user_id}
        )
    else:
        await cache_service.delete(readiness_key(principal.user_id))

    return AnalysisOut(
        fluency_score=analysis.fluency_score,
        grammar_score=analysis.grammar_score,
        confidence_score=analysis.confidence_score,
        filler_count=analysis.filler_count,
        wpm=analysis.words_per_minute,
        feedback=analysis.feedback,
    )
