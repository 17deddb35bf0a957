"""Attempt endpoints: the HTTP face of AttemptSession.

  POST   /v1/tests/{test_id}/attempts         start (201)
  GET    /v1/attempts/{attempt_id}            current state
  PUT    /v1/attempts/{attempt_id}/answer     select option for current question
  POST   /v1/attempts/{attempt_id}/navigate   jump to a question index
  POST   /v1/attempts/{attempt_id}/next       one question forward (stops at the end)
  POST   /v1/attempts/{attempt_id}/previous   one question back (stops at the start)
  POST   /v1/attempts/{attempt_id}/submit     score + persist (idempotent)
  DELETE /v1/attempts/{attempt_id}            close without submitting (204)

Rejected answers and out-of-range navigation come back as 422 and leave
the state untouched.  Once the attempt is submitted both calls are quiet
no-ops that return the (frozen) state, so a client racing the timer never
sees an error.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from prep_service.api.dependencies import require_user
from prep_service.models.assessment import Phase, ScoredResult
from prep_service.models.principal import Principal
from prep_service.repos.attempt_repo import AttemptNotFoundError
from prep_service.services.attempt_service import (
    EmptyTestError,
    TestNotFoundError,
    attempt_service,
)
from prep_service.services.attempt_session import AttemptSession

router = APIRouter(prefix="/v1", tags=["attempts"])


class QuestionOut(BaseModel):
    index: int
    prompt: str
    options: list[str]


class ReviewEntryOut(BaseModel):
    question: str
    chosen_option: str | None
    correct_option: str
    is_correct: bool


class ResultOut(BaseModel):
    percentage: int
    correct_count: int
    incorrect_count: int
    skipped_count: int
    question_count: int
    review: list[ReviewEntryOut]


class AttemptOut(BaseModel):
    attempt_id: str
    test_id: str
    title: str
    phase: Phase
    question_count: int
    current_index: int
    question: QuestionOut
    answers: list[int | None]
    answered_count: int
    remaining_seconds: int
    remaining_display: str
    result: ResultOut | None = None


class AnswerIn(BaseModel):
    option_index: int


class NavigateIn(BaseModel):
    index: int


class SubmitOut(BaseModel):
    result: ResultOut
    persisted: bool = Field(
        description="Whether the submit-time write landed. Queued retries do not update it.",
    )
    warning: str | None = Field(
        default=None,
        description="Set when the score could not be saved; it has been queued for retry.",
    )


def _result_out(result: ScoredResult) -> ResultOut:
    return ResultOut(
        percentage=result.percentage,
        correct_count=result.correct_count,
        incorrect_count=result.incorrect_count,
        skipped_count=result.skipped_count,
        question_count=result.question_count,
        review=[
            ReviewEntryOut(
                question=e.question,
                chosen_option=e.chosen_option,
                correct_option=e.correct_option,
                is_correct=e.is_correct,
            )
            for e in result.review
        ],
    )


def _attempt_out(session: AttemptSession) -> AttemptOut:
    state = session.state
    question = session.current_question
    return AttemptOut(
        attempt_id=state.attempt_id,
        test_id=session.definition.id,
        title=session.definition.title,
        phase=state.phase,
        question_count=session.definition.question_count,
        current_index=state.current_index,
        question=QuestionOut(
            index=state.current_index,
            prompt=question.prompt,
            options=list(question.options),
        ),
        answers=list(state.answers),
        answered_count=session.answered_count,
        remaining_seconds=state.remaining_seconds,
        remaining_display=session.format_remaining(),
        result=_result_out(session.result) if session.result is not None else None,
    )


def _lookup(principal: Principal, attempt_id: str) -> AttemptSession:
    try:
        return attempt_service.get_session(principal, attempt_id)
    except AttemptNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Attempt not found",
        ) from None


@router.post(
    "/tests/{test_id}/attempts",
    response_model=AttemptOut,
    status_code=status.HTTP_201_CREATED,
)
async def start_attempt(
    test_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    try:
        session = await attempt_service.start_attempt(principal, test_id)
    except TestNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Test not found",
        ) from None
    except EmptyTestError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        ) from None
    return _attempt_out(session)


@router.get("/attempts/{attempt_id}", response_model=AttemptOut)
async def get_attempt(
    attempt_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    return _attempt_out(_lookup(principal, attempt_id))


@router.put("/attempts/{attempt_id}/answer", response_model=AttemptOut)
async def select_answer(
    attempt_id: str,
    body: AnswerIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    session = _lookup(principal, attempt_id)
    if not session.select_answer(body.option_index) and session.phase is Phase.IN_PROGRESS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Option index out of range",
        )
    return _attempt_out(session)


@router.post("/attempts/{attempt_id}/navigate", response_model=AttemptOut)
async def navigate(
    attempt_id: str,
    body: NavigateIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    session = _lookup(principal, attempt_id)
    if not session.navigate(body.index) and session.phase is Phase.IN_PROGRESS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Question index out of range",
        )
    return _attempt_out(session)


@router.post("/attempts/{attempt_id}/next", response_model=AttemptOut)
async def next_question(
    attempt_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    session = _lookup(principal, attempt_id)
    session.next()
    return _attempt_out(session)


@router.post("/attempts/{attempt_id}/previous", response_model=AttemptOut)
async def previous_question(
    attempt_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> AttemptOut:
    session = _lookup(principal, attempt_id)
    session.previous()
    return _attempt_out(session)


@router.post("/attempts/{attempt_id}/submit", response_model=SubmitOut)
async def submit_attempt(
    attempt_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> SubmitOut:
    _lookup(principal, attempt_id)
    result, warning = await attempt_service.submit(principal, attempt_id)
    return SubmitOut(
        result=_result_out(result),
        persisted=warning is None,
        warning=(
            "Your score could not be saved yet and will be retried."
            if warning is not None
            else None
        ),
    )


@router.delete("/attempts/{attempt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_attempt(
    attempt_id: str,
    principal: Annotated[Principal, Depends(require_user)],
) -> Response:
    _lookup(principal, attempt_id)
    attempt_service.close(principal, attempt_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
