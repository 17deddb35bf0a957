"""Prometheus scrape endpoint (text exposition format, not JSON).

Besides the HTTP series this exposes the attempt counters
(``attempt_submissions_total{trigger}``, persistence failures), the
``active_attempt_sessions`` gauge and the speech-analysis fallback count.
Left open here; restrict it at the ingress in production.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
