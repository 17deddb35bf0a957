"""Readiness report over HTTP.

Covers the read-through cache (miss, hit, invalidation) and the composite
computed from seeded coding, test and speech activity.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from prep_service.models.activity import CodingSubmission, Problem, SpeechSession
from prep_service.models.assessment import AttemptUpdate
from prep_service.services.stores import activity_repo, attempt_store
from tests.conftest import auth, mint_token, seed_test


def _cache_ops(operation: str) -> float:
    return REGISTRY.get_sample_value("cache_operations_total", {"operation": operation}) or 0.0


def _completed_attempt(user_id: str, score: int, test_type: str = "aptitude") -> None:
    async def _run() -> None:
        attempt_id = await attempt_store.create_attempt(
            user_id=user_id, test_id="seeded", test_type=test_type, total_questions=10
        )
        await attempt_store.complete_attempt(
            AttemptUpdate(
                attempt_id=attempt_id,
                completed_at=datetime.now(UTC),
                score=score,
                answers=(),
            )
        )

    asyncio.run(_run())


def _seed_activity(user_id: str) -> None:
    for i in range(5):
        activity_repo.add_problem(Problem(id=f"p{i}", topic="Arrays" if i < 2 else "Graphs"))  # type: ignore[union-attr]
    for i in range(4):
        activity_repo.add_submission(user_id, CodingSubmission(f"p{i}", "accepted"))  # type: ignore[union-attr]
    _completed_attempt(user_id, 70)
    activity_repo.add_speech_session(user_id, SpeechSession(60, 60, 60))  # type: ignore[union-attr]


def test_requires_auth(client: TestClient) -> None:
    assert client.get("/v1/analytics/readiness").status_code == 401


def test_empty_activity_is_all_zero(client: TestClient, token: str) -> None:
    body = client.get("/v1/analytics/readiness", headers=auth(token)).json()

    assert body["readiness_score"] == 0
    assert body["topic_performance"] == []
    assert body["weak_areas"] == []
    assert [axis["subject"] for axis in body["skill_profile"]] == [
        "Coding",
        "Aptitude",
        "Verbal",
        "Communication",
        "Technical MCQ",
    ]


def test_composite_from_seeded_activity(client: TestClient) -> None:
    _seed_activity("ready-user")
    token = mint_token("ready-user")

    body = client.get("/v1/analytics/readiness", headers=auth(token)).json()

    assert body["coding_score"] == 80
    assert body["average_test_score"] == 70
    assert body["communication_score"] == 60
    assert body["readiness_score"] == 72
    assert body["topic_performance"] == [
        {"topic": "Arrays", "score": 100},
        {"topic": "Graphs", "score": 67},
    ]
    assert [w["topic"] for w in body["weak_areas"]] == ["Graphs"]
    assert body["problems_solved"] == 4
    assert body["tests_taken"] == 1
    assert body["speech_sessions"] == 1


def test_cache_miss_then_hit(client: TestClient, token: str) -> None:
    misses, hits = _cache_ops("miss"), _cache_ops("hit")

    first = client.get("/v1/analytics/readiness", headers=auth(token))
    second = client.get("/v1/analytics/readiness", headers=auth(token))

    assert first.json() == second.json()
    assert _cache_ops("miss") == misses + 1
    assert _cache_ops("hit") == hits + 1


def test_cached_report_is_served_until_invalidated(client: TestClient, token: str) -> None:
    client.get("/v1/analytics/readiness", headers=auth(token))
    # written behind the cache's back, so the cached copy stays stale
    _completed_attempt("test-user", 90)

    stale = client.get("/v1/analytics/readiness", headers=auth(token)).json()
    assert stale["tests_taken"] == 0


def test_submitted_attempt_invalidates_cache(client: TestClient, token: str) -> None:
    seed_test(questions=2)
    before = client.get("/v1/analytics/readiness", headers=auth(token)).json()
    assert before["tests_taken"] == 0

    attempt_id = client.post("/v1/tests/quant-1/attempts", headers=auth(token)).json()[
        "attempt_id"
    ]
    client.put(f"/v1/attempts/{attempt_id}/answer", json={"option_index": 1}, headers=auth(token))
    client.post(f"/v1/attempts/{attempt_id}/submit", headers=auth(token))

    after = client.get("/v1/analytics/readiness", headers=auth(token)).json()
    assert after["tests_taken"] == 1
    assert after["average_test_score"] == 50
    assert after["skill_profile"][1] == {"subject": "Aptitude", "score": 50}


def test_users_have_separate_reports(client: TestClient) -> None:
    _seed_activity("alice")
    alice = client.get("/v1/analytics/readiness", headers=auth(mint_token("alice"))).json()
    bob = client.get("/v1/analytics/readiness", headers=auth(mint_token("bob"))).json()

    assert alice["readiness_score"] == 72
    assert bob["readiness_score"] == 0
    assert bob["coding_score"] == 0
