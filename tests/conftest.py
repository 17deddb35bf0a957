from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from prep_service.api import speech
from prep_service.main import app
from prep_service.models.assessment import Question, TestDefinition
from prep_service.services import token_service
from prep_service.services.attempt_service import attempt_service
from prep_service.services.cache import cache_service
from prep_service.services.clock import ManualTicker
from prep_service.services.speech_analysis import FakeSpeechAnalyzer
from prep_service.services.stores import activity_repo, attempt_store, test_repo
from prep_service.services.task_queue import task_queue

# Ensure repo root is on sys.path so `from tests.conftest import ...` works.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_stores() -> None:
    """Clear the in-memory repos between tests."""
    test_repo._by_id.clear()  # type: ignore[union-attr]
    attempt_store._records.clear()  # type: ignore[union-attr]
    attempt_store.writes.clear()  # type: ignore[union-attr]
    activity_repo.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def tickers() -> list[ManualTicker]:
    """Swap real countdowns for ManualTickers, listed in creation order."""
    created: list[ManualTicker] = []

    def _factory() -> ManualTicker:
        ticker = ManualTicker()
        created.append(ticker)
        return ticker

    attempt_service.reset()
    attempt_service.ticker_factory = _factory
    return created


@pytest.fixture(autouse=True)
def fake_analyzer(monkeypatch: pytest.MonkeyPatch) -> FakeSpeechAnalyzer:
    analyzer = FakeSpeechAnalyzer()
    monkeypatch.setattr(speech, "speech_analyzer", analyzer)
    return analyzer


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    return mint_token()


# ---------------------------------------------------------------------------
# Test catalog helpers
# ---------------------------------------------------------------------------


def make_question(prompt: str = "2 + 2 = ?", correct: int = 1) -> Question:
    return Question(prompt=prompt, options=("3", "4", "5", "22"), correct_index=correct)


def make_definition(
    test_id: str = "quant-1",
    *,
    questions: int = 3,
    minutes: int = 1,
    test_type: str = "aptitude",
) -> TestDefinition:
    return TestDefinition(
        id=test_id,
        title=f"Test {test_id}",
        time_limit_minutes=minutes,
        questions=tuple(make_question(f"Q{i + 1}") for i in range(questions)),
        test_type=test_type,
    )


def seed_test(test_id: str = "quant-1", **kwargs) -> TestDefinition:
    """Create and register a definition in the in-memory test repo."""
    definition = make_definition(test_id, **kwargs)
    test_repo.add(definition)  # type: ignore[union-attr]
    return definition
