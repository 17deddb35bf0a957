"""Module-level repository singletons.

Same conditional pattern as the cache and task queue: PostgreSQL repos when
DATABASE_URL is configured, in-memory repos otherwise.  Tests seed and
reset the in-memory instances through conftest.py.
"""

from __future__ import annotations

from prep_service.db.engine import engine
from prep_service.repos.activity_repo import ActivityRepo, InMemoryActivityRepo
from prep_service.repos.attempt_repo import AttemptStore, InMemoryAttemptStore
from prep_service.repos.pg_activity_repo import PgActivityRepo
from prep_service.repos.pg_attempt_repo import PgAttemptStore
from prep_service.repos.pg_test_repo import PgTestRepo
from prep_service.repos.test_repo import InMemoryTestRepo, TestRepo

if engine is not None:
    test_repo: TestRepo = PgTestRepo()
    attempt_store: AttemptStore = PgAttemptStore()
    activity_repo: ActivityRepo = PgActivityRepo(attempt_store)
else:
    test_repo = InMemoryTestRepo()
    attempt_store = InMemoryAttemptStore()
    activity_repo = InMemoryActivityRepo(attempt_store)
