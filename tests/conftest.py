"""
Test configuration and fixtures for the PageGrade API.

Redis is replaced by fakeredis and the worker queue by an in-memory list, so
no broker, browser or model service is needed.
"""

from typing import Generator

import fakeredis
import fakeredis.aioredis
import pytest
from fastapi.testclient import TestClient

from pagegrade.features.analysis.dependencies.analysis import get_enqueuer
from pagegrade.features.analysis.services.store.analysis_store import AnalysisStore


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client) -> AnalysisStore:
    return AnalysisStore(redis_client)


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from pagegrade.main import app

    return app


@pytest.fixture
def enqueued():
    """Jobs handed to the queue during a test."""
    return []


@pytest.fixture(scope="function")
def client(test_app, redis_client, enqueued) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    Each test gets its own fake Redis and a queue that only records jobs.
    """
    test_app.state.redis = redis_client
    test_app.state.async_redis = fakeredis.aioredis.FakeRedis(decode_responses=True)

    def fake_enqueue(job):
        enqueued.append(job)
        return True

    test_app.dependency_overrides[get_enqueuer] = lambda: fake_enqueue

    with TestClient(test_app) as test_client:
        yield test_client

    test_app.dependency_overrides.clear()
    test_app.state.redis = None
    test_app.state.async_redis = None
