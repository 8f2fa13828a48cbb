"""
Pytest fixtures for VerityAI tests. Firestore and the HTTP providers are
replaced by in-memory fakes; nothing leaves the process.
"""

from __future__ import annotations

import random

import pytest

from tests.fakes import FakeFirestore, FakeSession
from verity.config import Settings


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        SAMBANOVA_API_KEY="test-sambanova",
        OPENROUTER_API_KEY="test-openrouter",
        NEWS_API_KEY="test-news",
        JWT_SECRET="test-secret",
    )


@pytest.fixture
def bare_settings():
    """No provider credentials configured at all."""
    return Settings(
        _env_file=None,
        SAMBANOVA_API_KEY=None,
        OPENROUTER_API_KEY=None,
        NEWS_API_KEY=None,
        JWT_SECRET="test-secret",
    )


@pytest.fixture
def fake_db():
    return FakeFirestore()


@pytest.fixture
def provider_session():
    """Queue chat-completion replies on this session before calling the API."""
    return FakeSession()


@pytest.fixture
def news_session():
    return FakeSession()


@pytest.fixture
def client(settings, fake_db, provider_session, news_session):
    """FastAPI TestClient wired to the fakes above."""
    from fastapi.testclient import TestClient

    from verity import main
    from verity.gateway import ModelGateway
    from verity.news import NewsFeed

    overrides = {
        main.get_settings: lambda: settings,
        main.get_db: lambda: fake_db,
        main.get_db_factory: lambda: (lambda: fake_db),
        main.get_gateway: lambda: ModelGateway(settings, provider_session),
        main.get_news_feed: lambda: NewsFeed(settings, news_session, rng=random.Random(7)),
    }
    main.app.dependency_overrides.update(overrides)
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
