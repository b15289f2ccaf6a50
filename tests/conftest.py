"""
Pytest Configuration and Shared Fixtures

Provides an in-memory database, a fake social data client and profile/project
factories for all test modules.
"""

import pytest
from datetime import datetime
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from circle_engine.collector.client import MentionResult, ProfileMetadata
from circle_engine.database.models import Base, Profile, Project
from circle_engine.scoring.profile import ScoreBundle


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# Factories
# ============================================================================

@pytest.fixture
def make_profile(db):
    """Create and commit a Profile. Scores default to a Global Circle qualifier."""
    def _make(
        username: str,
        akari: Optional[int] = 800,
        influence: Optional[float] = 80,
        authenticity: Optional[float] = 80,
        signal: Optional[float] = 70,
        farm_risk: Optional[float] = 10,
        followers: int = 1000,
        bio: str = "",
        last_scored_at: Optional[datetime] = None,
        scored: bool = True,
    ) -> Profile:
        profile = Profile(
            username=username,
            username_normalized=username.lower(),
            followers=followers,
            bio=bio,
        )
        if scored:
            profile.akari_profile_score = akari
            profile.influence_score = influence
            profile.authenticity_score = authenticity
            profile.signal_density_score = signal
            profile.farm_risk_score = farm_risk
            profile.last_scored_at = last_scored_at or datetime.utcnow()
        db.add(profile)
        db.commit()
        return profile
    return _make


@pytest.fixture
def make_project(db):
    def _make(slug: str, name: Optional[str] = None, handle: Optional[str] = None, is_active: bool = True) -> Project:
        project = Project(slug=slug, name=name or slug.title(), twitter_username=handle, is_active=is_active)
        db.add(project)
        db.commit()
        return project
    return _make


def user(username: str, followers: int = 500, verified: bool = False, name: str = "") -> ProfileMetadata:
    return ProfileMetadata(username=username, name=name or username, followers=followers, is_verified=verified)


def tweet(author: str, text: str = "", tweet_id: str = "1") -> MentionResult:
    return MentionResult(id=tweet_id, author_username=author, text=text)


@pytest.fixture
def make_user():
    return user


@pytest.fixture
def make_tweet():
    return tweet


# ============================================================================
# Fake Collaborators
# ============================================================================

class FakeTwitterClient:
    """In-memory social data client with the same async surface as TwitterAPIClient."""

    def __init__(self):
        self.users: Dict[str, ProfileMetadata] = {}
        self.followers: Dict[str, List[ProfileMetadata]] = {}
        self.mentions: Dict[str, List[MentionResult]] = {}
        self.search_results: Dict[str, List[ProfileMetadata]] = {}
        self.calls: List[tuple] = []

    async def get_user_info(self, handle):
        self.calls.append(("get_user_info", handle))
        return self.users.get(handle.lower())

    async def get_followers(self, handle, limit=100):
        self.calls.append(("get_followers", handle))
        return list(self.followers.get(handle.lower(), []))[:limit]

    async def search_mentions(self, query, sort="Latest", limit=50):
        self.calls.append(("search_mentions", query))
        return list(self.mentions.get(query, []))[:limit]

    async def search_users(self, query, limit=10):
        self.calls.append(("search_users", query))
        return list(self.search_results.get(query, []))[:limit]


@pytest.fixture
def fake_client():
    return FakeTwitterClient()


@pytest.fixture
def fake_scorer():
    """Scoring oracle returning a qualifying bundle for every handle."""
    scorer = MagicMock()
    scorer.score = AsyncMock(return_value=ScoreBundle(
        akari_profile_score=820,
        authenticity_score=85,
        influence_score=78,
        signal_density_score=70,
        farm_risk_score=5,
    ))
    return scorer


class NoopThrottle:
    def __init__(self, min_interval=0):
        self.min_interval = min_interval
        self.waits = 0

    async def wait(self):
        self.waits += 1
        return 0.0


@pytest.fixture
def no_throttle():
    return NoopThrottle


# ============================================================================
# Test Markers
# ============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
