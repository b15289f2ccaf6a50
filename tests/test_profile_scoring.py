"""
Tests for the AKARI profile scoring functions and ProfileScorer.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from circle_engine.collector.client import MentionResult, ProfileMetadata
from circle_engine.scoring.profile import (
    ProfileScorer,
    account_age_days,
    classify_tweet,
    compute_akari_profile_score,
    compute_authenticity_score,
    compute_farm_risk_score,
    compute_influence_score,
    compute_signal_density_score,
)


NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def tweets(n, likes=10, text="gm", retweet=False):
    return [
        MentionResult(id=str(i), author_username="someone", text=text, like_count=likes, is_retweet=retweet)
        for i in range(n)
    ]


# =============================================================================
# COMPONENT SCORES
# =============================================================================

class TestAuthenticity:

    def test_clean_account(self):
        assert compute_authenticity_score(1000, 0.01, 0.5, 0.1, 365) == 100

    def test_no_quality_followers(self):
        assert compute_authenticity_score(1000, 0.01, 0.0, 0.1, 365) == 70

    def test_brand_new_account(self):
        assert compute_authenticity_score(1000, 0.01, 0.5, 0.1, 0) == 90

    def test_all_penalties(self):
        assert compute_authenticity_score(200_000, 0.0, 0.0, 1.0, 0) == 10


class TestInfluence:

    def test_no_followers(self):
        assert compute_influence_score(0, False, 0) == 0

    def test_capped_at_100(self):
        assert compute_influence_score(10 ** 7, True, 50) == 100

    def test_verified_followers_bonus(self):
        base = compute_influence_score(1000, False, 0)
        assert compute_influence_score(1000, False, 5) == base + 10
        assert compute_influence_score(1000, True, 0) == base + 10


class TestSignalDensity:

    def test_signal_only(self):
        assert compute_signal_density_score(0.5, 0, 0, 0) == 50

    def test_farming_clamps_to_zero(self):
        assert compute_signal_density_score(0.2, 0.5, 0, 0) == 0

    def test_retweet_penalty(self):
        assert compute_signal_density_score(1.0, 0, 0, 1.0) == 80


class TestFarmRisk:

    def test_not_enough_tweets(self):
        assert compute_farm_risk_score(tweets(1), 0.5, 100) == 0

    def test_uniform_engagement(self):
        assert compute_farm_risk_score(tweets(12), 0.01, 10_000) == 15

    def test_small_account_high_engagement(self):
        assert compute_farm_risk_score(tweets(12), 0.1, 1000) == 35


class TestAkari:

    def test_perfect(self):
        assert compute_akari_profile_score(100, 100, 100, 0) == 1000

    def test_farm_risk_discounts_authenticity(self):
        assert compute_akari_profile_score(80, 60, 70, 20) == 672


class TestClassifyTweet:

    def test_farming(self):
        assert classify_tweet(MentionResult(id="1", author_username="a", text="Airdrop! RT to enter")).is_airdrop_farming

    def test_signal(self):
        c = classify_tweet(MentionResult(id="1", author_username="a", text="1/ A thread on fundamentals"))
        assert c.is_signal_analysis
        assert not c.is_meme_noise

    def test_noise(self):
        assert classify_tweet(MentionResult(id="1", author_username="a", text="gm")).is_meme_noise

    def test_shill(self):
        assert classify_tweet(MentionResult(id="1", author_username="a", text="Buy now, 100x gem")).is_pure_shill


def test_account_age_days():
    assert account_age_days("Mon Jan 01 00:00:00 +0000 2024", NOW) == 366
    assert account_age_days("2024-12-22T00:00:00.000Z", NOW) == 10
    assert account_age_days(None, NOW) == 0
    assert account_age_days("not a date", NOW) == 0


# =============================================================================
# SCORER
# =============================================================================

def mock_client(user=None, last_tweets=None, followers=None, verified=None):
    client = MagicMock()
    client.get_user_info = AsyncMock(return_value=user)
    client.get_last_tweets = AsyncMock(return_value=last_tweets or [])
    client.get_followers = AsyncMock(return_value=followers or [])
    client.get_verified_followers = AsyncMock(return_value=verified or [])
    return client


class TestProfileScorer:

    @pytest.mark.asyncio
    async def test_unknown_user_returns_none(self):
        scorer = ProfileScorer(mock_client(user=None))
        assert await scorer.score("ghost") is None

    @pytest.mark.asyncio
    async def test_error_returns_none(self):
        client = mock_client()
        client.get_user_info = AsyncMock(side_effect=RuntimeError("boom"))
        assert await ProfileScorer(client).score("anyone") is None

    @pytest.mark.asyncio
    async def test_full_score(self):
        user = ProfileMetadata(
            username="analyst",
            followers=1000,
            created_at="Wed Oct 10 20:19:24 +0000 2018",
        )
        client = mock_client(
            user=user,
            last_tweets=tweets(10, likes=10, text="Deep dive thread on fundamentals"),
            followers=[ProfileMetadata(username=f"f{i}", followers=500) for i in range(4)],
        )

        bundle = await ProfileScorer(client, now=lambda: NOW).score("analyst")

        assert bundle is not None
        assert bundle.authenticity_score == 100
        assert bundle.influence_score == 35
        assert bundle.signal_density_score == 100
        assert bundle.farm_risk_score == 0
        assert bundle.akari_profile_score == 805
        assert bundle.follower_quality_ratio == 1.0
        assert bundle.engagement_rate == pytest.approx(0.01)
