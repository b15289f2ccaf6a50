"""
Profile Scoring (AKARI Profile Score)

Scores an account on five components:
- Authenticity (0-100): engagement vs. audience size, follower quality, account age
- Influence (0-100): audience size (log scale), verification, verified followers
- Signal density (0-100): share of analytical content vs. farming/shill content
- Farm risk (0-100): engagement patterns typical of farming pods
- AKARI profile score (0-1000): weighted blend of the above

The pure compute_* functions do the math. ProfileScorer fetches the inputs
through the social data client and returns a ScoreBundle, or None when the
account cannot be scored.
"""

import logging
import math
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


# =============================================================================
# KEYWORDS
# =============================================================================

FARMING_KEYWORDS = [
    "airdrop", "giveaway", "whitelist", "wl spot", "rt to enter",
    "retweet to win", "tag 3 friends", "follow + rt", "quest",
    "claim now", "free mint", "guaranteed", "tag friends",
]

SHILL_KEYWORDS = [
    "use my code", "referral", "sign up with", "affiliate",
    "\U0001F680\U0001F680\U0001F680", "buy now", "don't miss out", "last chance",
    "100x gem", "1000x", "not financial advice",
]

SIGNAL_KEYWORDS = [
    "thread", "1/", "\U0001F9F5", "let me explain", "here's why",
    "analysis", "breakdown", "deep dive", "research",
    "data shows", "on-chain", "metrics", "fundamentals",
]

UPDATE_KEYWORDS = [
    "announcing", "launched", "update:", "v2", "mainnet",
    "partnership", "integration", "milestone", "roadmap",
]

NOISE_KEYWORDS = ["gm", "gn", "wagmi", "wen", "\U0001F602", "\U0001F923"]

# Sample sizes used when fetching scoring inputs
TWEET_SAMPLE = 50
FOLLOWER_SAMPLE = 100
VERIFIED_FOLLOWER_SAMPLE = 50

QUALITY_FOLLOWER_MIN_FOLLOWERS = 200
DEFAULT_FOLLOWER_QUALITY = 0.5


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class ScoreBundle:
    """Scores for one profile plus the ratios they were derived from."""
    akari_profile_score: int
    authenticity_score: float
    influence_score: float
    signal_density_score: float
    farm_risk_score: float

    engagement_rate: float = 0.0
    follower_quality_ratio: float = 0.0
    retweet_ratio: float = 0.0
    signal_ratio: float = 0.0
    farming_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TweetClassification:
    is_signal_analysis: bool = False
    is_project_update: bool = False
    is_airdrop_farming: bool = False
    is_pure_shill: bool = False
    is_retweet_only: bool = False
    is_meme_noise: bool = False


# =============================================================================
# HELPERS
# =============================================================================

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _round(value: float) -> int:
    """Round half up."""
    return int(math.floor(value + 0.5))


def _tweet_engagement(tweet: Any) -> int:
    return (
        (getattr(tweet, "like_count", 0) or 0)
        + (getattr(tweet, "retweet_count", 0) or 0)
        + (getattr(tweet, "reply_count", 0) or 0)
        + (getattr(tweet, "quote_count", 0) or 0)
    )


def calculate_engagement_rate(tweets: Sequence[Any], followers: int) -> float:
    """Average engagement per tweet divided by follower count."""
    if not tweets or not followers:
        return 0.0
    total = sum(_tweet_engagement(t) for t in tweets)
    return total / len(tweets) / followers


def calculate_retweet_ratio(tweets: Sequence[Any]) -> float:
    if not tweets:
        return 0.0
    return sum(1 for t in tweets if getattr(t, "is_retweet", False)) / len(tweets)


def calculate_engagement_variation(tweets: Sequence[Any]) -> float:
    """Coefficient of variation of likes+retweets+replies. 1.0 when undefined."""
    if len(tweets) < 2:
        return 1.0

    values = [
        (t.like_count or 0) + (t.retweet_count or 0) + (t.reply_count or 0)
        for t in tweets
    ]
    mean = sum(values) / len(values)
    if mean == 0:
        return 1.0

    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / mean


def account_age_days(created_at: Optional[str], now: Optional[datetime] = None) -> int:
    """Days since account creation. Unknown or unparseable dates count as 0."""
    if not created_at:
        return 0

    now = now or datetime.now(timezone.utc)
    parsed = None
    for fmt in ("%a %b %d %H:%M:%S %z %Y", "%Y-%m-%dT%H:%M:%S.%f%z", "%Y-%m-%dT%H:%M:%S%z"):
        try:
            parsed = datetime.strptime(created_at.replace("Z", "+0000"), fmt)
            break
        except ValueError:
            continue

    if parsed is None:
        logger.debug(f"Unparseable account creation date: {created_at}")
        return 0
    return max(0, (now - parsed).days)


def classify_tweet(tweet: Any) -> TweetClassification:
    """Keyword classification of a single tweet."""
    raw = getattr(tweet, "text", "") or ""
    text = raw.lower()

    is_signal = any(k in text for k in SIGNAL_KEYWORDS)
    return TweetClassification(
        is_signal_analysis=is_signal,
        is_project_update=any(k in text for k in UPDATE_KEYWORDS),
        is_airdrop_farming=any(k in text for k in FARMING_KEYWORDS),
        is_pure_shill=any(k in text for k in SHILL_KEYWORDS),
        is_retweet_only=bool(getattr(tweet, "is_retweet", False)),
        is_meme_noise=any(k in text for k in NOISE_KEYWORDS) and len(raw) < 50 and not is_signal,
    )


# =============================================================================
# SCORE COMPUTATION
# =============================================================================

def compute_authenticity_score(
    followers: int,
    engagement_rate: float,
    follower_quality_ratio: float,
    retweet_ratio: float,
    account_age: int,
) -> int:
    """
    Start at 100 and subtract penalties:
    - up to 40 for < 0.05% engagement on accounts over 100k followers
    - up to 30 for follower quality below 40%
    - up to 10 for more than 80% retweets
    - up to 10 for accounts younger than 90 days
    """
    score = 100.0

    if followers > 100_000:
        expected = 0.0005
        if engagement_rate < expected:
            score -= (1 - engagement_rate / expected) * 40

    if follower_quality_ratio < 0.4:
        score -= (1 - follower_quality_ratio / 0.4) * 30

    if retweet_ratio > 0.8:
        score -= min(10, (retweet_ratio - 0.8) / 0.2 * 10)

    if account_age < 90:
        score -= (1 - account_age / 90) * 10

    return int(_clamp(_round(score), 0, 100))


def compute_influence_score(followers: int, is_verified: bool, verified_follower_count: int) -> int:
    follower_points = min(1.0, math.log10((followers or 0) + 1) / 6) * 70
    verified_bonus = 10 if is_verified else 0
    high_profile_bonus = min(20, (verified_follower_count or 0) * 2)
    return int(_clamp(_round(follower_points + verified_bonus + high_profile_bonus), 0, 100))


def compute_signal_density_score(
    signal_ratio: float,
    farming_ratio: float,
    shill_ratio: float,
    retweet_ratio: float,
) -> int:
    score = signal_ratio * 100
    score -= farming_ratio * 60
    score -= shill_ratio * 40
    if retweet_ratio > 0.5:
        score -= (retweet_ratio - 0.5) * 40
    return int(_clamp(_round(score), 0, 100))


def compute_farm_risk_score(tweets: Sequence[Any], engagement_rate: float, followers: int) -> int:
    """Heuristic farm risk. Needs at least two tweets to say anything."""
    if len(tweets) < 2:
        return 0

    risk = 0
    # Very high engagement on a small account
    if engagement_rate > 0.05 and followers < 5000:
        risk += 20
    # Suspiciously uniform engagement
    if calculate_engagement_variation(tweets) < 0.1 and len(tweets) > 10:
        risk += 15

    return int(_clamp(risk, 0, 100))


def compute_akari_profile_score(
    authenticity_score: float,
    signal_density_score: float,
    influence_score: float,
    farm_risk_score: float,
) -> int:
    """Blend components into 0-1000. Farm risk discounts authenticity by up to half."""
    auth_final = authenticity_score * (1 - farm_risk_score * 0.5 / 100)
    blended = 0.35 * auth_final + 0.35 * signal_density_score + 0.30 * influence_score
    return int(_clamp(_round(blended * 10), 0, 1000))


# =============================================================================
# SCORER
# =============================================================================

class ProfileScorer:
    """
    Scoring oracle backed by the social data client.

    Usage:
        scorer = ProfileScorer(client)
        bundle = await scorer.score("vitalikbuterin")
    """

    def __init__(self, client, now=None):
        """
        Args:
            client: TwitterAPIClient (or any object with the same fetch methods)
            now: optional callable returning an aware datetime (tests)
        """
        self.client = client
        self._now = now or (lambda: datetime.now(timezone.utc))

    async def score(self, handle: str) -> Optional[ScoreBundle]:
        """
        Score one account.

        Returns:
            ScoreBundle, or None if the user is unknown or scoring failed
        """
        try:
            user = await self.client.get_user_info(handle)
            if user is None:
                logger.info(f"Cannot score @{handle}: user not found")
                return None

            tweets = await self.client.get_last_tweets(handle, TWEET_SAMPLE)
            followers_sample = await self.client.get_followers(handle, FOLLOWER_SAMPLE)
            verified_followers = await self.client.get_verified_followers(handle, VERIFIED_FOLLOWER_SAMPLE)

            return self.score_from_data(user, tweets, followers_sample, verified_followers)

        except Exception as e:
            logger.error(f"Error scoring @{handle}: {e}")
            return None

    def score_from_data(
        self,
        user: Any,
        tweets: List[Any],
        followers_sample: List[Any],
        verified_followers: List[Any],
    ) -> ScoreBundle:
        followers = user.followers or 0
        engagement_rate = calculate_engagement_rate(tweets, followers)
        retweet_ratio = calculate_retweet_ratio(tweets)

        if followers_sample:
            quality = sum(
                1 for f in followers_sample
                if (f.followers or 0) >= QUALITY_FOLLOWER_MIN_FOLLOWERS or f.is_verified
            )
            follower_quality_ratio = quality / len(followers_sample)
        else:
            follower_quality_ratio = DEFAULT_FOLLOWER_QUALITY

        age = account_age_days(user.created_at, self._now())

        classifications = [classify_tweet(t) for t in tweets]
        total = len(tweets) or 1
        signal_ratio = sum(1 for c in classifications if c.is_signal_analysis or c.is_project_update) / total
        farming_ratio = sum(1 for c in classifications if c.is_airdrop_farming) / total
        shill_ratio = sum(1 for c in classifications if c.is_pure_shill) / total

        authenticity = compute_authenticity_score(
            followers, engagement_rate, follower_quality_ratio, retweet_ratio, age
        )
        influence = compute_influence_score(followers, user.is_verified, len(verified_followers))
        signal_density = compute_signal_density_score(signal_ratio, farming_ratio, shill_ratio, retweet_ratio)
        farm_risk = compute_farm_risk_score(tweets, engagement_rate, followers)
        akari = compute_akari_profile_score(authenticity, signal_density, influence, farm_risk)

        return ScoreBundle(
            akari_profile_score=akari,
            authenticity_score=authenticity,
            influence_score=influence,
            signal_density_score=signal_density,
            farm_risk_score=farm_risk,
            engagement_rate=engagement_rate,
            follower_quality_ratio=follower_quality_ratio,
            retweet_ratio=retweet_ratio,
            signal_ratio=signal_ratio,
            farming_ratio=farming_ratio,
        )
