"""
Profile Rescoring

Picks the profiles due for (re)scoring and runs them through the scoring
oracle, one at a time, throttled.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, List, Optional

from circle_engine.database import repository
from circle_engine.database.models import Profile
from circle_engine.database.session import get_db_context

from .client import ProfileMetadata

logger = logging.getLogger(__name__)

FRESHNESS_WINDOW = timedelta(days=7)


@dataclass
class ScoringResult:
    scored: int = 0
    unscorable: int = 0
    failures: int = 0


def select_profiles_to_score(db, limit: int, now: Optional[datetime] = None) -> List[Profile]:
    """
    Profiles never scored or scored longer ago than FRESHNESS_WINDOW,
    most-followed first, at most `limit`. Read only.
    """
    now = now or datetime.utcnow()
    return repository.get_profiles_to_score(db, now - FRESHNESS_WINDOW, limit)


def _stored_metadata(profile: Profile) -> ProfileMetadata:
    return ProfileMetadata(
        username=profile.username,
        twitter_id=profile.twitter_id,
        name=profile.name or "",
        bio=profile.bio or "",
        profile_image_url=profile.profile_image_url or "",
        followers=profile.followers or 0,
        following=profile.following or 0,
        tweet_count=profile.tweet_count or 0,
        is_verified=bool(profile.is_verified),
        verified_type=profile.verified_type,
        created_at=profile.created_at_twitter,
    )


async def score_profiles(
    db_factory: Optional[Callable],
    client,
    scorer,
    profiles: List[Profile],
    throttle=None,
    now: Optional[Callable[[], datetime]] = None,
) -> ScoringResult:
    """
    Score each profile and persist the result.

    A None from the oracle means "not scorable yet" and leaves the profile
    untouched. Errors are logged and counted per profile.

    Args:
        db_factory: session factory (None = default)
        client: social data client, used to refresh metadata
        scorer: object with `async score(handle)`
        profiles: rows from select_profiles_to_score
        throttle: optional Throttle awaited before each profile
        now: optional clock for last_scored_at
    """
    result = ScoringResult()
    clock = now or datetime.utcnow

    for i, profile in enumerate(profiles, 1):
        handle = profile.username
        try:
            if throttle is not None:
                await throttle.wait()

            logger.info(f"[{i}/{len(profiles)}] Scoring @{handle}")
            scores = await scorer.score(handle)
            if scores is None:
                result.unscorable += 1
                logger.info(f"@{handle} not scorable yet, skipping")
                continue

            metadata = await client.get_user_info(handle)
            if metadata is None:
                logger.warning(f"Metadata refresh failed for @{handle}, keeping stored metadata")
                metadata = _stored_metadata(profile)

            with get_db_context(db_factory) as db:
                repository.upsert_profile(db, metadata, scores=scores, scored_at=clock())

            result.scored += 1
            logger.info(f"@{handle} scored: akari={scores.akari_profile_score}")

        except Exception as e:
            result.failures += 1
            logger.error(f"Failed to score @{handle}: {e}")

    return result
