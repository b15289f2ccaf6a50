"""
Project Inner Circle Builder

A project's inner circle is the subset of the Global Inner Circle that
follows the project's account or has recently written about it:

1. Follower pass - sample the project's followers, keep Global Circle members
2. Author pass   - search recent mentions, keep Global Circle authors
3. Weight        - akari-based weight with follower/author multipliers
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import UUID

from circle_engine.database import repository
from circle_engine.database.session import get_db_context
from circle_engine.scoring.circles import (
    QUALITY_FOLLOWER_MIN_FOLLOWERS,
    GlobalCircleCandidate,
    calculate_quality_follower_ratio,
    compute_project_circle_weight,
    normalize_handle,
)

from .client import ProfileMetadata

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class CircleMembership:
    """One Global Circle member inside a project circle."""
    profile_id: UUID
    username: str
    akari_profile_score: int
    influence_score: float
    is_follower: bool = False
    is_author: bool = False
    weight: float = 0.0
    last_interaction_at: Optional[datetime] = None


@dataclass
class ProjectCircleStats:
    count: int = 0
    power: float = 0.0
    quality_follower_ratio: float = 0.0


@dataclass
class ProjectCircleResult:
    members: List[CircleMembership] = field(default_factory=list)
    follower_sample: List[ProfileMetadata] = field(default_factory=list)
    stats: ProjectCircleStats = field(default_factory=ProjectCircleStats)

    @property
    def member_ids(self) -> List[UUID]:
        return [m.profile_id for m in self.members]


# =============================================================================
# BUILDER
# =============================================================================

class ProjectCircleBuilder:
    """
    Builds one project's inner circle from follower and author signals.

    Usage:
        builder = ProjectCircleBuilder(client)
        result = await builder.build("Ethereum", "ethereum", global_circle)
    """

    def __init__(
        self,
        client,
        follower_sample_size: int = 100,
        mention_limit: int = 50,
        quality_follower_threshold: int = QUALITY_FOLLOWER_MIN_FOLLOWERS,
    ):
        self.client = client
        self.follower_sample_size = follower_sample_size
        self.mention_limit = mention_limit
        self.quality_follower_threshold = quality_follower_threshold

    @staticmethod
    def mention_query(project_name: str, handle: str) -> str:
        return f'@{handle} OR "{project_name}"'

    async def build(
        self,
        project_name: str,
        handle: str,
        global_circle: Iterable[GlobalCircleCandidate],
        now: Optional[datetime] = None,
    ) -> ProjectCircleResult:
        """
        Build the circle for one project.

        A failed follower or mention fetch contributes nothing; the other
        pass still runs.
        """
        now = now or datetime.utcnow()
        handle = handle.strip().lstrip("@")
        by_handle: Dict[str, GlobalCircleCandidate] = {
            normalize_handle(m.username): m for m in global_circle
        }
        circle: Dict[UUID, CircleMembership] = {}

        # Follower pass
        followers = await self._fetch_followers(handle)
        for follower in followers:
            member = by_handle.get(normalize_handle(follower.username))
            if member is None or member.profile_id in circle:
                continue
            circle[member.profile_id] = CircleMembership(
                profile_id=member.profile_id,
                username=member.username,
                akari_profile_score=member.akari_profile_score,
                influence_score=member.influence_score,
                is_follower=True,
                weight=compute_project_circle_weight(member.akari_profile_score, True, False, 0),
                last_interaction_at=now,
            )
        logger.info(f"  @{handle}: {len(circle)} inner circle followers out of {len(followers)} sampled")

        # Author pass
        mentions = await self._fetch_mentions(project_name, handle)
        authors = 0
        for mention in mentions:
            member = by_handle.get(normalize_handle(mention.author_username))
            if member is None:
                continue

            entry = circle.get(member.profile_id)
            if entry is None:
                entry = CircleMembership(
                    profile_id=member.profile_id,
                    username=member.username,
                    akari_profile_score=member.akari_profile_score,
                    influence_score=member.influence_score,
                    last_interaction_at=now,
                )
                circle[member.profile_id] = entry
            elif entry.is_author:
                continue

            entry.is_author = True
            entry.weight = compute_project_circle_weight(
                entry.akari_profile_score, entry.is_follower, True, 0
            )
            authors += 1
        logger.info(f"  @{handle}: {authors} inner circle authors in {len(mentions)} mentions")

        members = sorted(circle.values(), key=lambda m: (-m.weight, str(m.profile_id)))
        stats = ProjectCircleStats(
            count=len(members),
            power=round(sum(m.influence_score for m in members), 4),
            quality_follower_ratio=calculate_quality_follower_ratio(
                followers, self.quality_follower_threshold
            ),
        )
        return ProjectCircleResult(members=members, follower_sample=followers, stats=stats)

    async def _fetch_followers(self, handle: str) -> List[ProfileMetadata]:
        try:
            return list(await self.client.get_followers(handle, self.follower_sample_size) or [])
        except Exception as e:
            logger.warning(f"Follower fetch failed for @{handle}: {e}")
            return []

    async def _fetch_mentions(self, project_name: str, handle: str) -> List[Any]:
        query = self.mention_query(project_name, handle)
        try:
            return list(await self.client.search_mentions(query, sort="Latest", limit=self.mention_limit) or [])
        except Exception as e:
            logger.warning(f"Mention search failed for '{query}': {e}")
            return []


# =============================================================================
# PERSISTENCE
# =============================================================================

def persist_project_circle(
    db_factory: Optional[Callable],
    project_id: UUID,
    result: ProjectCircleResult,
    updated_at: Optional[datetime] = None,
) -> int:
    """Replace the project's circle rows and stats in one transaction."""
    with get_db_context(db_factory) as db:
        return repository.replace_project_inner_circle(
            db,
            project_id,
            result.members,
            count=result.stats.count,
            power=result.stats.power,
            quality_follower_ratio=result.stats.quality_follower_ratio,
            updated_at=updated_at,
        )
