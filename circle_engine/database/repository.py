"""
Repository Layer - Clean Interface for Data Operations

Every function takes an explicit Session. Callers own the transaction
(usually via get_db_context), so each replace_* call is atomic with
whatever else runs in the same scope.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from circle_engine.scoring.circles import normalize_handle

from .models import (
    Profile, Project, GlobalCircleMember, ProjectCircleMember, CompetitorEdge,
)

logger = logging.getLogger(__name__)

SCORE_FIELDS = (
    "akari_profile_score",
    "authenticity_score",
    "influence_score",
    "signal_density_score",
    "farm_risk_score",
)


# =============================================================================
# PROFILES
# =============================================================================

def get_profile_by_handle(db: Session, handle: str) -> Optional[Profile]:
    """Look up a profile by handle (case and @ insensitive)."""
    key = normalize_handle(handle)
    if not key:
        return None
    return db.query(Profile).filter(Profile.username_normalized == key).first()


def _apply_metadata(profile: Profile, metadata: Any) -> None:
    profile.username = getattr(metadata, "username", None) or profile.username
    for field in ("name", "bio", "profile_image_url", "verified_type"):
        value = getattr(metadata, field, None)
        if value:
            setattr(profile, field, value)

    twitter_id = getattr(metadata, "twitter_id", None)
    if twitter_id:
        profile.twitter_id = twitter_id

    created_at = getattr(metadata, "created_at", None)
    if created_at:
        profile.created_at_twitter = created_at

    profile.followers = getattr(metadata, "followers", profile.followers) or 0
    profile.following = getattr(metadata, "following", profile.following) or 0
    profile.tweet_count = getattr(metadata, "tweet_count", profile.tweet_count) or 0
    profile.is_verified = bool(getattr(metadata, "is_verified", profile.is_verified))


def upsert_profile(
    db: Session,
    metadata: Any,
    scores: Any = None,
    scored_at: Optional[datetime] = None,
) -> Profile:
    """
    Insert or update a profile keyed by normalized handle.

    Args:
        db: Database session
        metadata: ProfileMetadata-like object (username, followers, ...)
        scores: ScoreBundle-like object; when given, all five scores are written
        scored_at: Timestamp stored as last_scored_at when scores are given

    Returns:
        The persisted Profile
    """
    key = normalize_handle(metadata.username)
    if not key:
        raise ValueError("Cannot upsert a profile without a username")

    profile = db.query(Profile).filter(Profile.username_normalized == key).first()
    if profile is None:
        profile = Profile(username=metadata.username.strip().lstrip("@"), username_normalized=key)
        db.add(profile)

    _apply_metadata(profile, metadata)

    if scores is not None:
        for field in SCORE_FIELDS:
            setattr(profile, field, getattr(scores, field))
        profile.last_scored_at = scored_at or datetime.utcnow()

    db.flush()
    return profile


def create_profile_if_missing(db: Session, metadata: Any) -> bool:
    """Insert an unscored profile if the handle is unknown. Returns True when created."""
    key = normalize_handle(getattr(metadata, "username", "") or "")
    if not key:
        return False
    if db.query(Profile.id).filter(Profile.username_normalized == key).first():
        return False

    profile = Profile(username=metadata.username.strip().lstrip("@"), username_normalized=key)
    _apply_metadata(profile, metadata)
    db.add(profile)
    db.flush()
    return True


def get_profiles_to_score(db: Session, stale_before: datetime, limit: int) -> List[Profile]:
    """Never-scored or stale profiles, most-followed first."""
    if limit <= 0:
        return []
    return (
        db.query(Profile)
        .filter(or_(Profile.last_scored_at.is_(None), Profile.last_scored_at < stale_before))
        .order_by(Profile.followers.desc(), Profile.username_normalized)
        .limit(limit)
        .all()
    )


def get_scored_profiles(db: Session) -> List[Profile]:
    """Every profile that has been scored at least once, oldest first."""
    return (
        db.query(Profile)
        .filter(Profile.last_scored_at.isnot(None))
        .order_by(Profile.created_at, Profile.id)
        .all()
    )


# =============================================================================
# PROJECTS
# =============================================================================

def get_active_projects(db: Session) -> List[Project]:
    return db.query(Project).filter(Project.is_active.is_(True)).order_by(Project.slug).all()


def get_project_by_slug(db: Session, slug: str) -> Optional[Project]:
    return db.query(Project).filter(Project.slug == slug).first()


def set_project_handle_if_empty(db: Session, project_id: UUID, handle: str) -> bool:
    """
    Write an auto-discovered handle only if the stored one is still empty.

    Returns:
        True if the handle was written
    """
    updated = (
        db.query(Project)
        .filter(Project.id == project_id)
        .filter(or_(Project.twitter_username.is_(None), Project.twitter_username == ""))
        .update({Project.twitter_username: handle}, synchronize_session=False)
    )
    return updated > 0


# =============================================================================
# GLOBAL INNER CIRCLE
# =============================================================================

def replace_global_inner_circle(db: Session, members: Iterable[Any], added_at: Optional[datetime] = None) -> int:
    """
    Replace the whole Global Inner Circle.

    Args:
        members: objects with profile_id, akari_profile_score, influence_score, segment

    Returns:
        Number of rows inserted
    """
    added_at = added_at or datetime.utcnow()
    db.query(GlobalCircleMember).delete(synchronize_session=False)

    rows = [
        GlobalCircleMember(
            profile_id=m.profile_id,
            akari_profile_score=m.akari_profile_score,
            influence_score=m.influence_score,
            segment=m.segment,
            added_at=added_at,
        )
        for m in members
    ]
    db.add_all(rows)
    db.flush()
    return len(rows)


def get_global_inner_circle(db: Session, limit: Optional[int] = None, offset: int = 0) -> List[GlobalCircleMember]:
    """Global circle members, most influential first."""
    query = (
        db.query(GlobalCircleMember)
        .order_by(GlobalCircleMember.influence_score.desc(), GlobalCircleMember.profile_id)
        .offset(offset)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def count_global_inner_circle(db: Session) -> int:
    return db.query(GlobalCircleMember).count()


# =============================================================================
# PROJECT INNER CIRCLES
# =============================================================================

def replace_project_inner_circle(
    db: Session,
    project_id: UUID,
    members: Iterable[Any],
    count: int,
    power: float,
    quality_follower_ratio: float,
    updated_at: Optional[datetime] = None,
) -> int:
    """
    Replace a project's circle rows and update its stats.

    Args:
        members: objects with profile_id, is_follower, is_author, weight, last_interaction_at
    """
    updated_at = updated_at or datetime.utcnow()
    db.query(ProjectCircleMember).filter(
        ProjectCircleMember.project_id == project_id
    ).delete(synchronize_session=False)

    rows = [
        ProjectCircleMember(
            project_id=project_id,
            profile_id=m.profile_id,
            is_follower=m.is_follower,
            is_author=m.is_author,
            weight=m.weight,
            last_interaction_at=m.last_interaction_at,
            created_at=updated_at,
        )
        for m in members
    ]
    db.add_all(rows)

    db.query(Project).filter(Project.id == project_id).update(
        {
            Project.inner_circle_count: count,
            Project.inner_circle_power: power,
            Project.quality_follower_ratio: quality_follower_ratio,
            Project.last_circle_update_at: updated_at,
        },
        synchronize_session=False,
    )
    db.flush()
    return len(rows)


def get_project_inner_circle(db: Session, project_id: UUID) -> List[ProjectCircleMember]:
    return (
        db.query(ProjectCircleMember)
        .filter(ProjectCircleMember.project_id == project_id)
        .order_by(ProjectCircleMember.weight.desc(), ProjectCircleMember.profile_id)
        .all()
    )


# =============================================================================
# COMPETITORS
# =============================================================================

def replace_competitors(
    db: Session,
    project_id: UUID,
    edges: Iterable[Any],
    computed_at: Optional[datetime] = None,
) -> int:
    """
    Replace a project's competitor edges.

    Args:
        edges: objects with competitor_id, common_count, common_power, similarity_score
    """
    computed_at = computed_at or datetime.utcnow()
    db.query(CompetitorEdge).filter(
        CompetitorEdge.project_id == project_id
    ).delete(synchronize_session=False)

    rows = [
        CompetitorEdge(
            project_id=project_id,
            competitor_id=e.competitor_id,
            common_inner_circle_count=e.common_count,
            common_inner_circle_power=e.common_power,
            similarity_score=e.similarity_score,
            computed_at=computed_at,
        )
        for e in edges
        if e.competitor_id != project_id
    ]
    db.add_all(rows)
    db.flush()
    return len(rows)


def get_project_competitors(db: Session, project_id: UUID) -> List[CompetitorEdge]:
    return (
        db.query(CompetitorEdge)
        .filter(CompetitorEdge.project_id == project_id)
        .order_by(
            CompetitorEdge.similarity_score.desc(),
            CompetitorEdge.common_inner_circle_power.desc(),
        )
        .all()
    )
