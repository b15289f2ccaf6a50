"""
API Endpoints for Inner Circles

Read-only views over the results of the circle update job:
1. Global Inner Circle (paged)
2. A project's inner circle
3. A project's top competitors
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from circle_engine.database import repository
from circle_engine.database.models import Project
from circle_engine.database.session import get_db
from circle_engine.scoring.circles import map_profile_score_to_tier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/circles", tags=["Circles"])


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class GlobalCircleMemberResponse(BaseModel):
    profile_id: str
    username: str
    name: Optional[str] = None
    profile_image_url: Optional[str] = None
    akari_profile_score: int
    tier: str
    influence_score: float
    segment: str
    added_at: Optional[datetime] = None


class GlobalCircleResponse(BaseModel):
    members: List[GlobalCircleMemberResponse]
    total: int


class ProjectCircleMemberResponse(BaseModel):
    profile_id: str
    username: str
    is_follower: bool
    is_author: bool
    weight: float
    last_interaction_at: Optional[datetime] = None


class ProjectCircleResponse(BaseModel):
    slug: str
    name: str
    twitter_username: Optional[str] = None
    inner_circle_count: int
    inner_circle_power: float
    quality_follower_ratio: float
    last_circle_update_at: Optional[datetime] = None
    members: List[ProjectCircleMemberResponse]


class CompetitorResponse(BaseModel):
    slug: str
    name: str
    common_inner_circle_count: int
    common_inner_circle_power: float
    similarity_score: float
    computed_at: Optional[datetime] = None


class CompetitorListResponse(BaseModel):
    slug: str
    competitors: List[CompetitorResponse]


# =============================================================================
# HELPERS
# =============================================================================

def get_project_or_404(db: Session, slug: str) -> Project:
    project = repository.get_project_by_slug(db, slug)
    if project is None:
        raise HTTPException(status_code=404, detail=f"Project not found: {slug}")
    return project


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/global", response_model=GlobalCircleResponse)
def get_global_circle(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """Global Inner Circle, most influential first."""
    rows = repository.get_global_inner_circle(db, limit=limit, offset=offset)
    members = [
        GlobalCircleMemberResponse(
            profile_id=str(row.profile_id),
            username=row.profile.username,
            name=row.profile.name,
            profile_image_url=row.profile.profile_image_url,
            akari_profile_score=row.akari_profile_score,
            tier=map_profile_score_to_tier(row.akari_profile_score),
            influence_score=row.influence_score,
            segment=row.segment or "general",
            added_at=row.added_at,
        )
        for row in rows
    ]
    return GlobalCircleResponse(members=members, total=repository.count_global_inner_circle(db))


@router.get("/projects/{slug}/inner-circle", response_model=ProjectCircleResponse)
def get_project_circle(slug: str, db: Session = Depends(get_db)):
    project = get_project_or_404(db, slug)
    rows = repository.get_project_inner_circle(db, project.id)

    return ProjectCircleResponse(
        slug=project.slug,
        name=project.name,
        twitter_username=project.twitter_username,
        inner_circle_count=project.inner_circle_count or 0,
        inner_circle_power=project.inner_circle_power or 0.0,
        quality_follower_ratio=project.quality_follower_ratio or 0.0,
        last_circle_update_at=project.last_circle_update_at,
        members=[
            ProjectCircleMemberResponse(
                profile_id=str(row.profile_id),
                username=row.profile.username,
                is_follower=row.is_follower,
                is_author=row.is_author,
                weight=row.weight,
                last_interaction_at=row.last_interaction_at,
            )
            for row in rows
        ],
    )


@router.get("/projects/{slug}/competitors", response_model=CompetitorListResponse)
def get_project_competitors(slug: str, db: Session = Depends(get_db)):
    project = get_project_or_404(db, slug)
    edges = repository.get_project_competitors(db, project.id)

    return CompetitorListResponse(
        slug=project.slug,
        competitors=[
            CompetitorResponse(
                slug=edge.competitor.slug,
                name=edge.competitor.name,
                common_inner_circle_count=edge.common_inner_circle_count,
                common_inner_circle_power=edge.common_inner_circle_power,
                similarity_score=edge.similarity_score,
                computed_at=edge.computed_at,
            )
            for edge in edges
        ],
    )
