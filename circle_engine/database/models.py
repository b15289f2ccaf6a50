"""
SQLAlchemy Models for the Circle Engine

Tables:
1. profiles               - tracked accounts and their latest scores
2. projects               - tracked projects plus circle stats
3. inner_circle_members   - the Global Inner Circle (replaced every run)
4. project_inner_circle   - per-project weighted circle membership
5. project_competitors    - top-K competitor edges per project

Generic Uuid/JSON types keep the schema portable between PostgreSQL and SQLite.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, Text,
    ForeignKey, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


# =============================================================================
# CORE ENTITIES
# =============================================================================

class Profile(Base):
    """A tracked Twitter/X account. Created unscored on discovery, rescored in place."""
    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid4)
    twitter_id = Column(String(64))

    # Identity
    username = Column(String(64), nullable=False)
    username_normalized = Column(String(64), nullable=False, unique=True)  # lowercase, no @
    name = Column(String(255))
    bio = Column(Text)
    profile_image_url = Column(Text)

    # Metadata
    followers = Column(Integer, default=0)
    following = Column(Integer, default=0)
    tweet_count = Column(Integer, default=0)
    is_verified = Column(Boolean, default=False)
    verified_type = Column(String(32))
    created_at_twitter = Column(String(64))

    # Scores (null until first scored)
    akari_profile_score = Column(Integer)       # 0-1000
    authenticity_score = Column(Float)          # 0-100
    influence_score = Column(Float)             # 0-100
    signal_density_score = Column(Float)        # 0-100
    farm_risk_score = Column(Float)             # 0-100
    last_scored_at = Column(DateTime)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_profile_last_scored", "last_scored_at"),
        Index("idx_profile_followers", "followers"),
    )

    def __repr__(self):
        return f"<Profile @{self.username} akari={self.akari_profile_score}>"


class Project(Base):
    """A tracked project. The handle is admin-controlled and only auto-filled once."""
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid4)
    slug = Column(String(128), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    twitter_username = Column(String(64))
    is_active = Column(Boolean, default=True)

    # Circle stats (written by the project circle phase)
    inner_circle_count = Column(Integer, default=0)
    inner_circle_power = Column(Float, default=0.0)
    quality_follower_ratio = Column(Float, default=0.0)
    last_circle_update_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    circle_members = relationship("ProjectCircleMember", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project {self.slug}>"


# =============================================================================
# CIRCLES
# =============================================================================

class GlobalCircleMember(Base):
    """Global Inner Circle membership with a score snapshot taken at selection time."""
    __tablename__ = "inner_circle_members"

    id = Column(Uuid, primary_key=True, default=uuid4)
    profile_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, unique=True)

    akari_profile_score = Column(Integer, nullable=False)
    influence_score = Column(Float, nullable=False)
    segment = Column(String(32), default="general")

    added_at = Column(DateTime, default=datetime.utcnow)

    profile = relationship("Profile")

    __table_args__ = (
        Index("idx_inner_circle_influence", "influence_score"),
    )


class ProjectCircleMember(Base):
    """A Global Circle member linked to a project (follower and/or author)."""
    __tablename__ = "project_inner_circle"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False)
    profile_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)

    is_follower = Column(Boolean, default=False)
    is_author = Column(Boolean, default=False)
    weight = Column(Float, nullable=False)
    last_interaction_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="circle_members")
    profile = relationship("Profile")

    __table_args__ = (
        UniqueConstraint("project_id", "profile_id", name="uq_project_circle_profile"),
        Index("idx_project_circle_weight", "project_id", "weight"),
    )


# =============================================================================
# COMPETITORS
# =============================================================================

class CompetitorEdge(Base):
    """Directed similarity edge from a project to one of its top competitors."""
    __tablename__ = "project_competitors"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False)
    competitor_id = Column(Uuid, ForeignKey("projects.id"), nullable=False)

    common_inner_circle_count = Column(Integer, default=0)
    common_inner_circle_power = Column(Float, default=0.0)
    similarity_score = Column(Float, default=0.0)  # Dice, 0-1

    computed_at = Column(DateTime, default=datetime.utcnow)

    competitor = relationship("Project", foreign_keys=[competitor_id])

    __table_args__ = (
        UniqueConstraint("project_id", "competitor_id", name="uq_project_competitor"),
        Index("idx_competitor_similarity", "project_id", "similarity_score"),
    )
