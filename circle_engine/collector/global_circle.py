"""
Global Inner Circle Builder

Loads every scored profile, ranks it and swaps in the new circle atomically.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from circle_engine.database import repository
from circle_engine.database.session import get_db_context
from circle_engine.scoring.circles import (
    GLOBAL_INNER_CIRCLE_MAX_SIZE,
    GlobalCircleCandidate,
    rank_for_global_inner_circle,
)

logger = logging.getLogger(__name__)


def build_global_inner_circle(
    db_factory: Optional[Callable] = None,
    max_size: int = GLOBAL_INNER_CIRCLE_MAX_SIZE,
    criteria: Optional[Dict[str, float]] = None,
) -> List[GlobalCircleCandidate]:
    """
    Rebuild the Global Inner Circle.

    The delete and the insert run in one transaction, so readers never see a
    half-replaced circle. No qualifying profiles yields an empty circle.

    Returns:
        The selected members, most influential first
    """
    with get_db_context(db_factory) as db:
        profiles = repository.get_scored_profiles(db)
        members = rank_for_global_inner_circle(profiles, max_size, criteria)
        repository.replace_global_inner_circle(db, members, added_at=datetime.utcnow())

    logger.info(
        f"Global inner circle: {len(members)} members "
        f"(from {len(profiles)} scored profiles, max {max_size})"
    )
    return members


def load_global_inner_circle(db_factory: Optional[Callable] = None) -> List[GlobalCircleCandidate]:
    """Read the persisted circle back as candidates (used when the build phase failed)."""
    with get_db_context(db_factory) as db:
        rows = repository.get_global_inner_circle(db)
        return [
            GlobalCircleCandidate(
                profile_id=row.profile_id,
                username=row.profile.username,
                akari_profile_score=row.akari_profile_score,
                influence_score=row.influence_score,
                segment=row.segment,
            )
            for row in rows
        ]
