"""
Competitor Edge Computation

Turns this run's project circles into top-K competitor edges and replaces
each project's stored edges.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Collection, Dict, Mapping, Optional

from circle_engine.database import repository
from circle_engine.database.session import get_db_context
from circle_engine.scoring.similarity import DEFAULT_COMPETITOR_LIMIT, compute_all_competitors

logger = logging.getLogger(__name__)


def load_influence_lookup(db_factory: Optional[Callable] = None) -> Dict[Any, float]:
    """profile_id -> influence snapshot from the Global Inner Circle."""
    with get_db_context(db_factory) as db:
        return {m.profile_id: m.influence_score for m in repository.get_global_inner_circle(db)}


def compute_competitor_edges(
    db_factory: Optional[Callable],
    circles: Mapping[Any, Collection[Any]],
    top_k: int = DEFAULT_COMPETITOR_LIMIT,
) -> Dict[str, int]:
    """
    Compute and persist competitor edges.

    Args:
        db_factory: session factory (None = default)
        circles: project_id -> member profile ids from this run
        top_k: edges kept per source project

    Returns:
        {"edges": written, "failures": projects whose write failed}
    """
    influence = load_influence_lookup(db_factory)
    all_edges = compute_all_competitors(circles, influence, top_k)
    computed_at = datetime.utcnow()

    written = 0
    failures = 0
    for project_id, edges in all_edges.items():
        try:
            with get_db_context(db_factory) as db:
                written += repository.replace_competitors(db, project_id, edges, computed_at)
        except Exception as e:
            failures += 1
            logger.error(f"Failed to store competitors for {project_id}: {e}")

    logger.info(f"Stored {written} competitor edges for {len(all_edges)} projects")
    return {"edges": written, "failures": failures}
