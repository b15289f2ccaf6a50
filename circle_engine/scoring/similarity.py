"""
Project Similarity from Inner Circle Overlap

Two projects are similar when the same Global Circle members sit in both of
their inner circles. Similarity is the Dice coefficient of the two member
sets; common power is the summed influence of the shared members.
"""

import logging
from dataclasses import dataclass
from typing import Any, Collection, Dict, List, Mapping

logger = logging.getLogger(__name__)

DEFAULT_COMPETITOR_LIMIT = 5


@dataclass
class CommonCircleResult:
    common_count: int
    common_power: float
    similarity_score: float


@dataclass
class CompetitorMatch:
    """One outgoing competitor edge for a source project."""
    competitor_id: Any
    common_count: int
    common_power: float
    similarity_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "competitor_id": str(self.competitor_id),
            "common_count": self.common_count,
            "common_power": self.common_power,
            "similarity_score": self.similarity_score,
        }


def compute_common_inner_circle(
    a_ids: Collection[Any],
    b_ids: Collection[Any],
    influence_by_id: Mapping[Any, float],
) -> CommonCircleResult:
    """
    Overlap between two inner circles.

    Args:
        a_ids: profile ids in the first circle
        b_ids: profile ids in the second circle
        influence_by_id: Global Circle influence snapshot (missing ids count 0)

    Returns:
        CommonCircleResult with Dice similarity rounded to 4 decimals
    """
    a = set(a_ids)
    b = set(b_ids)
    common = a & b

    power = sum(influence_by_id.get(pid, 0) or 0 for pid in common)

    total = len(a) + len(b)
    similarity = (2 * len(common) / total) if total else 0.0

    return CommonCircleResult(
        common_count=len(common),
        common_power=round(float(power), 4),
        similarity_score=round(similarity, 4),
    )


def find_top_competitors(
    project_id: Any,
    circles: Mapping[Any, Collection[Any]],
    influence_by_id: Mapping[Any, float],
    limit: int = DEFAULT_COMPETITOR_LIMIT,
) -> List[CompetitorMatch]:
    """
    Top competitors of one project.

    Only projects with a non-empty circle and at least one shared member are
    considered. Ties on similarity break by common power (desc) and then by
    competitor id string (asc).
    """
    own = circles.get(project_id) or ()
    if not own or limit <= 0:
        return []

    matches = []
    for other_id, other in circles.items():
        if other_id == project_id or not other:
            continue
        result = compute_common_inner_circle(own, other, influence_by_id)
        if result.common_count == 0:
            continue
        matches.append(CompetitorMatch(
            competitor_id=other_id,
            common_count=result.common_count,
            common_power=result.common_power,
            similarity_score=result.similarity_score,
        ))

    matches.sort(key=lambda m: (-m.similarity_score, -m.common_power, str(m.competitor_id)))
    return matches[:limit]


def compute_all_competitors(
    circles: Mapping[Any, Collection[Any]],
    influence_by_id: Mapping[Any, float],
    limit: int = DEFAULT_COMPETITOR_LIMIT,
) -> Dict[Any, List[CompetitorMatch]]:
    """Competitor edges for every project; an empty circle maps to an empty list."""
    edges = {}
    for project_id, members in circles.items():
        if not members:
            edges[project_id] = []
            continue
        edges[project_id] = find_top_competitors(project_id, circles, influence_by_id, limit)

    logger.debug(f"Computed competitors for {len(edges)} projects")
    return edges
