"""
Scoring modules: profile scores, inner circle helpers and project similarity.
"""

from .circles import (
    GLOBAL_INNER_CIRCLE_CRITERIA,
    GLOBAL_INNER_CIRCLE_MAX_SIZE,
    GlobalCircleCandidate,
    qualifies_for_global_inner_circle,
    rank_for_global_inner_circle,
    compute_project_circle_weight,
    segment_profile,
    normalize_handle,
    calculate_quality_follower_ratio,
    map_profile_score_to_tier,
)
from .similarity import (
    CommonCircleResult,
    CompetitorMatch,
    compute_common_inner_circle,
    find_top_competitors,
    compute_all_competitors,
)
from .profile import (
    ScoreBundle,
    ProfileScorer,
    classify_tweet,
    compute_authenticity_score,
    compute_influence_score,
    compute_signal_density_score,
    compute_farm_risk_score,
    compute_akari_profile_score,
)

__all__ = [
    "GLOBAL_INNER_CIRCLE_CRITERIA",
    "GLOBAL_INNER_CIRCLE_MAX_SIZE",
    "GlobalCircleCandidate",
    "qualifies_for_global_inner_circle",
    "rank_for_global_inner_circle",
    "compute_project_circle_weight",
    "segment_profile",
    "normalize_handle",
    "calculate_quality_follower_ratio",
    "map_profile_score_to_tier",
    "CommonCircleResult",
    "CompetitorMatch",
    "compute_common_inner_circle",
    "find_top_competitors",
    "compute_all_competitors",
    "ScoreBundle",
    "ProfileScorer",
    "classify_tweet",
    "compute_authenticity_score",
    "compute_influence_score",
    "compute_signal_density_score",
    "compute_farm_risk_score",
    "compute_akari_profile_score",
]
