"""
Inner Circle Scoring

Pure helpers behind the circle phases:
- Global Inner Circle qualification and ranking
- Project circle membership weight (role multipliers + recency decay)
- Profile segmentation from bio keywords
- Follower quality ratio and tier mapping

No I/O here; the collector phases feed these functions with loaded rows.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

GLOBAL_INNER_CIRCLE_CRITERIA = {
    "min_akari_score": 750,
    "min_influence_score": 70,
    "min_authenticity_score": 60,
    "min_signal_density_score": 60,
    "max_farm_risk_score": 50,
}

GLOBAL_INNER_CIRCLE_MAX_SIZE = 2000

# Weight multipliers
AUTHOR_MULTIPLIER = 1.5
FOLLOWER_MULTIPLIER = 1.25
RECENCY_HALF_LIFE_DAYS = 30

QUALITY_FOLLOWER_MIN_FOLLOWERS = 200

SEGMENTS = ("defi", "nft", "gaming", "infrastructure", "ai", "investor", "builder", "general")

# Checked in order; the first match wins
SEGMENT_PATTERNS = [
    ("defi", re.compile(r"\b(?:defi|dex|amm|yield|lending|borrowing)s?\b")),
    ("nft", re.compile(r"\b(?:nft|pfp|art|collection|mint)s?\b")),
    ("gaming", re.compile(r"\b(?:game|gaming|play2earn|p2e|gamefi)s?\b")),
    ("infrastructure", re.compile(r"\b(?:infra|infrastructure|layer|rollup|chain|protocol)s?\b")),
    ("ai", re.compile(r"\b(?:ai|machine learning|ml|artificial)\b")),
    ("investor", re.compile(r"\b(?:vc|investor|fund|capital)s?\b")),
    ("builder", re.compile(r"\b(?:builder|dev|engineer|developer)s?\b")),
]

TIER_THRESHOLDS = [
    (900, "Celestial"),
    (750, "Vanguard"),
    (550, "Ranger"),
    (400, "Nomad"),
]
DEFAULT_TIER = "Shadow"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class GlobalCircleCandidate:
    """A profile selected into the Global Inner Circle, with its score snapshot."""
    profile_id: UUID
    username: str
    akari_profile_score: int
    influence_score: float
    segment: str = "general"


# =============================================================================
# HANDLES
# =============================================================================

def normalize_handle(handle: Optional[str]) -> str:
    """Strip whitespace and a leading @, lowercase."""
    if not handle:
        return ""
    return handle.strip().lstrip("@").strip().lower()


# =============================================================================
# GLOBAL INNER CIRCLE
# =============================================================================

def qualifies_for_global_inner_circle(scores: Any, criteria: Optional[Dict[str, float]] = None) -> bool:
    """
    Check a profile against the Global Inner Circle thresholds.

    A profile missing any of the five scores is rejected.

    Args:
        scores: object with akari_profile_score, influence_score,
            authenticity_score, signal_density_score, farm_risk_score
        criteria: threshold overrides (defaults to GLOBAL_INNER_CIRCLE_CRITERIA)
    """
    c = criteria or GLOBAL_INNER_CIRCLE_CRITERIA

    akari = getattr(scores, "akari_profile_score", None)
    influence = getattr(scores, "influence_score", None)
    authenticity = getattr(scores, "authenticity_score", None)
    signal = getattr(scores, "signal_density_score", None)
    farm_risk = getattr(scores, "farm_risk_score", None)

    if any(v is None for v in (akari, influence, authenticity, signal, farm_risk)):
        return False

    return (
        akari >= c["min_akari_score"]
        and influence >= c["min_influence_score"]
        and authenticity >= c["min_authenticity_score"]
        and signal >= c["min_signal_density_score"]
        and farm_risk <= c["max_farm_risk_score"]
    )


def rank_for_global_inner_circle(
    profiles: Iterable[Any],
    max_size: int = GLOBAL_INNER_CIRCLE_MAX_SIZE,
    criteria: Optional[Dict[str, float]] = None,
) -> List[GlobalCircleCandidate]:
    """
    Select the Global Inner Circle from scored profiles.

    Filters by qualification, sorts by influence descending (stable), keeps
    the first max_size and attaches a segment to each.
    """
    if max_size <= 0:
        return []

    qualified = [p for p in profiles if qualifies_for_global_inner_circle(p, criteria)]
    qualified.sort(key=lambda p: p.influence_score, reverse=True)

    selected = [
        GlobalCircleCandidate(
            profile_id=p.id,
            username=p.username,
            akari_profile_score=int(p.akari_profile_score),
            influence_score=float(p.influence_score),
            segment=segment_profile(getattr(p, "bio", None)),
        )
        for p in qualified[:max_size]
    ]

    logger.debug(f"{len(qualified)} qualified, {len(selected)} selected (max {max_size})")
    return selected


# =============================================================================
# PROJECT CIRCLE WEIGHT
# =============================================================================

def compute_project_circle_weight(
    akari_score: float,
    is_follower: bool,
    is_author: bool,
    days_since_interaction: float = 0,
) -> float:
    """
    Weight of a Global Circle member inside a project circle.

    base = akari / 1000, x1.5 for authors, x1.25 for followers,
    then halved every 30 days since the last interaction.
    """
    weight = (akari_score or 0) / 1000.0

    if is_author:
        weight *= AUTHOR_MULTIPLIER
    if is_follower:
        weight *= FOLLOWER_MULTIPLIER

    days = max(0.0, float(days_since_interaction or 0))
    weight *= 0.5 ** (days / RECENCY_HALF_LIFE_DAYS)

    return round(weight, 4)


# =============================================================================
# SEGMENTS, QUALITY, TIERS
# =============================================================================

def segment_profile(bio: Optional[str], topics: Optional[Sequence[str]] = None) -> str:
    """Assign one segment from bio/topic keywords. Defaults to "general"."""
    text = " ".join([bio or ""] + list(topics or [])).lower()
    if not text.strip():
        return "general"

    for segment, pattern in SEGMENT_PATTERNS:
        if pattern.search(text):
            return segment
    return "general"


def calculate_quality_follower_ratio(
    followers: Sequence[Any],
    min_followers: int = QUALITY_FOLLOWER_MIN_FOLLOWERS,
) -> float:
    """Share of a follower sample with >= min_followers followers or verified."""
    if not followers:
        return 0.0

    quality = sum(
        1 for f in followers
        if (getattr(f, "followers", 0) or 0) >= min_followers or getattr(f, "is_verified", False)
    )
    return round(quality / len(followers), 4)


def map_profile_score_to_tier(score: Optional[float]) -> str:
    if score is None:
        return DEFAULT_TIER
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return DEFAULT_TIER
