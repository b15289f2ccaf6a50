"""
Profile Discovery and Project Handle Resolution

Discovery grows the tracked profile universe by sampling each project's
followers (and optionally the authors of its recent mentions) and inserting
unknown accounts unscored. The scoring phase picks them up on this or a
later run.
"""

import logging
from typing import Any, Callable, List, Optional

from circle_engine.database import repository
from circle_engine.database.session import get_db_context
from circle_engine.scoring.circles import normalize_handle

from .client import ProfileMetadata
from .project_circles import ProjectCircleBuilder

logger = logging.getLogger(__name__)

HANDLE_SEARCH_LIMIT = 5


# =============================================================================
# HANDLE RESOLUTION
# =============================================================================

def pick_best_candidate(candidates: List[Any], project_name: str, project_slug: str) -> Optional[Any]:
    """
    Choose a project's account among search results.

    Exact name or slug match wins; otherwise the most-followed candidate.
    """
    unique = {}
    for c in candidates:
        key = normalize_handle(c.username)
        if key and key not in unique:
            unique[key] = c
    if not unique:
        return None

    name = (project_name or "").strip().lower()
    slug = (project_slug or "").strip().lower()
    for key, c in unique.items():
        if (c.name or "").strip().lower() == name or key == slug:
            return c

    return max(unique.values(), key=lambda c: c.followers or 0)


async def resolve_project_handle(db_factory: Optional[Callable], client, project) -> Optional[str]:
    """
    Return the project's handle, auto-discovering it once if unset.

    The handle is admin-controlled: a non-empty stored value is always used
    as-is and never overwritten.
    """
    stored = (project.twitter_username or "").strip().lstrip("@")
    if stored:
        return stored

    logger.info(f"  Auto-discovering handle for {project.name}...")
    candidates = []
    for query in (project.name, project.slug):
        if not query:
            continue
        try:
            candidates.extend(await client.search_users(query, HANDLE_SEARCH_LIMIT) or [])
        except Exception as e:
            logger.warning(f"    Search for '{query}' failed: {e}")

    best = pick_best_candidate(candidates, project.name, project.slug)
    if best is None:
        logger.warning(f"    No candidates found for {project.name}; set the handle manually")
        return None

    with get_db_context(db_factory) as db:
        written = repository.set_project_handle_if_empty(db, project.id, best.username)
        if not written:
            current = repository.get_project_by_slug(db, project.slug)
            if current is not None and (current.twitter_username or "").strip():
                project.twitter_username = current.twitter_username
                return current.twitter_username.strip().lstrip("@")

    # Keep the caller's row in sync so later phases don't search again
    project.twitter_username = best.username
    logger.info(f"    Discovered @{best.username} for {project.name}")
    return best.username


# =============================================================================
# DISCOVERY
# =============================================================================

async def discover_new_profiles(
    db_factory: Optional[Callable],
    client,
    projects: List[Any],
    sample_size: int = 50,
    throttle=None,
    mention_limit: int = 0,
) -> int:
    """
    Insert unknown accounts around each project as unscored profiles.

    Followers are always sampled. When mention_limit is positive, authors of
    recent mentions are added as well.

    Returns:
        Number of profiles created
    """
    created = 0

    for project in projects:
        try:
            if throttle is not None:
                await throttle.wait()

            handle = await resolve_project_handle(db_factory, client, project)
            if not handle:
                logger.info(f"  Skipping discovery for {project.slug}: no handle")
                continue

            candidates = list(await client.get_followers(handle, sample_size) or [])
            sampled_followers = len(candidates)

            if mention_limit > 0:
                query = ProjectCircleBuilder.mention_query(project.name or project.slug, handle)
                mentions = await client.search_mentions(query, limit=mention_limit) or []
                for tweet in mentions:
                    if tweet.author_username:
                        candidates.append(ProfileMetadata(username=tweet.author_username))

            new_for_project = 0
            with get_db_context(db_factory) as db:
                for candidate in candidates:
                    if repository.create_profile_if_missing(db, candidate):
                        new_for_project += 1

            created += new_for_project
            logger.info(
                f"  @{handle}: {new_for_project} new profiles from {sampled_followers} followers"
                f" and {len(candidates) - sampled_followers} mention authors"
            )

        except Exception as e:
            logger.error(f"Discovery failed for {project.slug}: {e}")

    return created
