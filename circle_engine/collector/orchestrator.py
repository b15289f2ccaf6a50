"""
Circle Update Orchestrator

Runs the scheduled circle job end to end.

Phases (strictly sequential):
1. DISCOVER               - insert unknown follower accounts as unscored profiles
2. SCORE                  - rescore stale / never-scored profiles
3. BUILD_GLOBAL_CIRCLE    - rank scored profiles into the Global Inner Circle
4. BUILD_PROJECT_CIRCLES  - per-project circles from followers and authors
5. COMPUTE_COMPETITORS    - top-K competitor edges from circle overlap
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from circle_engine.database import repository
from circle_engine.database.session import get_db_context
from circle_engine.scoring.circles import GLOBAL_INNER_CIRCLE_MAX_SIZE
from circle_engine.utils.throttle import Throttle

from .competitors import compute_competitor_edges
from .discovery import discover_new_profiles, resolve_project_handle
from .global_circle import build_global_inner_circle, load_global_inner_circle
from .project_circles import ProjectCircleBuilder, persist_project_circle
from .rescoring import score_profiles, select_profiles_to_score

logger = logging.getLogger(__name__)


class RunPhase(Enum):
    DISCOVER = "discover"
    SCORE = "score"
    BUILD_GLOBAL_CIRCLE = "build_global_circle"
    BUILD_PROJECT_CIRCLES = "build_project_circles"
    COMPUTE_COMPETITORS = "compute_competitors"
    DONE = "done"


@dataclass
class RunConfig:
    """Configuration for one circle update run."""
    batch_size: int = 100                   # rescoring quota
    discovery_follower_sample: int = 50
    discovery_mention_sample: int = 0       # 0 disables mention-author discovery
    circle_follower_sample: int = 100
    mention_limit: int = 50
    global_circle_max_size: int = GLOBAL_INNER_CIRCLE_MAX_SIZE
    competitors_per_project: int = 5

    # Rate limiting
    delay_between_profiles: float = 2.0
    delay_between_projects: float = 3.0

    # Options
    skip_discovery: bool = False
    skip_scoring: bool = False
    global_circle_criteria: Optional[Dict[str, float]] = None

    @classmethod
    def from_settings(cls, settings, **overrides) -> "RunConfig":
        values = dict(
            batch_size=settings.MAX_PROFILES_PER_RUN,
            discovery_follower_sample=settings.DISCOVERY_FOLLOWER_SAMPLE,
            discovery_mention_sample=settings.DISCOVERY_MENTION_SAMPLE,
            circle_follower_sample=settings.CIRCLE_FOLLOWER_SAMPLE,
            mention_limit=settings.MENTION_SEARCH_LIMIT,
            global_circle_max_size=settings.GLOBAL_CIRCLE_MAX_SIZE,
            competitors_per_project=settings.COMPETITORS_PER_PROJECT,
            delay_between_profiles=settings.DELAY_BETWEEN_PROFILES,
            delay_between_projects=settings.DELAY_BETWEEN_PROJECTS,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class RunStats:
    """Counters reported at the end of a run."""
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    phase: RunPhase = RunPhase.DISCOVER

    profiles_discovered: int = 0
    profiles_scored: int = 0
    profiles_unscorable: int = 0
    global_circle_size: int = 0
    projects_processed: int = 0
    projects_skipped: int = 0
    competitor_edges: int = 0
    failures: Dict[str, int] = field(default_factory=dict)

    def add_failure(self, phase: RunPhase, count: int = 1):
        if count:
            self.failures[phase.value] = self.failures.get(phase.value, 0) + count

    @property
    def total_failures(self) -> int:
        return sum(self.failures.values())

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at or datetime.utcnow()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "phase": self.phase.value,
            "duration_seconds": round(self.duration_seconds, 1),
            "profiles_discovered": self.profiles_discovered,
            "profiles_scored": self.profiles_scored,
            "profiles_unscorable": self.profiles_unscorable,
            "global_circle_size": self.global_circle_size,
            "projects_processed": self.projects_processed,
            "projects_skipped": self.projects_skipped,
            "competitor_edges": self.competitor_edges,
            "failures": dict(self.failures),
        }

    def summary_lines(self) -> List[str]:
        lines = [
            f"Profiles discovered:   {self.profiles_discovered}",
            f"Profiles scored:       {self.profiles_scored}",
            f"Global inner circle:   {self.global_circle_size}",
            f"Projects processed:    {self.projects_processed}",
            f"Projects skipped:      {self.projects_skipped}",
            f"Competitor edges:      {self.competitor_edges}",
            f"Duration:              {self.duration_seconds:.1f}s",
        ]
        if self.failures:
            detail = ", ".join(f"{k}={v}" for k, v in sorted(self.failures.items()))
            lines.append(f"Failures:              {detail}")
        return lines


class CircleUpdateOrchestrator:
    """
    Orchestrates the circle update job.

    Usage:
        async with TwitterAPIClient(api_key) as client:
            orchestrator = CircleUpdateOrchestrator(client, ProfileScorer(client))
            stats = await orchestrator.run()

    A failing item never aborts the run. A failing phase is logged, counted
    in RunStats.failures, and the run continues without its contribution.
    """

    def __init__(
        self,
        client,
        scorer,
        session_factory: Optional[Callable] = None,
        config: Optional[RunConfig] = None,
        throttle_factory: Optional[Callable[[float], Any]] = None,
    ):
        """
        Args:
            client: social data client
            scorer: scoring oracle (`async score(handle)`)
            session_factory: SQLAlchemy session factory (None = default engine)
            config: RunConfig
            throttle_factory: builds a throttle from a min interval (tests pass a no-op)
        """
        self.client = client
        self.scorer = scorer
        self.session_factory = session_factory
        self.config = config or RunConfig()
        self.throttle_factory = throttle_factory or Throttle

    async def run(self) -> RunStats:
        """Execute all phases and return the run statistics."""
        stats = RunStats()
        cfg = self.config

        logger.info("=" * 60)
        logger.info("Circle update started")
        logger.info("=" * 60)

        projects = self._load_projects(stats)

        # Phase 1: Discover
        stats.phase = RunPhase.DISCOVER
        if cfg.skip_discovery:
            logger.info("Phase 1: Discovery skipped")
        else:
            logger.info(f"Phase 1: Discovering profiles from {len(projects)} projects...")
            try:
                stats.profiles_discovered = await discover_new_profiles(
                    self.session_factory,
                    self.client,
                    projects,
                    sample_size=cfg.discovery_follower_sample,
                    mention_limit=cfg.discovery_mention_sample,
                    throttle=self.throttle_factory(cfg.delay_between_projects),
                )
            except Exception as e:
                stats.add_failure(RunPhase.DISCOVER)
                logger.error(f"Phase 1 failed: {e}")

        # Phase 2: Score
        stats.phase = RunPhase.SCORE
        if cfg.skip_scoring:
            logger.info("Phase 2: Scoring skipped")
        else:
            await self._score_phase(stats)

        # Phase 3: Global inner circle
        stats.phase = RunPhase.BUILD_GLOBAL_CIRCLE
        logger.info("Phase 3: Building global inner circle...")
        global_circle = self._global_circle_phase(stats)
        stats.global_circle_size = len(global_circle)

        # Phase 4: Project circles
        stats.phase = RunPhase.BUILD_PROJECT_CIRCLES
        logger.info(f"Phase 4: Building inner circles for {len(projects)} projects...")
        circles = await self._project_circles_phase(stats, projects, global_circle)

        # Phase 5: Competitors
        stats.phase = RunPhase.COMPUTE_COMPETITORS
        logger.info("Phase 5: Computing competitors...")
        try:
            outcome = compute_competitor_edges(
                self.session_factory, circles, cfg.competitors_per_project
            )
            stats.competitor_edges = outcome["edges"]
            stats.add_failure(RunPhase.COMPUTE_COMPETITORS, outcome["failures"])
        except Exception as e:
            stats.add_failure(RunPhase.COMPUTE_COMPETITORS)
            logger.error(f"Phase 5 failed: {e}")

        stats.phase = RunPhase.DONE
        stats.finished_at = datetime.utcnow()

        logger.info("=" * 60)
        logger.info("Circle update complete")
        for line in stats.summary_lines():
            logger.info(line)
        logger.info("=" * 60)

        return stats

    # ========================================================================
    # PHASES
    # ========================================================================

    def _load_projects(self, stats: RunStats) -> List[Any]:
        try:
            with get_db_context(self.session_factory) as db:
                return repository.get_active_projects(db)
        except Exception as e:
            stats.add_failure(RunPhase.DISCOVER)
            logger.error(f"Failed to load active projects: {e}")
            return []

    async def _score_phase(self, stats: RunStats):
        cfg = self.config
        try:
            with get_db_context(self.session_factory) as db:
                to_score = select_profiles_to_score(db, cfg.batch_size)
        except Exception as e:
            stats.add_failure(RunPhase.SCORE)
            logger.error(f"Phase 2 failed to select profiles: {e}")
            return

        logger.info(f"Phase 2: Scoring {len(to_score)} profiles...")
        result = await score_profiles(
            self.session_factory,
            self.client,
            self.scorer,
            to_score,
            throttle=self.throttle_factory(cfg.delay_between_profiles),
        )
        stats.profiles_scored = result.scored
        stats.profiles_unscorable = result.unscorable
        stats.add_failure(RunPhase.SCORE, result.failures)

    def _global_circle_phase(self, stats: RunStats):
        cfg = self.config
        try:
            return build_global_inner_circle(
                self.session_factory,
                cfg.global_circle_max_size,
                cfg.global_circle_criteria,
            )
        except Exception as e:
            stats.add_failure(RunPhase.BUILD_GLOBAL_CIRCLE)
            logger.error(f"Phase 3 failed: {e}")

        # Fall back to the last persisted circle so project circles stay consistent with it
        try:
            return load_global_inner_circle(self.session_factory)
        except Exception as e:
            logger.error(f"Could not load persisted global inner circle: {e}")
            return []

    async def _project_circles_phase(self, stats: RunStats, projects: List[Any], global_circle) -> Dict[Any, List[Any]]:
        cfg = self.config
        builder = ProjectCircleBuilder(
            self.client,
            follower_sample_size=cfg.circle_follower_sample,
            mention_limit=cfg.mention_limit,
        )
        throttle = self.throttle_factory(cfg.delay_between_projects)
        circles: Dict[Any, List[Any]] = {}

        for i, project in enumerate(projects, 1):
            try:
                await throttle.wait()
                logger.info(f"[{i}/{len(projects)}] {project.name}")

                handle = await resolve_project_handle(self.session_factory, self.client, project)
                if not handle:
                    stats.projects_skipped += 1
                    logger.info(f"  Skipping {project.slug}: no handle")
                    continue

                result = await builder.build(project.name, handle, global_circle)
                persist_project_circle(self.session_factory, project.id, result)

                circles[project.id] = result.member_ids
                stats.projects_processed += 1
                logger.info(
                    f"  {project.slug}: {result.stats.count} members, "
                    f"power {result.stats.power}, quality {result.stats.quality_follower_ratio}"
                )

            except Exception as e:
                stats.add_failure(RunPhase.BUILD_PROJECT_CIRCLES)
                logger.error(f"Failed to build circle for {project.slug}: {e}")

        return circles
