"""
Tests for the circle update orchestrator (end to end on an in-memory database).
"""

import pytest
from unittest.mock import AsyncMock

from circle_engine.collector.orchestrator import CircleUpdateOrchestrator, RunConfig, RunPhase, RunStats
from circle_engine.database.models import (
    CompetitorEdge, GlobalCircleMember, Profile, Project, ProjectCircleMember,
)
from circle_engine.scoring.profile import ScoreBundle


def make_orchestrator(fake_client, scorer, session_factory, no_throttle, **config):
    return CircleUpdateOrchestrator(
        fake_client,
        scorer,
        session_factory=session_factory,
        config=RunConfig(**config),
        throttle_factory=no_throttle,
    )


@pytest.fixture
def world(make_project, make_profile, fake_client, make_user, make_tweet):
    """Two projects sharing one Global Circle member."""
    make_profile("whale", influence=90)
    make_profile("builder", influence=75)
    make_profile("weak", akari=300)
    alpha = make_project("alpha", "Alpha", handle="alpha")
    beta = make_project("beta", "Beta", handle="beta")
    make_project("dormant", "Dormant", handle="dormant", is_active=False)

    fake_client.followers["alpha"] = [make_user("whale"), make_user("builder"), make_user("newbie")]
    fake_client.followers["beta"] = [make_user("whale")]
    fake_client.mentions['@beta OR "Beta"'] = [make_tweet("builder")]
    return alpha, beta


class TestCircleUpdateOrchestrator:

    @pytest.mark.asyncio
    async def test_full_run(self, db, session_factory, fake_client, fake_scorer, no_throttle, world):
        alpha, beta = world
        orchestrator = make_orchestrator(fake_client, fake_scorer, session_factory, no_throttle, skip_scoring=True)

        stats = await orchestrator.run()

        assert stats.phase == RunPhase.DONE
        assert stats.profiles_discovered == 1
        assert stats.global_circle_size == 2
        assert stats.projects_processed == 2
        assert stats.failures == {}

        db.expire_all()
        assert db.query(GlobalCircleMember).count() == 2
        assert db.query(ProjectCircleMember).filter_by(project_id=alpha.id).count() == 2
        assert db.query(ProjectCircleMember).filter_by(project_id=beta.id).count() == 2
        assert db.get(Project, alpha.id).inner_circle_power == 165

        # alpha = {whale, builder}, beta = {whale, builder}: identical circles
        edge = db.query(CompetitorEdge).filter_by(project_id=alpha.id).one()
        assert edge.competitor_id == beta.id
        assert edge.similarity_score == 1.0
        assert stats.competitor_edges == 2

    @pytest.mark.asyncio
    async def test_rerun_with_emptied_circle_drops_edges(
        self, db, session_factory, fake_client, fake_scorer, no_throttle, world, make_user
    ):
        alpha, beta = world
        await make_orchestrator(fake_client, fake_scorer, session_factory, no_throttle, skip_scoring=True).run()
        assert db.query(CompetitorEdge).filter_by(project_id=alpha.id).count() == 1

        # alpha loses every inner circle follower before the next run
        fake_client.followers["alpha"] = [make_user("newbie")]
        stats = await make_orchestrator(
            fake_client, fake_scorer, session_factory, no_throttle, skip_scoring=True
        ).run()

        db.expire_all()
        assert db.query(ProjectCircleMember).filter_by(project_id=alpha.id).count() == 0
        assert db.query(CompetitorEdge).filter_by(project_id=alpha.id).count() == 0
        assert db.query(CompetitorEdge).filter_by(project_id=beta.id).count() == 0
        assert stats.competitor_edges == 0

    @pytest.mark.asyncio
    async def test_scoring_phase_runs(self, db, session_factory, fake_client, fake_scorer, no_throttle, world):
        orchestrator = make_orchestrator(fake_client, fake_scorer, session_factory, no_throttle, batch_size=10)

        stats = await orchestrator.run()

        # "newbie" is discovered, then scored with a qualifying bundle
        assert stats.profiles_scored >= 1
        db.expire_all()
        newbie = db.query(Profile).filter_by(username_normalized="newbie").one()
        assert newbie.akari_profile_score == 820
        assert stats.global_circle_size == db.query(GlobalCircleMember).count()

    @pytest.mark.asyncio
    async def test_skip_discovery(self, db, session_factory, fake_client, fake_scorer, no_throttle, world):
        orchestrator = make_orchestrator(
            fake_client, fake_scorer, session_factory, no_throttle, skip_discovery=True, skip_scoring=True
        )

        stats = await orchestrator.run()

        assert stats.profiles_discovered == 0
        assert db.query(Profile).filter_by(username_normalized="newbie").count() == 0

    @pytest.mark.asyncio
    async def test_item_failures_do_not_abort(self, session_factory, fake_client, no_throttle, world, make_profile):
        make_profile("pending", scored=False)
        scorer = AsyncMock()
        scorer.score = AsyncMock(side_effect=RuntimeError("oracle down"))
        orchestrator = make_orchestrator(fake_client, scorer, session_factory, no_throttle, skip_discovery=True)

        stats = await orchestrator.run()

        assert stats.phase == RunPhase.DONE
        assert stats.failures.get("score", 0) >= 1
        assert stats.projects_processed == 2

    @pytest.mark.asyncio
    async def test_project_without_handle_skipped(self, session_factory, fake_client, fake_scorer, no_throttle, make_project):
        make_project("nameless", "Nameless")
        orchestrator = make_orchestrator(fake_client, fake_scorer, session_factory, no_throttle, skip_scoring=True)

        stats = await orchestrator.run()

        assert stats.projects_skipped == 1
        assert stats.projects_processed == 0

    @pytest.mark.asyncio
    async def test_empty_world(self, session_factory, fake_client, fake_scorer, no_throttle):
        stats = await make_orchestrator(fake_client, fake_scorer, session_factory, no_throttle).run()

        assert stats.global_circle_size == 0
        assert stats.competitor_edges == 0
        assert stats.failures == {}


class TestRunStats:

    def test_failures_by_phase(self):
        stats = RunStats()
        stats.add_failure(RunPhase.SCORE)
        stats.add_failure(RunPhase.SCORE, 2)
        stats.add_failure(RunPhase.DISCOVER, 0)
        assert stats.failures == {"score": 3}
        assert stats.total_failures == 3

    def test_to_dict_and_summary(self):
        stats = RunStats(profiles_scored=4, global_circle_size=10)
        data = stats.to_dict()
        assert data["profiles_scored"] == 4
        assert data["phase"] == "discover"
        assert any("Global inner circle:   10" in line for line in stats.summary_lines())

    def test_config_from_settings(self):
        from circle_engine.utils.config import Settings
        settings = Settings(TWITTERAPIIO_API_KEY="test", MAX_PROFILES_PER_RUN=7)
        config = RunConfig.from_settings(settings, skip_scoring=True, batch_size=None)
        assert config.batch_size == 7
        assert config.skip_scoring is True
        assert config.delay_between_projects == 3.0
