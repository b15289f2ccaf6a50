#!/usr/bin/env python3
"""
Circle Update Runner

Scheduled job that runs every phase of the circle pipeline:
1. Discovery (new profiles from project followers)
2. Rescoring (stale / never-scored profiles)
3. Global Inner Circle
4. Project inner circles
5. Competitor edges

Usage:
    # Set environment variables first (or use .env):
    export TWITTERAPIIO_API_KEY=your_key
    export DATABASE_URL=postgresql://...

    python scripts/run_circles_update.py

    # With options:
    python scripts/run_circles_update.py --batch-size 50 --skip-discovery
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
from pydantic import ValidationError

from circle_engine.collector.client import TwitterAPIClient
from circle_engine.collector.orchestrator import CircleUpdateOrchestrator, RunConfig
from circle_engine.database.session import (
    DatabaseConfigError,
    check_db_connection,
    create_db_engine,
    create_session_factory,
    get_database_url,
    init_db,
)
from circle_engine.scoring.profile import ProfileScorer
from circle_engine.utils.config import get_settings

logger = logging.getLogger(__name__)


async def run_circles_update(settings, config: RunConfig, session_factory=None):
    """Run the full pipeline and return RunStats."""
    async with TwitterAPIClient(
        api_key=settings.TWITTERAPIIO_API_KEY,
        base_url=settings.TWITTERAPIIO_BASE_URL,
        timeout=settings.API_TIMEOUT,
    ) as client:
        orchestrator = CircleUpdateOrchestrator(
            client,
            ProfileScorer(client),
            session_factory=session_factory,
            config=config,
        )
        return await orchestrator.run()


def main(argv=None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Rebuild inner circles and competitor edges"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Maximum profiles to rescore this run (default: MAX_PROFILES_PER_RUN)"
    )
    parser.add_argument(
        "--skip-discovery",
        action="store_true",
        help="Skip follower-based profile discovery"
    )
    parser.add_argument(
        "--skip-scoring",
        action="store_true",
        help="Skip profile rescoring"
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create database tables before running"
    )

    args = parser.parse_args(argv)

    load_dotenv()

    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Configuration error: {e}")
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        database_url = settings.DATABASE_URL or get_database_url(allow_default_sqlite=False)
    except DatabaseConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    engine = create_db_engine(database_url)
    if not check_db_connection(engine):
        logger.error("Database unreachable, aborting before any phase runs")
        return 1
    if args.init_db:
        init_db(engine=engine)

    config = RunConfig.from_settings(
        settings,
        batch_size=args.batch_size,
        skip_discovery=args.skip_discovery,
        skip_scoring=args.skip_scoring,
    )

    stats = asyncio.run(run_circles_update(settings, config, create_session_factory(engine)))
    logger.info(f"Run finished with {stats.total_failures} item failures")
    return 0


if __name__ == "__main__":
    sys.exit(main())
