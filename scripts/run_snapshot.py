"""
Script to refresh the league snapshot (latest.json) from the home page
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, ingestion, etc.
sys.path.append(os.getcwd())

from core.logging import setup_logging
from core.exceptions import PipelineException
from core.storage import get_store
from ingestion.fetcher import HttpFetcher
from ingestion.extractors.viewmodel_source import LeagueSnapshotSource

logger = logging.getLogger(__name__)


async def run_snapshot() -> int:
    """Fetch, reconcile and persist the snapshot"""
    async with HttpFetcher() as fetcher:
        source = LeagueSnapshotSource(fetcher, get_store())
        try:
            result = await source.run()
        except PipelineException as e:
            logger.error(f"Snapshot failed: {e}")
            return 1

    state = "written" if result["changed"] else "unchanged"
    logger.info(f"Snapshot {state}: {result['games']} game(s)")
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_snapshot()))
