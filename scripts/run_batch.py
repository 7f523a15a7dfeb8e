"""
Script to run one resumable batch over game detail pages or player pages.

Usage:
    python scripts/run_batch.py games
    python scripts/run_batch.py players

Sharding, batch size, concurrency and overwrite come from the environment
(SHARD_COUNT, SHARD_INDEX, BATCH_SIZE, CONCURRENCY, OVERWRITE, ...).
Exits 1 when nothing could be processed at all.
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
from ingestion.runner import BatchConfig, BatchRunner
from ingestion.jobs import GameDetailJob, PlayerProfileJob
from ingestion.extractors.viewmodel_source import load_snapshot_records, game_universe
from ingestion.extractors.leaders_source import resolve_player_universe

logger = logging.getLogger(__name__)

KINDS = ("games", "players")


async def run_batch(kind: str) -> int:
    store = get_store()
    try:
        runner = BatchRunner(store, BatchConfig.from_settings())
        async with HttpFetcher() as fetcher:
            if kind == "games":
                seeds = load_snapshot_records(store)
                job = GameDetailJob(fetcher, seeds=seeds)
                universe = game_universe(seeds)
            else:
                names = await resolve_player_universe(store, fetcher)
                job = PlayerProfileJob(fetcher, names=names)
                universe = list(names)

            summary = await runner.run(universe, job)
    except PipelineException as e:
        logger.error(f"Batch {kind} failed: {e}")
        return 1

    logger.info(f"Batch {kind} summary: {summary.model_dump()}")
    if summary.attempted and summary.status == "failed":
        return 1
    return 0


if __name__ == "__main__":
    setup_logging()
    if len(sys.argv) != 2 or sys.argv[1] not in KINDS:
        logger.error(f"Usage: run_batch.py <{'|'.join(KINDS)}>")
        sys.exit(2)
    sys.exit(asyncio.run(run_batch(sys.argv[1])))
