"""
Script to scrape the statistics leaders page into stats/lideres.json
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
from ingestion.extractors.leaders_source import LeadersSource

logger = logging.getLogger(__name__)


async def run_leaders() -> int:
    async with HttpFetcher() as fetcher:
        try:
            await LeadersSource(fetcher, get_store()).run()
        except PipelineException as e:
            logger.error(f"Leaders scrape failed: {e}")
            return 1
    return 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_leaders()))
