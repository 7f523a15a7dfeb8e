"""
Script to rebuild the chunked export for games or players.

Run only after every batch shard has finished.
"""

import sys
import os
import logging

# Add current directory to path to allow imports from core, ingestion, etc.
sys.path.append(os.getcwd())

from core.logging import setup_logging
from core.exceptions import PipelineException
from core.storage import get_store
from ingestion.loaders.export_builder import ExportBuilder

logger = logging.getLogger(__name__)

KINDS = ("games", "players")


def run_export(kind: str) -> int:
    try:
        result = ExportBuilder(get_store(), kind).export()
    except PipelineException as e:
        logger.error(f"Export {kind} failed: {e}")
        return 1

    logger.info(
        f"Export {kind}: {result.manifest.total_records} record(s), "
        f"{result.manifest.total_chunks} chunk(s) -> {result.root_key}"
    )
    return 0


if __name__ == "__main__":
    setup_logging()
    if len(sys.argv) != 2 or sys.argv[1] not in KINDS:
        logger.error(f"Usage: run_export.py <{'|'.join(KINDS)}>")
        sys.exit(2)
    sys.exit(run_export(sys.argv[1]))
