"""
Resumable, shardable batch runner.

This module drives a ``BatchJob`` over a universe of identities with:
- Deterministic sharding over a fixed total ordering of the universe
- Resume by skipping identities already persisted (unless overwrite)
- A bounded asyncio worker pool drawing from one shared cursor
- Immediate per-identity persistence, so progress survives a crash
- Per-identity failure isolation (logged and counted, never fatal)
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple
from core.config import settings
from core.exceptions import ConfigurationError, EmptyUniverseError, PipelineException
from core.storage import BlobStore
from ingestion.base import BatchJob
from ingestion.loaders.record_writer import RecordWriter
from ingestion.ordering import sort_identities
from schemas.pipeline import RunSummary
import asyncio
import logging

logger = logging.getLogger(__name__)


@dataclass
class BatchConfig:
    concurrency: int = 4
    request_delay_seconds: float = 0.25
    shard_count: int = 1
    shard_index: int = 0
    batch_size: int = 0  # 0 = no cap
    overwrite: bool = False

    def __post_init__(self):
        if self.concurrency < 1:
            raise ConfigurationError(
                "concurrency must be at least 1",
                context={"concurrency": self.concurrency}
            )
        if self.shard_count < 1:
            raise ConfigurationError(
                "shard_count must be at least 1",
                context={"shard_count": self.shard_count}
            )
        if not 0 <= self.shard_index < self.shard_count:
            raise ConfigurationError(
                "shard_index must be in [0, shard_count)",
                context={"shard_index": self.shard_index, "shard_count": self.shard_count}
            )
        if self.batch_size < 0 or self.request_delay_seconds < 0:
            raise ConfigurationError(
                "batch_size and request_delay_seconds must not be negative",
                context={
                    "batch_size": self.batch_size,
                    "request_delay_seconds": self.request_delay_seconds
                }
            )

    @classmethod
    def from_settings(cls) -> "BatchConfig":
        return cls(
            concurrency=settings.CONCURRENCY,
            request_delay_seconds=settings.REQUEST_DELAY_SECONDS,
            shard_count=settings.SHARD_COUNT,
            shard_index=settings.SHARD_INDEX,
            batch_size=settings.BATCH_SIZE,
            overwrite=settings.OVERWRITE,
        )


def shard(universe: Iterable[Any], count: int, index: int) -> List[Any]:
    """
    Identities at positions ``p`` with ``p % count == index`` in the natural ordering.

    Shards 0..count-1 partition the universe exactly.
    """
    if count < 1 or not 0 <= index < count:
        raise ConfigurationError(
            "Invalid shard selection",
            context={"shard_count": count, "shard_index": index}
        )
    ordered = sort_identities(universe)
    return [identity for position, identity in enumerate(ordered) if position % count == index]


@dataclass
class RunProgress:
    """Counters for one ``BatchRunner.run`` call."""
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_ids: List[Any] = field(default_factory=list)

    def record_success(self):
        self.attempted += 1
        self.succeeded += 1

    def record_failure(self, identity: Any):
        self.attempted += 1
        self.failed += 1
        self.failed_ids.append(identity)


class BatchRunner:
    """
    Run a job over this invocation's share of the universe.

    Responsibilities:
    - Compute pending = shard minus already persisted, capped by batch size
    - Persist each success immediately
    - Keep going past per-identity failures
    - Report a RunSummary
    """

    def __init__(self, store: BlobStore, config: Optional[BatchConfig] = None):
        self.store = store
        self.config = config or BatchConfig.from_settings()

    def plan(self, universe: Sequence[Any], writer: RecordWriter) -> Tuple[RunSummary, List[Any]]:
        """Counts and pending list for a run, without doing any work."""
        own = shard(universe, self.config.shard_count, self.config.shard_index)
        done = set() if self.config.overwrite else writer.processed_ids()

        pending = [identity for identity in own if str(identity) not in done]
        already_done = len(own) - len(pending)
        if self.config.batch_size:
            pending = pending[:self.config.batch_size]

        summary = RunSummary(
            source_name="",
            total=len(sort_identities(universe)),
            shard_size=len(own),
            already_done=already_done,
            pending=len(pending),
        )
        return summary, pending

    async def run(self, universe: Sequence[Any], job: BatchJob) -> RunSummary:
        """
        Process pending identities with a bounded worker pool.

        Raises:
            EmptyUniverseError: the universe is empty
        """
        universe = list(universe)
        if not universe:
            raise EmptyUniverseError(
                f"No identities to process for {job.source_name}",
                context={"source_name": job.source_name}
            )

        writer = RecordWriter(self.store, job.record_prefix)
        summary, pending = self.plan(universe, writer)
        summary.source_name = job.source_name

        logger.info(
            f"[{job.source_name}] shard {self.config.shard_index}/{self.config.shard_count}: "
            f"total={summary.total} shard={summary.shard_size} "
            f"done={summary.already_done} pending={summary.pending}"
        )

        progress = RunProgress()
        cursor = 0
        cursor_lock = asyncio.Lock()

        async def next_identity():
            nonlocal cursor
            async with cursor_lock:
                if cursor >= len(pending):
                    return None, False
                identity = pending[cursor]
                cursor += 1
                return identity, True

        async def worker():
            while True:
                identity, found = await next_identity()
                if not found:
                    return
                label = job.display_name(identity) or "?"
                try:
                    record = await job.fetch_record(identity)
                    await asyncio.to_thread(writer.write, identity, record)
                    progress.record_success()
                    logger.info(f"OK {job.source_name} {identity} ({label})")
                except PipelineException as e:
                    progress.record_failure(identity)
                    logger.error(
                        f"FAIL {job.source_name} {identity}: {e}",
                        extra={"error_context": e.to_dict()}
                    )
                except Exception as e:
                    progress.record_failure(identity)
                    logger.exception(f"FAIL {job.source_name} {identity}: unexpected {type(e).__name__}")
                if self.config.request_delay_seconds:
                    await asyncio.sleep(self.config.request_delay_seconds)

        workers = min(self.config.concurrency, len(pending))
        await asyncio.gather(*(worker() for _ in range(workers)))

        summary.attempted = progress.attempted
        summary.succeeded = progress.succeeded
        summary.failed = progress.failed
        summary.failed_ids = progress.failed_ids

        logger.info(
            f"[{job.source_name}] run {summary.status}: attempted={summary.attempted} "
            f"succeeded={summary.succeeded} failed={summary.failed}"
        )
        return summary
