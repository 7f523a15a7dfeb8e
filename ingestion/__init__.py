"""
Scrape pipeline components for league pages.

Modules:
    fetcher: HTTP document fetcher with retry and backoff
    base: Abstract base class for per-identity batch jobs
    jobs: Game detail and player profile jobs
    runner: Resumable, shardable batch runner
    ordering: Natural ordering of identities used for sharding and export

Subpackages:
    extractors: Embedded-literal extraction, HTML tables, page sources
    transformers: Normalization, markup fallback, reconciliation
    loaders: Per-identity record persistence and chunked export

Architecture:
    1. Snapshot - league home page -> reconciled latest.json
    2. Batch - one fetch per identity, persisted immediately, resumable
    3. Export - per-identity store -> index, chunks, manifest, root pointer

    Batch units fail independently; a failed identity is simply retried by
    the next invocation since it was never persisted.

Usage:
    from ingestion.fetcher import HttpFetcher
    from ingestion.jobs import PlayerProfileJob
    from ingestion.runner import BatchRunner
    from ingestion.loaders.export_builder import ExportBuilder

Example:
    async with HttpFetcher() as fetcher:
        summary = await BatchRunner(store).run([101, 102], PlayerProfileJob(fetcher))
    ExportBuilder(store, "players").export()
"""

__all__ = [
    "BatchJob",
    "BatchRunner",
    "BatchConfig",
    "HttpFetcher",
    "GameDetailJob",
    "PlayerProfileJob",
    "ExportBuilder",
    "RecordWriter",
]
