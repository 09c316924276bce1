"""Bounded-concurrency fan-out of model workers."""

import asyncio
import logging
from typing import List, Optional, Sequence, Union

from ..config import CollectorConfig
from ..core.types import ModelEntry
from ..image.locator import BlobCache
from ..metadata.models import Manifest, WorkerResult
from .aggregator import build_manifest, write_manifest
from .worker import ModelWorker

logger = logging.getLogger(__name__)


def _as_entry(entry: Union[ModelEntry, str]) -> ModelEntry:
    return entry if isinstance(entry, ModelEntry) else ModelEntry(uri=entry)


async def process_models(
    entries: Sequence[Union[ModelEntry, str]],
    config: CollectorConfig,
    worker: Optional[ModelWorker] = None,
) -> List[WorkerResult]:
    """Process every model with at most ``config.max_concurrent`` in flight.

    All workers are started before any result is awaited, and the call
    returns only after every worker finished. Exactly one result is
    returned per entry, in completion order.

    Args:
        entries: Model entries or bare image references
        config: Collector configuration
        worker: Worker to use; a default one is built from ``config``

    Returns:
        Worker results in the order the workers completed
    """
    max_concurrent = config.max_concurrent
    if max_concurrent < 1:
        logger.warning("Invalid max_concurrent=%d; defaulting to 1", max_concurrent)
        max_concurrent = 1

    if worker is None:
        worker = ModelWorker(config, blob_cache=BlobCache())

    entries = [_as_entry(entry) for entry in entries]
    semaphore = asyncio.Semaphore(max_concurrent)
    results: "asyncio.Queue[WorkerResult]" = asyncio.Queue(maxsize=len(entries))

    async def run_worker(entry: ModelEntry) -> None:
        """Run one worker under a permit and report its result."""
        async with semaphore:
            try:
                result = await worker.process(entry)
            except Exception:
                logger.exception("Unexpected error processing %s", entry.uri)
                result = WorkerResult(ref=entry.uri, model_card_found=False)
            results.put_nowait(result)

    logger.info(
        "Processing %d models (max concurrent: %d)", len(entries), max_concurrent
    )
    tasks = [asyncio.ensure_future(run_worker(entry)) for entry in entries]
    await asyncio.gather(*tasks)

    collected: List[WorkerResult] = []
    while not results.empty():
        collected.append(results.get_nowait())
    return collected


async def collect(
    entries: Sequence[Union[ModelEntry, str]],
    config: CollectorConfig,
    worker: Optional[ModelWorker] = None,
) -> Manifest:
    """Process all models, then write ``manifests.yaml`` once."""
    results = await process_models(entries, config, worker=worker)
    manifest = build_manifest(results)
    await write_manifest(manifest, config.output_dir)
    return manifest
