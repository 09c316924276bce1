"""Collect worker results into the run manifest."""

import logging
from pathlib import Path
from typing import Iterable

import aiofiles
import aiofiles.os

from ..metadata.models import Manifest, WorkerResult
from ..metadata.store import dump_yaml

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifests.yaml"


def build_manifest(results: Iterable[WorkerResult]) -> Manifest:
    """Wrap results in a Manifest, keeping their arrival order."""
    return Manifest(models=list(results))


async def write_manifest(manifest: Manifest, output_dir: Path) -> Path:
    """Write ``manifests.yaml`` into ``output_dir``.

    Raises:
        OSError: If the file cannot be written
    """
    output_dir = Path(output_dir)
    await aiofiles.os.makedirs(output_dir, exist_ok=True)

    path = output_dir / MANIFEST_FILENAME
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(dump_yaml(manifest.to_dict()))

    logger.info("Generated %s with %d models", path, len(manifest.models))
    return path
