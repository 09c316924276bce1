"""Per-model output files below the output directory."""

import logging
from pathlib import Path
from typing import Iterable, Optional

import aiofiles
import aiofiles.os
import yaml

from ..core.reference import sanitize_reference
from ..tar.models import ArchiveEntry
from ..tar.scanner import safe_output_path
from .models import ExtractedMetadata

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.yaml"
SKELETON_SUBDIR = "models"


def dump_yaml(data) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


class MetadataStore:
    """Writes model cards and metadata records for each image reference.

    Every reference gets its own directory named after the sanitized
    reference, so concurrent workers never write the same file. Write
    failures are logged and reported through return values.
    """

    def __init__(self, output_dir: Path) -> None:
        self.output_dir = Path(output_dir)

    def model_dir(self, ref: str) -> Path:
        return self.output_dir / sanitize_reference(ref)

    def skeleton_path(self, ref: str) -> Path:
        return self.model_dir(ref) / SKELETON_SUBDIR / METADATA_FILENAME

    async def write_doc(self, ref: str, entry: ArchiveEntry) -> Optional[Path]:
        """Write an extracted model card below the model directory.

        Returns:
            Path written, or None if the entry path is unsafe or the write failed
        """
        model_dir = self.model_dir(ref)
        target = safe_output_path(model_dir, entry.name)
        if target is None:
            logger.warning("Skipping potential path traversal for %s: %s", ref, entry.name)
            return None

        try:
            await aiofiles.os.makedirs(target.parent, exist_ok=True)
            async with aiofiles.open(target, "wb") as f:
                await f.write(entry.content)
        except OSError as e:
            logger.warning("Failed to write model card for %s: %s", ref, e)
            return None

        logger.info("Wrote model card for %s to %s", ref, target)
        return target

    async def write_metadata(self, path: Path, metadata: ExtractedMetadata) -> bool:
        try:
            content = dump_yaml(metadata.to_dict())
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "w", encoding="utf-8") as f:
                await f.write(content)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Failed to write %s: %s", path, e)
            return False

        logger.debug("Wrote %s", path)
        return True

    async def read_metadata(self, path: Path) -> Optional[ExtractedMetadata]:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            return ExtractedMetadata.from_dict(yaml.safe_load(content))
        except (OSError, yaml.YAMLError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Could not read metadata file %s: %s", path, e)
            return None

    async def merge_labels(self, path: Path, labels: Iterable[str]) -> bool:
        """Add labels to the tags of a persisted record.

        The file is only rewritten when a new tag was added, so repeating a
        merge is a no-op.

        Returns:
            True if the file changed
        """
        labels = list(labels)
        if not labels:
            return False

        metadata = await self.read_metadata(path)
        if metadata is None:
            return False

        if not metadata.merge_labels(labels):
            return False
        return await self.write_metadata(path, metadata)
