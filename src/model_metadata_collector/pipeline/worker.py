"""Per-model extraction: fetch, locate, scan, extract, persist."""

import enum
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

from ..config import CollectorConfig
from ..core.types import LayerDescriptor, ModelEntry
from ..exceptions import CollectorError
from ..image.fetcher import FetchedImage, fetch_image
from ..image.locator import BlobCache, fetch_blob, locate_doc_layer
from ..metadata.artifacts import ArtifactResolver, ReferenceArtifactResolver
from ..metadata.models import ExtractedMetadata, WorkerResult
from ..metadata.parser import parse_flags, parse_values
from ..metadata.store import METADATA_FILENAME, MetadataStore
from ..metadata.timestamps import apply_timestamps, extract_timestamps
from ..tar.models import ArchiveEntry
from ..tar.scanner import scan_archive

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, CollectorConfig], Awaitable[FetchedImage]]
CardParser = Callable[[bytes], ExtractedMetadata]

Outcome = Tuple[WorkerResult, Optional[Path]]


class WorkerState(enum.Enum):
    FETCHING = "fetching"
    LOCATING = "locating"
    DECOMPRESSING = "decompressing"
    SCANNING = "scanning"
    EXTRACTING = "extracting"
    DONE = "done"


class ModelWorker:
    """Processes one image reference into a WorkerResult.

    Every failure after the image is reachable degrades to a skeleton
    ``metadata.yaml``; only an unreachable image produces no output.
    """

    def __init__(
        self,
        config: CollectorConfig,
        store: Optional[MetadataStore] = None,
        fetcher: Fetcher = fetch_image,
        artifact_resolver: Optional[ArtifactResolver] = None,
        blob_cache: Optional[BlobCache] = None,
        flags_parser: CardParser = parse_flags,
        values_parser: CardParser = parse_values,
    ) -> None:
        self.config = config
        self.store = store or MetadataStore(config.output_dir)
        self.fetcher = fetcher
        self.artifact_resolver = artifact_resolver or ReferenceArtifactResolver()
        self.blob_cache = blob_cache
        self.flags_parser = flags_parser
        self.values_parser = values_parser

    def _enter(self, ref: str, state: WorkerState) -> None:
        logger.debug("%s: %s", ref, state.value)

    async def process(self, entry: ModelEntry) -> WorkerResult:
        """Run the pipeline for one model and merge its labels into the output.

        Args:
            entry: Model entry carrying the image reference and labels

        Returns:
            WorkerResult for the reference
        """
        ref = entry.uri
        logger.info("Starting processing for: %s", ref)

        result, metadata_path = await self._process(ref)
        if metadata_path is not None and await self.store.merge_labels(
            metadata_path, entry.labels
        ):
            logger.info("Added labels %s to %s", entry.labels, ref)

        self._enter(ref, WorkerState.DONE)
        logger.info(
            "Completed processing for: %s (model card found: %s)",
            ref,
            result.model_card_found,
        )
        return result

    async def _process(self, ref: str) -> Outcome:
        self._enter(ref, WorkerState.FETCHING)
        try:
            image = await self.fetcher(ref, self.config)
        except CollectorError as e:
            logger.warning("Failed to fetch manifest for %s: %s", ref, e)
            return WorkerResult(ref=ref, model_card_found=False), None

        async with image:
            outcome = await self._extract(ref, image)
            if outcome is not None:
                return outcome

            logger.info("No model card found for %s, creating skeleton metadata", ref)
            path = await self._write_skeleton(ref, image.config_blob)
            return WorkerResult(ref=ref, model_card_found=False), path

    async def _extract(self, ref: str, image: FetchedImage) -> Optional[Outcome]:
        """Try each model card layer in order until one yields a card."""
        self._enter(ref, WorkerState.LOCATING)
        layers = image.layers
        index = locate_doc_layer(
            layers, 0, self.config.doc_layer_annotation, self.config.doc_layer_value
        )
        while index is not None:
            layer = layers[index]
            logger.info("Found model card layer %s for %s", layer.digest, ref)

            entry = await self._scan_layer(ref, image, layer)
            if entry is not None:
                outcome = await self._persist_card(ref, image, entry)
                if outcome is not None:
                    return outcome

            self._enter(ref, WorkerState.LOCATING)
            index = locate_doc_layer(
                layers,
                index + 1,
                self.config.doc_layer_annotation,
                self.config.doc_layer_value,
            )
        return None

    async def _scan_layer(
        self, ref: str, image: FetchedImage, layer: LayerDescriptor
    ) -> Optional[ArchiveEntry]:
        try:
            blob = await fetch_blob(
                image.session, layer, timeout=self.config.timeout, cache=self.blob_cache
            )
        except CollectorError as e:
            logger.warning("Failed to get model card layer blob for %s: %s", ref, e)
            return None

        if "gzip" in layer.media_type:
            self._enter(ref, WorkerState.DECOMPRESSING)
        self._enter(ref, WorkerState.SCANNING)
        try:
            return await scan_archive(blob, layer.media_type, self.config.doc_extension)
        except CollectorError as e:
            logger.warning("Failed to read model card layer for %s: %s", ref, e)
            return None

    def _attach_artifacts(
        self, ref: str, metadata: ExtractedMetadata, config_blob: bytes
    ) -> None:
        metadata.artifacts = list(self.artifact_resolver.artifacts_for(ref))
        create_time, update_time = extract_timestamps(config_blob)
        apply_timestamps(metadata, create_time, update_time)

    async def _persist_card(
        self, ref: str, image: FetchedImage, entry: ArchiveEntry
    ) -> Optional[Outcome]:
        self._enter(ref, WorkerState.EXTRACTING)
        doc_path = await self.store.write_doc(ref, entry)
        if doc_path is None:
            return None

        flags = self.flags_parser(entry.content)
        metadata = self.values_parser(entry.content)
        self._attach_artifacts(ref, metadata, image.config_blob)

        metadata_path = doc_path.parent / METADATA_FILENAME
        if not await self.store.write_metadata(metadata_path, metadata):
            metadata_path = None
        result = WorkerResult(ref=ref, model_card_found=True, metadata=flags)
        return result, metadata_path

    async def _write_skeleton(self, ref: str, config_blob: bytes) -> Optional[Path]:
        metadata = ExtractedMetadata(tags=[], language=[], tasks=[])
        self._attach_artifacts(ref, metadata, config_blob)

        path = self.store.skeleton_path(ref)
        if not await self.store.write_metadata(path, metadata):
            return None
        return path
