"""Resolve an image reference into an open registry session, layers and config."""

import asyncio
import logging
from dataclasses import dataclass
from typing import List

from ..config import CollectorConfig
from ..core.auth import lookup_credentials
from ..core.reference import ImageReference, parse_reference
from ..core.registry_client import RegistrySession, open_session
from ..core.types import LayerDescriptor
from ..exceptions import RegistryConnectionError

logger = logging.getLogger(__name__)


@dataclass
class FetchedImage:
    """An image whose manifest and config have been retrieved.

    Owns ``session``; use as an async context manager or call ``close``.
    """

    reference: ImageReference
    session: RegistrySession
    layers: List[LayerDescriptor]
    config_blob: bytes

    async def close(self) -> None:
        await self.session.close()

    async def __aenter__(self) -> "FetchedImage":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


async def _load(session: RegistrySession):
    await session.open()

    manifest = await session.get_manifest()
    logger.debug("Manifest size: %d bytes", len(manifest))

    config_blob = await session.get_config_blob()
    logger.debug("Config blob size: %d bytes", len(config_blob))

    return session.layer_infos(), config_blob


async def fetch_image(ref: str, config: CollectorConfig) -> FetchedImage:
    """Open a registry session for ``ref`` and load its layers and config.

    Manifest and config retrieval share one ``config.timeout`` budget. On
    any failure the session is closed before the error propagates; on
    success ownership of the open session passes to the caller.

    Args:
        ref: Image reference string
        config: Collector configuration

    Returns:
        FetchedImage holding the open session

    Raises:
        InvalidReferenceError: If ``ref`` cannot be parsed
        RegistryConnectionError: On connection failure or timeout
        ManifestError: If the manifest cannot be retrieved
        BlobFetchError: If the config blob cannot be retrieved
    """
    reference = parse_reference(ref)
    session = open_session(
        reference,
        timeout=config.timeout,
        insecure_registries=config.insecure_registries,
        credentials=lookup_credentials(config.credentials, reference.registry),
        platform=config.platform,
    )

    fetched = False
    try:
        try:
            layers, config_blob = await asyncio.wait_for(
                _load(session), timeout=config.timeout
            )
        except asyncio.TimeoutError as e:
            raise RegistryConnectionError(
                f"Timed out after {config.timeout}s fetching {ref}"
            ) from e
        fetched = True
    finally:
        if not fetched:
            await session.close()

    logger.info("Fetched %s: %d layers", ref, len(layers))
    for i, layer in enumerate(layers, start=1):
        logger.debug(
            "  Layer %d: %s (%s, %d bytes)", i, layer.digest, layer.media_type, layer.size
        )

    return FetchedImage(
        reference=reference, session=session, layers=layers, config_blob=config_blob
    )
