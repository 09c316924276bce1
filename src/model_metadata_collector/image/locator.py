"""Find the model card layer of an image and fetch its blob."""

import asyncio
import io
import logging
from typing import BinaryIO, Dict, Optional, Sequence

from ..core.registry_client import RegistrySession
from ..core.types import DOC_LAYER_ANNOTATION, DOC_LAYER_VALUE, LayerDescriptor
from ..exceptions import BlobFetchError

logger = logging.getLogger(__name__)


class BlobCache:
    """In-memory blob store keyed by content digest, scoped to one run.

    Used from a single event loop; lookups and inserts never await, so
    concurrent workers see a consistent mapping without locking.
    """

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def get(self, digest: str) -> Optional[bytes]:
        return self._blobs.get(digest)

    def put(self, digest: str, data: bytes) -> None:
        self._blobs[digest] = data

    def __contains__(self, digest: str) -> bool:
        return digest in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)


def is_doc_layer(
    layer: LayerDescriptor,
    annotation: str = DOC_LAYER_ANNOTATION,
    value: str = DOC_LAYER_VALUE,
) -> bool:
    return layer.annotations.get(annotation) == value


def locate_doc_layer(
    layers: Sequence[LayerDescriptor],
    start: int = 0,
    annotation: str = DOC_LAYER_ANNOTATION,
    value: str = DOC_LAYER_VALUE,
) -> Optional[int]:
    """Return the index of the first doc layer at or after ``start``.

    Layer order matters: when several layers are annotated, the earliest
    one is tried first.
    """
    for index in range(start, len(layers)):
        if is_doc_layer(layers[index], annotation, value):
            return index
    return None


async def fetch_blob(
    session: RegistrySession,
    layer: LayerDescriptor,
    timeout: float = 60,
    cache: Optional[BlobCache] = None,
) -> BinaryIO:
    """Fetch a layer blob under its own timeout.

    Args:
        session: Open registry session for the image
        layer: Layer to fetch
        timeout: Seconds allowed for this call
        cache: Optional digest-keyed cache shared across the run

    Returns:
        Binary stream over the blob content

    Raises:
        BlobFetchError: If the blob cannot be fetched in time
    """
    if cache is not None:
        cached = cache.get(layer.digest)
        if cached is not None:
            logger.debug("Using cached blob %s", layer.digest)
            return io.BytesIO(cached)

    try:
        data = await asyncio.wait_for(session.get_blob(layer.digest), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise BlobFetchError(
            f"Timed out after {timeout}s fetching blob {layer.digest}"
        ) from e

    if cache is not None:
        cache.put(layer.digest, data)
    return io.BytesIO(data)
