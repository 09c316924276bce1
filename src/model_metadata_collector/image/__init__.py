"""Image fetching and model card layer location."""

from .fetcher import FetchedImage, fetch_image
from .locator import BlobCache, fetch_blob, is_doc_layer, locate_doc_layer

__all__ = [
    "FetchedImage",
    "fetch_image",
    "BlobCache",
    "fetch_blob",
    "is_doc_layer",
    "locate_doc_layer",
]
