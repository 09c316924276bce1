"""Model Metadata Collector - concurrent model card extraction from OCI images."""

__version__ = "0.1.0"

from .catalog import create_models_catalog, load_static_catalogs
from .config import CollectorConfig, load_models_index
from .core.registry_client import RegistrySession
from .core.types import ModelEntry
from .exceptions import (
    BlobFetchError,
    CatalogError,
    CollectorError,
    ConfigError,
    InvalidReferenceError,
    ManifestError,
    RegistryConnectionError,
    RegistryError,
    TarReadError,
)
from .metadata.models import ExtractedMetadata, Manifest, WorkerResult
from .pipeline import ModelWorker, collect, process_models

__all__ = [
    "CollectorConfig",
    "load_models_index",
    "RegistrySession",
    "ModelEntry",
    "ExtractedMetadata",
    "Manifest",
    "WorkerResult",
    "ModelWorker",
    "collect",
    "process_models",
    "create_models_catalog",
    "load_static_catalogs",
    "CollectorError",
    "ConfigError",
    "InvalidReferenceError",
    "RegistryError",
    "RegistryConnectionError",
    "ManifestError",
    "BlobFetchError",
    "TarReadError",
    "CatalogError",
]
