"""Model metadata records, model card parsing and persistence."""

from .artifacts import ArtifactResolver, ReferenceArtifactResolver
from .models import ExtractedMetadata, Manifest, OCIArtifact, WorkerResult
from .parser import parse_flags, parse_values
from .store import MetadataStore
from .timestamps import apply_timestamps, extract_timestamps, parse_timestamp

__all__ = [
    "ArtifactResolver",
    "ReferenceArtifactResolver",
    "ExtractedMetadata",
    "Manifest",
    "OCIArtifact",
    "WorkerResult",
    "parse_flags",
    "parse_values",
    "MetadataStore",
    "apply_timestamps",
    "extract_timestamps",
    "parse_timestamp",
]
