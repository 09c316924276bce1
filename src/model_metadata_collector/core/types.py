"""Core data types shared by the registry and pipeline layers."""

from dataclasses import dataclass, field
from typing import Dict, List

# Annotation that marks the layer carrying the model card
DOC_LAYER_ANNOTATION = "io.opendatahub.modelcar.layer.type"
DOC_LAYER_VALUE = "modelcard"


@dataclass(frozen=True)
class LayerDescriptor:
    """One layer entry of an image manifest."""

    digest: str
    media_type: str
    size: int
    annotations: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_manifest(cls, layer: Dict) -> "LayerDescriptor":
        return cls(
            digest=layer.get("digest", ""),
            media_type=layer.get("mediaType", ""),
            size=int(layer.get("size", 0) or 0),
            annotations=dict(layer.get("annotations") or {}),
        )


@dataclass(frozen=True)
class ModelEntry:
    """A model listed in the models index."""

    uri: str
    type: str = "oci"
    labels: List[str] = field(default_factory=list)
