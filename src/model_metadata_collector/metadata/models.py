"""Metadata records produced by the extraction pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class OCIArtifact:
    """An OCI artifact through which a model is distributed."""

    uri: str
    create_time_since_epoch: Optional[int] = None
    last_update_time_since_epoch: Optional[int] = None
    custom_properties: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "uri": self.uri,
            "createTimeSinceEpoch": self.create_time_since_epoch,
            "lastUpdateTimeSinceEpoch": self.last_update_time_since_epoch,
        }
        if self.custom_properties:
            data["customProperties"] = dict(self.custom_properties)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OCIArtifact":
        return cls(
            uri=data.get("uri", ""),
            create_time_since_epoch=_optional_int(data.get("createTimeSinceEpoch")),
            last_update_time_since_epoch=_optional_int(data.get("lastUpdateTimeSinceEpoch")),
            custom_properties=dict(data.get("customProperties") or {}),
        )


@dataclass
class ExtractedMetadata:
    """Metadata for one model, as persisted in ``metadata.yaml``.

    Starts empty (skeleton) or filled from the model card, then gains
    artifacts, timestamps and labels.
    """

    name: Optional[str] = None
    provider: Optional[str] = None
    description: Optional[str] = None
    readme: Optional[str] = None
    license: Optional[str] = None
    license_link: Optional[str] = None
    language: List[str] = field(default_factory=list)
    tasks: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    create_time_since_epoch: Optional[int] = None
    last_update_time_since_epoch: Optional[int] = None
    artifacts: List[OCIArtifact] = field(default_factory=list)

    def is_empty(self) -> bool:
        return self == ExtractedMetadata()

    def merge_labels(self, labels: List[str]) -> bool:
        """Append labels missing from ``tags``, preserving order.

        Returns:
            True if any tag was added
        """
        changed = False
        for label in labels:
            if label and label not in self.tags:
                self.tags.append(label)
                changed = True
        return changed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "provider": self.provider,
            "description": self.description,
            "readme": self.readme,
            "license": self.license,
            "licenseLink": self.license_link,
            "language": list(self.language),
            "tasks": list(self.tasks),
            "tags": list(self.tags),
            "createTimeSinceEpoch": self.create_time_since_epoch,
            "lastUpdateTimeSinceEpoch": self.last_update_time_since_epoch,
            "artifacts": [artifact.to_dict() for artifact in self.artifacts],
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExtractedMetadata":
        data = data or {}
        return cls(
            name=data.get("name"),
            provider=data.get("provider"),
            description=data.get("description"),
            readme=data.get("readme"),
            license=data.get("license"),
            license_link=data.get("licenseLink"),
            language=list(data.get("language") or []),
            tasks=list(data.get("tasks") or []),
            tags=list(data.get("tags") or []),
            create_time_since_epoch=_optional_int(data.get("createTimeSinceEpoch")),
            last_update_time_since_epoch=_optional_int(data.get("lastUpdateTimeSinceEpoch")),
            artifacts=[OCIArtifact.from_dict(a) for a in data.get("artifacts") or []],
        )


@dataclass(frozen=True)
class WorkerResult:
    """Outcome of processing one image reference."""

    ref: str
    model_card_found: bool
    metadata: ExtractedMetadata = field(default_factory=ExtractedMetadata)


@dataclass
class Manifest:
    """All worker results of a run, in arrival order."""

    models: List[WorkerResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "models": [
                {
                    "ref": result.ref,
                    "modelCard": {
                        "present": result.model_card_found,
                        "metadata": result.metadata.to_dict(),
                    },
                }
                for result in self.models
            ]
        }


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)
