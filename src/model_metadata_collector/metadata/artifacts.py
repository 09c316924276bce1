"""Artifact introspection: which OCI artifacts distribute a model."""

from typing import List, Protocol

from .models import OCIArtifact

OCI_URI_SCHEME = "oci://"


class ArtifactResolver(Protocol):
    def artifacts_for(self, ref: str) -> List[OCIArtifact]:
        ...


class ReferenceArtifactResolver:
    """Describe a model as the single OCI artifact named by its reference.

    Timestamps are left unset so that values from the image config apply.
    """

    def artifacts_for(self, ref: str) -> List[OCIArtifact]:
        ref = ref.strip()
        if ref.startswith(OCI_URI_SCHEME):
            ref = ref[len(OCI_URI_SCHEME):]
        return [OCIArtifact(uri=f"{OCI_URI_SCHEME}{ref}")]
