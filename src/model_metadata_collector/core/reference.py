"""Image reference parsing.

Parses references such as ``registry.example.com/org/model:1.0`` or
``quay.io/org/model@sha256:...`` into their registry-addressable parts.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import InvalidReferenceError

DEFAULT_REGISTRY = "docker.io"
DEFAULT_TAG = "latest"

_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[\w][\w.-]{0,127}$")
_DIGEST = re.compile(r"^[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-zA-Z0-9=_-]+$")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class ImageReference:
    """Parsed container image reference.

    Examples:
        - model -> docker.io/library/model:latest
        - quay.io/org/model:1.0 -> quay.io/org/model:1.0
        - localhost:5000/model@sha256:abc... -> localhost:5000/model@sha256:abc...
    """

    registry: str
    repository: str
    tag: Optional[str] = None
    digest: Optional[str] = None

    @property
    def reference(self) -> str:
        """Tag or digest used to address the manifest."""
        return self.digest or self.tag or DEFAULT_TAG

    @property
    def full_name(self) -> str:
        name = f"{self.registry}/{self.repository}"
        if self.digest:
            return f"{name}@{self.digest}"
        return f"{name}:{self.tag or DEFAULT_TAG}"

    @property
    def registry_host(self) -> str:
        """Host that serves the registry API for this reference."""
        if self.registry == DEFAULT_REGISTRY:
            return "registry-1.docker.io"
        return self.registry

    def is_local(self) -> bool:
        """Whether the registry lives on the loopback interface."""
        host = self.registry.rsplit(":", 1)[0] if ":" in self.registry else self.registry
        host = host.strip("[]")
        if host == "localhost":
            return True
        try:
            return ipaddress.ip_address(host).is_loopback
        except ValueError:
            return False

    def __str__(self) -> str:
        return self.full_name


def parse_reference(reference: str) -> ImageReference:
    """Parse an image reference string.

    Args:
        reference: Reference such as ``quay.io/org/model:1.0``

    Returns:
        Parsed ImageReference

    Raises:
        InvalidReferenceError: If the reference is empty or malformed
    """
    original = reference
    reference = (reference or "").strip()
    if reference.startswith("docker://"):
        reference = reference[len("docker://"):]
    reference = reference.lstrip("/")
    if not reference:
        raise InvalidReferenceError("Empty image reference")

    digest = None
    if "@" in reference:
        reference, digest = reference.rsplit("@", 1)
        if not _DIGEST.match(digest):
            raise InvalidReferenceError(f"Invalid digest in reference: {original}")

    tag = None
    last_colon = reference.rfind(":")
    if last_colon != -1 and "/" not in reference[last_colon + 1 :]:
        tag = reference[last_colon + 1 :]
        reference = reference[:last_colon]
        if not _TAG.match(tag):
            raise InvalidReferenceError(f"Invalid tag in reference: {original}")

    parts = reference.split("/")
    first = parts[0]
    if len(parts) > 1 and ("." in first or ":" in first or first == "localhost"):
        registry = first
        path = parts[1:]
    else:
        registry = DEFAULT_REGISTRY
        path = parts if len(parts) > 1 else ["library", parts[0]]

    if not registry or not all(_COMPONENT.match(component) for component in path):
        raise InvalidReferenceError(f"Invalid repository in reference: {original}")

    if not tag and not digest:
        tag = DEFAULT_TAG

    return ImageReference(
        registry=registry, repository="/".join(path), tag=tag, digest=digest
    )


def sanitize_reference(reference: str) -> str:
    """Turn an image reference into a single safe directory name."""
    return _UNSAFE_CHARS.sub("_", reference.strip())
