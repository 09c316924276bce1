"""Data models for layer archive handling."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ArchiveEntry:
    """A documentation file extracted from a layer archive."""

    name: str  # Sanitized relative path within the archive
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)
