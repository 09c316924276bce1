"""Custom exceptions for the model metadata collector."""


class CollectorError(Exception):
    """Base exception for all collector errors."""

    pass


class ConfigError(CollectorError):
    """Raised when configuration or the models index is invalid."""

    pass


class InvalidReferenceError(CollectorError):
    """Raised when an image reference cannot be parsed."""

    pass


class RegistryError(CollectorError):
    """Base exception for all registry-related errors."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry or a call times out."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class BlobFetchError(RegistryError):
    """Raised when a blob cannot be fetched or fails digest verification."""

    pass


class TarReadError(CollectorError):
    """Raised when unable to decompress or read a layer archive."""

    pass


class CatalogError(CollectorError):
    """Raised when the models catalog cannot be generated."""

    pass
