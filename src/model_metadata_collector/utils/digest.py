"""Content digests of registry blobs."""

import hashlib
import re
from typing import Optional, Tuple, Union

# algorithm -> length of the hex encoded hash
HEX_LENGTHS = {"sha256": 64, "sha512": 128}

DIGEST_PATTERN = re.compile(r"^(?P<algorithm>[a-z0-9]+):(?P<encoded>[a-f0-9]+)$")


def split_digest(digest: str) -> Optional[Tuple[str, str]]:
    """Split a digest into algorithm and hex hash.

    Returns:
        ``(algorithm, encoded)``, or None for malformed or unsupported digests
    """
    if not isinstance(digest, str):
        return None
    match = DIGEST_PATTERN.match(digest)
    if not match:
        return None

    algorithm, encoded = match["algorithm"], match["encoded"]
    if HEX_LENGTHS.get(algorithm) != len(encoded):
        return None
    return algorithm, encoded


def validate_digest(digest: str) -> bool:
    return split_digest(digest) is not None


def calculate_digest(data: Union[bytes, bytearray], algorithm: str = "sha256") -> str:
    """Calculate the digest of blob content.

    Raises:
        ValueError: If the algorithm is unsupported or data is not bytes-like
    """
    if not isinstance(data, (bytes, bytearray)):
        raise ValueError("Data must be bytes or bytearray")
    if algorithm not in HEX_LENGTHS:
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


def verify_digest(data: Union[bytes, bytearray], expected_digest: str) -> bool:
    """Check blob content against the digest it was addressed by.

    Raises:
        ValueError: If ``expected_digest`` is malformed
    """
    parts = split_digest(expected_digest)
    if parts is None:
        raise ValueError(f"Invalid digest format: {expected_digest}")
    return calculate_digest(data, parts[0]) == expected_digest
