"""Registry authentication helpers."""

import base64
import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')

DOCKER_HUB_ALIASES = ("docker.io", "index.docker.io", "registry-1.docker.io")


def parse_bearer_challenge(header: str) -> Optional[Dict[str, str]]:
    """Parse a ``WWW-Authenticate: Bearer ...`` header.

    Returns:
        The challenge parameters (``realm``, ``service``, ``scope``), or None
        when the header is not a bearer challenge or has no realm.
    """
    if not header:
        return None
    scheme, _, params = header.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    challenge = dict(_CHALLENGE_PARAM.findall(params))
    return challenge if challenge.get("realm") else None


def load_docker_credentials(path: Optional[Path] = None) -> Dict[str, Tuple[str, str]]:
    """Read username/password pairs from a docker ``config.json``.

    Only inline ``auth`` entries are supported; credential helpers are
    ignored. A missing or unreadable file yields no credentials.
    """
    path = Path(path) if path else Path.home() / ".docker" / "config.json"
    if not path.exists():
        return {}

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable docker config %s: %s", path, e)
        return {}

    credentials: Dict[str, Tuple[str, str]] = {}
    for host, entry in (data.get("auths") or {}).items():
        encoded = (entry or {}).get("auth")
        if not encoded:
            continue
        try:
            username, _, password = base64.b64decode(encoded).decode("utf-8").partition(":")
        except (ValueError, UnicodeDecodeError):
            logger.warning("Ignoring malformed docker credentials for %s", host)
            continue
        host = host.split("://", 1)[-1].rstrip("/")
        if host.endswith("/v1") or host.endswith("/v2"):
            host = host[:-3]
        credentials[host] = (username, password)
    return credentials


def lookup_credentials(
    credentials: Dict[str, Tuple[str, str]], registry: str
) -> Optional[Tuple[str, str]]:
    """Find credentials for a registry, treating Docker Hub aliases as one."""
    if registry in credentials:
        return credentials[registry]
    if registry in DOCKER_HUB_ALIASES:
        for alias in DOCKER_HUB_ALIASES:
            if alias in credentials:
                return credentials[alias]
    return None
