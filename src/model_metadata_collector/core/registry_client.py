"""Registry HTTP API v2 async client for reading image manifests and blobs."""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from ..exceptions import BlobFetchError, ManifestError, RegistryConnectionError
from ..utils.digest import validate_digest, verify_digest
from .auth import parse_bearer_challenge
from .reference import ImageReference
from .types import LayerDescriptor

logger = logging.getLogger(__name__)

OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
OCI_INDEX = "application/vnd.oci.image.index.v1+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"

MANIFEST_ACCEPT = ", ".join([OCI_MANIFEST, OCI_INDEX, DOCKER_MANIFEST, DOCKER_MANIFEST_LIST])
INDEX_MEDIA_TYPES = (OCI_INDEX, DOCKER_MANIFEST_LIST)


class RegistrySession:
    """Read-only session against one image in a registry.

    The session remembers the resolved image manifest, so ``layer_infos``
    and ``get_config_blob`` are only valid after ``get_manifest``.
    """

    def __init__(
        self,
        reference: ImageReference,
        timeout: float = 60,
        insecure: bool = False,
        credentials: Optional[Tuple[str, str]] = None,
        platform: str = "linux/amd64",
        connector: Optional[aiohttp.BaseConnector] = None,
    ) -> None:
        """Initialize the session.

        Args:
            reference: Parsed image reference
            timeout: Per-request timeout in seconds
            insecure: Use plain HTTP instead of HTTPS
            credentials: Optional (username, password) for token or basic auth
            platform: ``os/architecture`` used to pick from image indexes
            connector: aiohttp connector for connection pooling
        """
        self.reference = reference
        scheme = "http" if insecure or reference.is_local() else "https"
        self.base_url = f"{scheme}://{reference.registry_host}"
        self.timeout = timeout
        self.credentials = credentials
        self.platform = platform
        self.connector = connector
        self.session: Optional[aiohttp.ClientSession] = None
        self._authorization: Optional[str] = None
        self._manifest: Optional[Dict[str, Any]] = None

    async def __aenter__(self) -> "RegistrySession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the underlying HTTP session."""
        if not self.session:
            self.session = aiohttp.ClientSession(
                connector=self.connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )

    async def close(self) -> None:
        """Close the HTTP session. Safe to call more than once."""
        if self.session and not self.session.closed:
            await self.session.close()

    @property
    def closed(self) -> bool:
        return self.session is None or self.session.closed

    def _url(self, kind: str, reference: str) -> str:
        return f"{self.base_url}/v2/{self.reference.repository}/{kind}/{reference}"

    async def _authenticate(self, challenge_header: str) -> bool:
        """Answer a 401 challenge. Returns True if a retry makes sense."""
        challenge = parse_bearer_challenge(challenge_header)
        if challenge is None:
            if self.credentials and challenge_header.lower().startswith("basic"):
                self._authorization = aiohttp.BasicAuth(*self.credentials).encode()
                return True
            return False

        params = {
            "service": challenge.get("service", ""),
            "scope": challenge.get("scope", f"repository:{self.reference.repository}:pull"),
        }
        auth = aiohttp.BasicAuth(*self.credentials) if self.credentials else None
        try:
            async with self.session.get(
                challenge["realm"], params=params, auth=auth
            ) as resp:
                resp.raise_for_status()
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, json.JSONDecodeError) as e:
            logger.warning("Token request to %s failed: %s", challenge["realm"], e)
            return False

        token = data.get("token") or data.get("access_token")
        if not token:
            return False
        self._authorization = f"Bearer {token}"
        return True

    async def _get(self, url: str, accept: Optional[str] = None) -> Tuple[bytes, str]:
        """GET a registry URL, negotiating auth once on 401.

        Returns:
            Response body and its Content-Type
        """
        if self.session is None:
            raise RegistryConnectionError("Registry session is not open")

        for attempt in range(2):
            headers = {}
            if accept:
                headers["Accept"] = accept
            if self._authorization:
                headers["Authorization"] = self._authorization

            async with self.session.get(url, headers=headers) as resp:
                if resp.status == 401 and attempt == 0:
                    if await self._authenticate(resp.headers.get("WWW-Authenticate", "")):
                        continue
                resp.raise_for_status()
                return await resp.read(), resp.headers.get("Content-Type", "")

        raise RegistryConnectionError(f"Authentication failed for {url}")

    async def _get_manifest_document(self, reference: str) -> Tuple[bytes, Dict[str, Any]]:
        try:
            body, content_type = await self._get(
                self._url("manifests", reference), accept=MANIFEST_ACCEPT
            )
        except aiohttp.ClientConnectionError as e:
            raise RegistryConnectionError(
                f"Failed to connect to {self.base_url}: {e}"
            ) from e
        except aiohttp.ClientError as e:
            raise ManifestError(f"Failed to get manifest: {e}") from e

        try:
            document = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestError(f"Manifest is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            raise ManifestError("Manifest is not a JSON object")

        document.setdefault("mediaType", content_type.split(";")[0].strip())
        return body, document

    def _select_platform(self, index: Dict[str, Any]) -> str:
        """Pick the child manifest digest matching the configured platform."""
        manifests = index.get("manifests") or []
        if not manifests:
            raise ManifestError("Image index has no manifests")

        os_name, _, arch = self.platform.partition("/")
        for entry in manifests:
            platform = entry.get("platform") or {}
            if platform.get("os") == os_name and platform.get("architecture") == arch:
                return entry["digest"]
        return manifests[0]["digest"]

    async def get_manifest(self) -> bytes:
        """Retrieve the image manifest, resolving image indexes.

        Returns:
            Raw bytes of the resolved image manifest

        Raises:
            ManifestError: If retrieval or parsing fails
            RegistryConnectionError: If the registry cannot be reached
        """
        body, document = await self._get_manifest_document(self.reference.reference)
        if document.get("mediaType") in INDEX_MEDIA_TYPES or "manifests" in document:
            digest = self._select_platform(document)
            logger.debug("Resolved image index %s to %s", self.reference, digest)
            body, document = await self._get_manifest_document(digest)

        self._manifest = document
        return body

    def _require_manifest(self) -> Dict[str, Any]:
        if self._manifest is None:
            raise ManifestError("Manifest has not been fetched")
        return self._manifest

    def layer_infos(self) -> List[LayerDescriptor]:
        """Layer descriptors of the resolved manifest, in manifest order."""
        manifest = self._require_manifest()
        return [LayerDescriptor.from_manifest(layer) for layer in manifest.get("layers") or []]

    async def get_blob(self, digest: str) -> bytes:
        """Download a blob and verify it against its digest.

        Raises:
            BlobFetchError: If the download fails or the content does not match
        """
        if not validate_digest(digest):
            raise BlobFetchError(f"Invalid digest format: {digest}")

        try:
            body, _ = await self._get(self._url("blobs", digest))
        except aiohttp.ClientError as e:
            raise BlobFetchError(f"Failed to get blob {digest}: {e}") from e

        if not verify_digest(body, digest):
            raise BlobFetchError(f"Blob content does not match digest {digest}")
        return body

    async def get_config_blob(self) -> bytes:
        """Download the image configuration blob."""
        config = self._require_manifest().get("config") or {}
        digest = config.get("digest")
        if not digest:
            raise ManifestError("No config digest in manifest")
        return await self.get_blob(digest)


def open_session(
    reference: ImageReference,
    timeout: float = 60,
    insecure_registries: Optional[List[str]] = None,
    credentials: Optional[Tuple[str, str]] = None,
    platform: str = "linux/amd64",
) -> RegistrySession:
    """Build a session for ``reference``; the caller opens and closes it."""
    insecure = reference.registry in (insecure_registries or [])
    return RegistrySession(
        reference,
        timeout=timeout,
        insecure=insecure,
        credentials=credentials,
        platform=platform,
    )
