"""Test helpers: in-memory layer archives and a fake registry."""

import gzip
import hashlib
import io
import json
import tarfile
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from aiohttp import web

from model_metadata_collector.core.registry_client import (
    DOCKER_MANIFEST,
    OCI_INDEX,
    OCI_MANIFEST,
)
from model_metadata_collector.core.types import DOC_LAYER_ANNOTATION, DOC_LAYER_VALUE
from model_metadata_collector.exceptions import BlobFetchError

TAR_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar"
TAR_GZIP_MEDIA_TYPE = "application/vnd.oci.image.layer.v1.tar+gzip"
DOC_ANNOTATIONS = {DOC_LAYER_ANNOTATION: DOC_LAYER_VALUE}

JAN_15 = int(datetime(2024, 1, 15, 10, tzinfo=timezone.utc).timestamp()) * 1000
FEB_1 = int(datetime(2024, 2, 1, tzinfo=timezone.utc).timestamp()) * 1000

STATIC_CATALOG = """
source: Partner
models:
  - name: static-model
    provider: Partner
    artifacts:
      - uri: oci://quay.io/partner/static:1.0
  - name: Granite
    artifacts:
      - uri: oci://quay.io/partner/granite:1.0
"""

SAMPLE_CARD = b"""---
license: apache-2.0
language:
- en
pipeline_tag: text-generation
---
# Granite Test Model

**Model Summary:**
A small model used in tests.

Developers: Test Team
"""


def make_tar(files: Dict[str, bytes], compress: bool = False) -> bytes:
    """Build a tar archive in memory from ``{name: content}``.

    Names ending in ``/`` become directories.
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name.rstrip("/"))
            if name.endswith("/"):
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
                continue
            info.size = len(content)
            tar.addfile(info, fileobj=io.BytesIO(content))

    data = buffer.getvalue()
    return gzip.compress(data) if compress else data


def digest_of(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def layer_descriptor(
    data: bytes,
    media_type: str = TAR_MEDIA_TYPE,
    annotations: Optional[Dict[str, str]] = None,
) -> dict:
    descriptor = {"mediaType": media_type, "digest": digest_of(data), "size": len(data)}
    if annotations:
        descriptor["annotations"] = annotations
    return descriptor


def image_config(
    created: Optional[str] = "2024-01-15T10:00:00Z", history: Optional[List[str]] = None
) -> bytes:
    config = {"architecture": "amd64", "os": "linux"}
    if created:
        config["created"] = created
    if history:
        config["history"] = [{"created": h, "created_by": "test"} for h in history]
    return json.dumps(config).encode("utf-8")


class FakeRegistry:
    """In-process registry serving the read side of the v2 API.

    When ``token`` is set, every request needs ``Bearer <token>``, which
    the ``/token`` endpoint hands out.
    """

    def __init__(self, token: Optional[str] = None):
        self.token = token
        self.manifests: Dict[Tuple[str, str], Tuple[str, bytes]] = {}
        self.blobs: Dict[str, bytes] = {}
        self.requests: List[str] = []
        self.token_requests = 0

    def add_blob(self, data: bytes) -> str:
        digest = digest_of(data)
        self.blobs[digest] = data
        return digest

    def add_manifest(self, repository: str, reference: str, document: dict) -> str:
        body = json.dumps(document).encode("utf-8")
        media_type = document.get("mediaType", OCI_MANIFEST)
        digest = digest_of(body)
        self.manifests[(repository, reference)] = (media_type, body)
        self.manifests[(repository, digest)] = (media_type, body)
        return digest

    def add_image(
        self,
        repository: str,
        tag: str,
        layers: List[Tuple[bytes, str, Optional[Dict[str, str]]]],
        config: Optional[bytes] = None,
        media_type: str = OCI_MANIFEST,
    ) -> str:
        """Store an image built from ``(data, media_type, annotations)`` layers."""
        config = config if config is not None else image_config()
        self.add_blob(config)
        descriptors = []
        for data, layer_type, annotations in layers:
            self.add_blob(data)
            descriptors.append(layer_descriptor(data, layer_type, annotations))

        config_type = (
            "application/vnd.docker.container.image.v1+json"
            if media_type == DOCKER_MANIFEST
            else "application/vnd.oci.image.config.v1+json"
        )
        manifest = {
            "schemaVersion": 2,
            "mediaType": media_type,
            "config": {
                "mediaType": config_type,
                "digest": digest_of(config),
                "size": len(config),
            },
            "layers": descriptors,
        }
        return self.add_manifest(repository, tag, manifest)

    def add_index(
        self, repository: str, tag: str, children: List[Tuple[str, str, str]]
    ) -> str:
        """Store an image index of ``(digest, os, architecture)`` children."""
        index = {
            "schemaVersion": 2,
            "mediaType": OCI_INDEX,
            "manifests": [
                {
                    "mediaType": OCI_MANIFEST,
                    "digest": digest,
                    "size": 0,
                    "platform": {"os": os_name, "architecture": arch},
                }
                for digest, os_name, arch in children
            ],
        }
        return self.add_manifest(repository, tag, index)

    def _authorized(self, request: web.Request) -> bool:
        if self.token is None:
            return True
        return request.headers.get("Authorization") == f"Bearer {self.token}"

    def _challenge(self, request: web.Request, name: str) -> web.Response:
        realm = f"{request.url.origin()}/token"
        header = f'Bearer realm="{realm}",service="fake",scope="repository:{name}:pull"'
        return web.Response(status=401, headers={"WWW-Authenticate": header})

    async def handle_token(self, request: web.Request) -> web.Response:
        self.token_requests += 1
        return web.json_response({"token": self.token})

    async def handle_manifest(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        reference = request.match_info["reference"]
        self.requests.append(f"manifest {name} {reference}")
        if not self._authorized(request):
            return self._challenge(request, name)

        stored = self.manifests.get((name, reference))
        if stored is None:
            return web.json_response({"errors": [{"code": "MANIFEST_UNKNOWN"}]}, status=404)
        media_type, body = stored
        return web.Response(body=body, headers={"Content-Type": media_type})

    async def handle_blob(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        digest = request.match_info["digest"]
        self.requests.append(f"blob {name} {digest}")
        if not self._authorized(request):
            return self._challenge(request, name)

        data = self.blobs.get(digest)
        if data is None:
            return web.json_response({"errors": [{"code": "BLOB_UNKNOWN"}]}, status=404)
        return web.Response(body=data, content_type="application/octet-stream")

    def blob_requests(self, digest: str) -> int:
        return sum(1 for r in self.requests if r.startswith("blob") and r.endswith(digest))

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/token", self.handle_token)
        app.router.add_get("/v2/{name:.+}/manifests/{reference}", self.handle_manifest)
        app.router.add_get("/v2/{name:.+}/blobs/{digest}", self.handle_blob)
        return app


class FakeSession:
    """Stand-in for an open RegistrySession serving blobs from a dict."""

    def __init__(self, blobs: Optional[Dict[str, bytes]] = None):
        self.blobs = dict(blobs or {})
        self.fetched: List[str] = []
        self.closed = False

    async def get_blob(self, digest: str) -> bytes:
        self.fetched.append(digest)
        if digest not in self.blobs:
            raise BlobFetchError(f"unknown blob {digest}")
        return self.blobs[digest]

    async def close(self) -> None:
        self.closed = True
