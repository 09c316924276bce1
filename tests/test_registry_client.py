"""Tests for the registry session and image fetching against a fake registry."""

import json

import pytest
from aiohttp.test_utils import TestServer

from model_metadata_collector.config import CollectorConfig
from model_metadata_collector.core.reference import parse_reference
from model_metadata_collector.core.registry_client import (
    DOCKER_MANIFEST,
    RegistrySession,
    open_session,
)
from model_metadata_collector.exceptions import (
    BlobFetchError,
    InvalidReferenceError,
    ManifestError,
    RegistryConnectionError,
)
from model_metadata_collector.image.fetcher import fetch_image
from tests.helpers import (
    DOC_ANNOTATIONS,
    TAR_MEDIA_TYPE,
    FakeRegistry,
    digest_of,
    image_config,
    make_tar,
)

DOC_LAYER = make_tar({"README.md": b"# Card\n"})
DATA_LAYER = make_tar({"weights.bin": b"0" * 64})


def add_model(registry: FakeRegistry, tag: str = "1.0", **kwargs) -> str:
    return registry.add_image(
        "org/model",
        tag,
        [(DATA_LAYER, TAR_MEDIA_TYPE, None), (DOC_LAYER, TAR_MEDIA_TYPE, DOC_ANNOTATIONS)],
        **kwargs,
    )


def session_for(host: str, tag: str = "1.0", **kwargs) -> RegistrySession:
    return RegistrySession(parse_reference(f"{host}/org/model:{tag}"), timeout=5, **kwargs)


@pytest.mark.asyncio
async def test_get_manifest_and_layers(fake_registry, registry_host):
    add_model(fake_registry)

    async with session_for(registry_host) as session:
        manifest = json.loads(await session.get_manifest())
        layers = session.layer_infos()
        config_blob = await session.get_config_blob()

    assert session.closed
    assert len(manifest["layers"]) == 2
    assert [layer.digest for layer in layers] == [digest_of(DATA_LAYER), digest_of(DOC_LAYER)]
    assert layers[0].annotations == {}
    assert layers[1].annotations == DOC_ANNOTATIONS
    assert layers[1].media_type == TAR_MEDIA_TYPE
    assert layers[1].size == len(DOC_LAYER)
    assert config_blob == image_config()


@pytest.mark.asyncio
async def test_docker_manifest_accepted(fake_registry, registry_host):
    add_model(fake_registry, media_type=DOCKER_MANIFEST)

    async with session_for(registry_host) as session:
        await session.get_manifest()
        assert len(session.layer_infos()) == 2


@pytest.mark.asyncio
async def test_image_index_resolves_platform(fake_registry, registry_host):
    arm = fake_registry.add_image("org/model", "arm", [(DATA_LAYER, TAR_MEDIA_TYPE, None)])
    amd = add_model(fake_registry, tag="amd")
    fake_registry.add_index(
        "org/model", "1.0", [(arm, "linux", "arm64"), (amd, "linux", "amd64")]
    )

    async with session_for(registry_host) as session:
        await session.get_manifest()
        assert len(session.layer_infos()) == 2

    assert f"manifest org/model {amd}" in fake_registry.requests


@pytest.mark.asyncio
async def test_image_index_falls_back_to_first(fake_registry, registry_host):
    arm = fake_registry.add_image("org/model", "arm", [(DATA_LAYER, TAR_MEDIA_TYPE, None)])
    fake_registry.add_index("org/model", "1.0", [(arm, "linux", "arm64")])

    async with session_for(registry_host) as session:
        await session.get_manifest()
        assert len(session.layer_infos()) == 1


@pytest.mark.asyncio
async def test_bearer_token_flow():
    registry = FakeRegistry(token="secret")
    add_model(registry)

    async with TestServer(registry.app()) as server:
        async with session_for(f"{server.host}:{server.port}") as session:
            await session.get_manifest()
            assert await session.get_blob(digest_of(DOC_LAYER)) == DOC_LAYER

    assert registry.token_requests == 1


@pytest.mark.asyncio
async def test_missing_manifest(fake_registry, registry_host):
    async with session_for(registry_host, tag="missing") as session:
        with pytest.raises(ManifestError):
            await session.get_manifest()


@pytest.mark.asyncio
async def test_manifest_required_before_layers(registry_host):
    session = session_for(registry_host)
    with pytest.raises(ManifestError):
        session.layer_infos()
    with pytest.raises(ManifestError):
        await session.get_config_blob()


@pytest.mark.asyncio
async def test_blob_digest_mismatch(fake_registry, registry_host):
    add_model(fake_registry)
    fake_registry.blobs[digest_of(DOC_LAYER)] = b"tampered"

    async with session_for(registry_host) as session:
        with pytest.raises(BlobFetchError):
            await session.get_blob(digest_of(DOC_LAYER))


@pytest.mark.asyncio
async def test_blob_errors(fake_registry, registry_host):
    async with session_for(registry_host) as session:
        with pytest.raises(BlobFetchError):
            await session.get_blob("not-a-digest")
        with pytest.raises(BlobFetchError):
            await session.get_blob(digest_of(b"unknown"))


@pytest.mark.asyncio
async def test_unreachable_registry():
    async with session_for("127.0.0.1:1") as session:
        with pytest.raises(RegistryConnectionError):
            await session.get_manifest()


def test_open_session_scheme():
    insecure = open_session(
        parse_reference("registry.internal/org/model:1.0"),
        insecure_registries=["registry.internal"],
    )
    secure = open_session(parse_reference("quay.io/org/model:1.0"))
    local = open_session(parse_reference("localhost:5000/org/model:1.0"))

    assert insecure.base_url == "http://registry.internal"
    assert secure.base_url == "https://quay.io"
    assert local.base_url == "http://localhost:5000"


@pytest.mark.asyncio
async def test_fetch_image(fake_registry, registry_host, config):
    add_model(fake_registry)

    async with await fetch_image(f"{registry_host}/org/model:1.0", config) as image:
        assert image.reference.repository == "org/model"
        assert len(image.layers) == 2
        assert image.config_blob == image_config()
        assert not image.session.closed

    assert image.session.closed


@pytest.mark.asyncio
async def test_fetch_image_failures(fake_registry, registry_host, config):
    with pytest.raises(InvalidReferenceError):
        await fetch_image("", config)
    with pytest.raises(ManifestError):
        await fetch_image(f"{registry_host}/org/missing:1.0", config)


@pytest.mark.asyncio
async def test_fetch_image_timeout(fake_registry, registry_host, output_dir):
    add_model(fake_registry)
    config = CollectorConfig(output_dir=output_dir, timeout=0)

    with pytest.raises(RegistryConnectionError):
        await fetch_image(f"{registry_host}/org/model:1.0", config)
