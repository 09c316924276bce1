"""Tests for model card layer location and blob fetching."""

import asyncio

import pytest

from model_metadata_collector.core.types import LayerDescriptor
from model_metadata_collector.exceptions import BlobFetchError
from model_metadata_collector.image.locator import (
    BlobCache,
    fetch_blob,
    is_doc_layer,
    locate_doc_layer,
)
from tests.helpers import DOC_ANNOTATIONS, FakeSession


def layer(name: str, annotations=None) -> LayerDescriptor:
    return LayerDescriptor(
        digest=f"sha256:{name}", media_type="tar", size=1, annotations=annotations or {}
    )


def test_locate_doc_layer():
    layers = [
        layer("a"),
        layer("b", DOC_ANNOTATIONS),
        layer("c", {"other": "modelcard"}),
        layer("d", DOC_ANNOTATIONS),
    ]

    assert locate_doc_layer(layers) == 1
    assert locate_doc_layer(layers, start=2) == 3
    assert locate_doc_layer(layers, start=4) is None
    assert locate_doc_layer([]) is None


def test_is_doc_layer_custom_annotation():
    custom = layer("a", {"example.com/kind": "docs"})
    assert not is_doc_layer(custom)
    assert is_doc_layer(custom, "example.com/kind", "docs")


@pytest.mark.asyncio
async def test_fetch_blob_uses_cache():
    session = FakeSession({"sha256:a": b"content"})
    cache = BlobCache()

    first = await fetch_blob(session, layer("a"), cache=cache)
    second = await fetch_blob(session, layer("a"), cache=cache)

    assert first.read() == b"content"
    assert second.read() == b"content"
    assert session.fetched == ["sha256:a"]
    assert "sha256:a" in cache
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_fetch_blob_error():
    with pytest.raises(BlobFetchError):
        await fetch_blob(FakeSession(), layer("missing"))


@pytest.mark.asyncio
async def test_fetch_blob_timeout():
    class SlowSession(FakeSession):
        async def get_blob(self, digest):
            await asyncio.sleep(10)

    with pytest.raises(BlobFetchError):
        await fetch_blob(SlowSession(), layer("a"), timeout=0.01)
