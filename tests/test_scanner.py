"""Tests for scanning layer archives for the model card."""

import io
import os

import pytest

from model_metadata_collector.exceptions import TarReadError
from model_metadata_collector.tar.scanner import (
    safe_output_path,
    sanitize_entry_name,
    scan_archive,
    scan_archive_sync,
)
from tests.helpers import TAR_GZIP_MEDIA_TYPE, TAR_MEDIA_TYPE, make_tar


def test_single_markdown_among_other_files():
    """Test that the only .md file is returned with its full content."""
    blob = make_tar(
        {
            "models/": b"",
            "models/config.json": b"{}",
            "models/README.md": b"# Model\n",
            "models/model.safetensors": os.urandom(100_000),
            "models/tokenizer.json": b"{}",
            "LICENSE": b"Apache",
        }
    )

    entry = scan_archive_sync(io.BytesIO(blob), TAR_MEDIA_TYPE)

    assert entry is not None
    assert entry.name == "models/README.md"
    assert entry.content == b"# Model\n"
    assert entry.size == 8


def test_multiple_markdown_files_rejected():
    """Test that a layer with more than one .md file yields nothing."""
    blob = make_tar({"README.md": b"a", "CHANGELOG.md": b"b", "weights.bin": b"c"})
    assert scan_archive_sync(io.BytesIO(blob)) is None


def test_no_markdown_file():
    blob = make_tar({"weights.bin": b"data", "config.json": b"{}"})
    assert scan_archive_sync(io.BytesIO(blob)) is None


def test_empty_archive():
    assert scan_archive_sync(io.BytesIO(make_tar({}))) is None


def test_traversal_entries_never_returned():
    """Test that entries escaping the archive root are skipped."""
    blob = make_tar(
        {
            "../../etc/passwd": b"root:x:0:0",
            "../../evil.md": b"bad",
            "/abs/README.md": b"bad",
            "README.md": b"good",
        }
    )

    entry = scan_archive_sync(io.BytesIO(blob))

    assert entry is not None
    assert entry.name == "README.md"
    assert entry.content == b"good"


def test_gzip_layer():
    blob = make_tar({"README.md": b"# Gzipped\n", "model.bin": b"x" * 1000}, compress=True)
    entry = scan_archive_sync(io.BytesIO(blob), TAR_GZIP_MEDIA_TYPE)
    assert entry.content == b"# Gzipped\n"


def test_custom_doc_extension():
    blob = make_tar({"README.md": b"md", "card.txt": b"txt"})
    entry = scan_archive_sync(io.BytesIO(blob), doc_extension=".txt")
    assert entry.name == "card.txt"


@pytest.mark.parametrize(
    "data,media_type",
    [
        (b"this is not a tar archive" * 40, TAR_MEDIA_TYPE),
        (b"not gzip data at all", TAR_GZIP_MEDIA_TYPE),
    ],
)
def test_corrupt_archive_raises(data, media_type):
    """Test that unreadable layers raise TarReadError."""
    with pytest.raises(TarReadError):
        scan_archive_sync(io.BytesIO(data), media_type)


def test_truncated_archive_after_match():
    """Test that a stream cut after the doc entry still yields it."""
    blob = make_tar({"README.md": b"# Card\n", "weights.bin": b"w" * 4096})
    entry = scan_archive_sync(io.BytesIO(blob[:2048]))
    assert entry is not None
    assert entry.content == b"# Card\n"


@pytest.mark.asyncio
async def test_scan_archive_async():
    blob = make_tar({"docs/README.md": b"async"})
    entry = await scan_archive(io.BytesIO(blob), TAR_MEDIA_TYPE)
    assert entry.name == "docs/README.md"


@pytest.mark.parametrize(
    "name,expected",
    [
        ("README.md", "README.md"),
        ("./models/README.md", "models/README.md"),
        ("models/../README.md", "README.md"),
        ("../README.md", None),
        ("a/../../README.md", None),
        ("/etc/passwd", None),
        (".", None),
        ("", None),
    ],
)
def test_sanitize_entry_name(name, expected):
    assert sanitize_entry_name(name) == expected


def test_safe_output_path(tmp_path):
    target = safe_output_path(tmp_path, "models/README.md")
    assert target == (tmp_path / "models" / "README.md").resolve()
    assert safe_output_path(tmp_path, "../../etc/passwd") is None
