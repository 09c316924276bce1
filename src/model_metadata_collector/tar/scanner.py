"""Scan a layer archive for its single documentation file."""

import asyncio
import functools
import gzip
import logging
import posixpath
import tarfile
import zlib
from pathlib import Path
from typing import BinaryIO, Optional

from ..exceptions import TarReadError
from .models import ArchiveEntry

logger = logging.getLogger(__name__)

DRAIN_CHUNK_SIZE = 32 * 1024

_READ_ERRORS = (tarfile.TarError, OSError, EOFError, zlib.error)


def sanitize_entry_name(name: str) -> Optional[str]:
    """Normalize an archive entry name into a safe relative path.

    Returns:
        The normalized path, or None if it is absolute, empty or climbs
        out of its root through ``..`` segments
    """
    normalized = posixpath.normpath(name.replace("\\", "/"))
    if normalized in ("", ".") or posixpath.isabs(normalized):
        return None
    if normalized == ".." or normalized.startswith("../"):
        return None
    return normalized


def safe_output_path(dest_dir: Path, name: str) -> Optional[Path]:
    """Resolve where an entry would be written below ``dest_dir``.

    Returns:
        The target path, or None if it would land outside ``dest_dir``
    """
    safe_name = sanitize_entry_name(name)
    if safe_name is None:
        return None

    dest = Path(dest_dir).resolve()
    target = (dest / safe_name).resolve()
    if target != dest and dest not in target.parents:
        return None
    return target


def _drain(tar: tarfile.TarFile, member: tarfile.TarInfo) -> None:
    """Consume an entry's data without keeping it."""
    fileobj = tar.extractfile(member)
    if fileobj is None:
        return
    while fileobj.read(DRAIN_CHUNK_SIZE):
        pass


def _read(tar: tarfile.TarFile, member: tarfile.TarInfo) -> bytes:
    fileobj = tar.extractfile(member)
    return fileobj.read() if fileobj is not None else b""


def scan_archive_sync(
    blob: BinaryIO, media_type: str = "", doc_extension: str = ".md"
) -> Optional[ArchiveEntry]:
    """Find the one documentation file in a layer archive.

    The archive is read sequentially. Only the first matching entry is kept
    in memory; other entries are drained in bounded chunks. Reading stops
    at the second match.

    Args:
        blob: Raw layer content
        media_type: Layer media type; ``gzip`` in it enables decompression
        doc_extension: Suffix that marks documentation entries

    Returns:
        The entry when exactly one documentation file is present, else None

    Raises:
        TarReadError: If the stream is not a readable (compressed) archive
    """
    stream = blob
    if "gzip" in media_type:
        stream = gzip.GzipFile(fileobj=blob, mode="rb")

    matches = 0
    entry: Optional[ArchiveEntry] = None
    seen = 0

    try:
        tar = tarfile.open(fileobj=stream, mode="r|")
    except _READ_ERRORS as e:
        raise TarReadError(f"Failed to open layer archive: {e}") from e

    with tar:
        try:
            for member in tar:
                seen += 1
                logger.debug("Found file in tar: %s (%d bytes)", member.name, member.size)
                if not member.isfile():
                    continue

                if not member.name.endswith(doc_extension):
                    _drain(tar, member)
                    continue

                safe_name = sanitize_entry_name(member.name)
                if safe_name is None:
                    logger.warning("Skipping unsafe tar entry path: %s", member.name)
                    _drain(tar, member)
                    continue

                matches += 1
                if matches > 1:
                    logger.info("Found multiple %s files, ignoring layer", doc_extension)
                    break
                entry = ArchiveEntry(name=safe_name, content=_read(tar, member))
        except _READ_ERRORS as e:
            if seen == 0:
                raise TarReadError(f"Failed to read layer archive: {e}") from e
            logger.warning("Error reading tar after %d entries: %s", seen, e)

    if matches != 1:
        if matches == 0:
            logger.info("No %s files found in the layer", doc_extension)
        return None
    return entry


async def scan_archive(
    blob: BinaryIO, media_type: str = "", doc_extension: str = ".md"
) -> Optional[ArchiveEntry]:
    """Run ``scan_archive_sync`` in the default executor."""
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(
        None, functools.partial(scan_archive_sync, blob, media_type, doc_extension)
    )
