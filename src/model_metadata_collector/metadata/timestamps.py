"""Creation and update timestamps from an image config blob."""

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from .models import ExtractedMetadata

logger = logging.getLogger(__name__)

# Accepted layouts, most precise first: RFC 3339 with up to nanosecond
# fractions, then plain second-precision RFC 3339.
_OFFSET = r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})"
_DATETIME = r"(?P<date>\d{4}-\d{2}-\d{2})[Tt](?P<time>\d{2}:\d{2}:\d{2})"
TIMESTAMP_FORMATS = [
    re.compile(rf"^{_DATETIME}\.(?P<fraction>\d{{1,9}}){_OFFSET}$"),
    re.compile(rf"^{_DATETIME}{_OFFSET}$"),
]


def _to_timezone(offset: str) -> timezone:
    if offset in ("Z", "z"):
        return timezone.utc
    sign = 1 if offset[0] == "+" else -1
    hours, minutes = int(offset[1:3]), int(offset[4:6])
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp, trying each accepted layout in turn.

    Sub-microsecond digits are accepted and dropped.

    Returns:
        Timezone-aware datetime, or None if no layout matches
    """
    if not value:
        return None

    for pattern in TIMESTAMP_FORMATS:
        match = pattern.match(value)
        if not match:
            continue
        try:
            parsed = datetime.strptime(
                f"{match['date']}T{match['time']}", "%Y-%m-%dT%H:%M:%S"
            )
        except ValueError:
            continue
        fraction = match.groupdict().get("fraction")
        if fraction:
            parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))
        return parsed.replace(tzinfo=_to_timezone(match["offset"]))
    return None


def to_epoch_millis(value: datetime) -> int:
    """Whole seconds since the epoch, expressed in milliseconds."""
    return int(value.timestamp()) * 1000


def extract_timestamps(config_blob: Optional[bytes]) -> Tuple[Optional[int], Optional[int]]:
    """Derive (create, update) epoch milliseconds from a config blob.

    The create time comes from the top-level ``created`` field. The update
    time is the last ``history`` entry when it parses, else the create time.
    """
    if not config_blob:
        return None, None

    try:
        config = json.loads(config_blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Failed to parse config blob for timestamps: %s", e)
        return None, None
    if not isinstance(config, dict):
        return None, None

    create_time = None
    created = config.get("created")
    if created:
        parsed = parse_timestamp(created)
        if parsed is not None:
            create_time = to_epoch_millis(parsed)
        else:
            logger.warning("Failed to parse creation time %r", created)

    update_time = create_time
    history: List = config.get("history") or []
    if history and isinstance(history[-1], dict):
        parsed = parse_timestamp(history[-1].get("created"))
        if parsed is not None:
            update_time = to_epoch_millis(parsed)

    logger.debug("Extracted timestamps - create: %s, update: %s", create_time, update_time)
    return create_time, update_time


def apply_timestamps(
    metadata: ExtractedMetadata, create_time: Optional[int], update_time: Optional[int]
) -> None:
    """Fill timestamps that are still unset on the model and its artifacts."""
    if metadata.create_time_since_epoch is None:
        metadata.create_time_since_epoch = create_time
    if metadata.last_update_time_since_epoch is None:
        metadata.last_update_time_since_epoch = update_time

    for artifact in metadata.artifacts:
        if artifact.create_time_since_epoch is None:
            artifact.create_time_since_epoch = create_time
        if artifact.last_update_time_since_epoch is None:
            artifact.last_update_time_since_epoch = update_time
