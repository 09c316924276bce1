"""Field extraction from model card markdown.

Model cards follow the Hugging Face layout: an optional YAML front matter
block, a title heading, then free-form sections.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

import yaml
from huggingface_hub import ModelCard

from ..utils.license import get_human_readable_license_name, get_license_url
from .models import ExtractedMetadata

logger = logging.getLogger(__name__)

_TITLE = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)
_PROVIDER = re.compile(
    r"^\W*(?:model\s+)?(?:developers?|developed\s+by|provider|publisher)\W*?[:\-]\**\s*(.+)$",
    re.IGNORECASE | re.MULTILINE,
)
_SUMMARY_HEADING = re.compile(
    r"^#{2,6}\s*(?:model\s+)?(?:summary|overview|description)\b.*$|^\*\*model summary:?\*\*:?\s*$",
    re.IGNORECASE | re.MULTILINE,
)
_MARKUP = re.compile(r"\*\*|__|`")
_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")


def split_front_matter(markdown: str) -> Tuple[Dict[str, Any], str]:
    """Separate YAML front matter from the markdown body.

    Malformed front matter is logged and the whole card is treated as body.
    """
    try:
        card = ModelCard(markdown, ignore_metadata_errors=True)
    except (yaml.YAMLError, ValueError) as e:
        logger.warning("Ignoring malformed model card front matter: %s", e)
        return {}, markdown
    return card.data.to_dict(), card.text


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    text = str(value).strip()
    return [text] if text else []


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _clean(text: str) -> str:
    return _MARKUP.sub("", _LINK.sub(r"\1", text)).strip()


def _decode(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def _apply_front_matter(metadata: ExtractedMetadata, front: Dict[str, Any]) -> None:
    metadata.name = _as_text(front.get("model_name") or front.get("name"))
    metadata.provider = _as_text(front.get("provider") or front.get("model_provider"))
    metadata.description = _as_text(front.get("description"))

    license_id = _as_text(front.get("license"))
    if license_id == "other" and front.get("license_name"):
        license_id = _as_text(front.get("license_name"))
    if license_id:
        metadata.license = get_human_readable_license_name(license_id)
        metadata.license_link = _as_text(front.get("license_link")) or (
            get_license_url(license_id) or None
        )

    metadata.language = _as_list(front.get("language"))
    metadata.tasks = _as_list(front.get("pipeline_tag") or front.get("tasks"))


def parse_flags(content: bytes) -> ExtractedMetadata:
    """Metadata declared in the model card's front matter only."""
    front, _ = split_front_matter(_decode(content))
    metadata = ExtractedMetadata()
    _apply_front_matter(metadata, front)
    return metadata


def _first_paragraph(text: str) -> Optional[str]:
    lines: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line:
            if lines:
                break
            continue
        if line.startswith(("#", "|", "!", "<", "```", "- ", "* ", ">")) or line == "---":
            if lines:
                break
            continue
        lines.append(line)
    return _clean(" ".join(lines)) if lines else None


def _description(body: str, title_end: int) -> Optional[str]:
    summary = _SUMMARY_HEADING.search(body)
    if summary:
        paragraph = _first_paragraph(body[summary.end():])
        if paragraph:
            return paragraph
    return _first_paragraph(body[title_end:])


def parse_values(content: bytes) -> ExtractedMetadata:
    """Full metadata from a model card: front matter plus body fields.

    Front matter values win; the body fills what it leaves unset. The whole
    card is kept as ``readme``.
    """
    markdown = _decode(content)
    front, body = split_front_matter(markdown)

    metadata = ExtractedMetadata(readme=markdown)
    _apply_front_matter(metadata, front)

    title = _TITLE.search(body)
    if metadata.name is None and title:
        metadata.name = _clean(title.group(1)) or None

    if metadata.provider is None:
        provider = _PROVIDER.search(body)
        if provider:
            metadata.provider = _clean(provider.group(1)) or None

    if metadata.description is None:
        metadata.description = _description(body, title.end() if title else 0)

    return metadata
