"""Merge extracted metadata and static catalogs into ``models-catalog.yaml``."""

import base64
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import yaml

from .exceptions import CatalogError
from .metadata.models import ExtractedMetadata
from .metadata.store import METADATA_FILENAME, dump_yaml

logger = logging.getLogger(__name__)

CATALOG_SOURCE = "Red Hat"
VALIDATED_TAG = "validated"

ASSETS_DIR = Path(__file__).parent / "assets"
MODEL_LOGO = "catalog-model.svg"
VALIDATED_MODEL_LOGO = "catalog-validated_model.svg"

FALLBACK_LOGO_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="100" height="100" '
    'viewBox="0 0 100 100">'
    '<circle cx="50" cy="50" r="40" fill="#888" stroke="#333" stroke-width="2"/>'
    '<text x="50" y="60" font-family="Arial, sans-serif" font-size="36" '
    'font-weight="bold" text-anchor="middle" fill="white">M</text>'
    "</svg>"
)

CatalogModel = Dict[str, Any]


def validate_static_catalog(catalog: Any) -> None:
    """Check the structure of a parsed static catalog.

    Raises:
        CatalogError: If ``source`` is missing or a model lacks a name or
            artifact URIs
    """
    if not isinstance(catalog, dict):
        raise CatalogError("static catalog must be a mapping")
    if not catalog.get("source"):
        raise CatalogError("static catalog missing required 'source' field")

    models = catalog.get("models") or []
    if not isinstance(models, list):
        raise CatalogError("static catalog 'models' must be a list")

    for i, model in enumerate(models):
        if not isinstance(model, dict) or not model.get("name"):
            raise CatalogError(f"model at index {i} missing required 'name' field")
        name = model["name"]

        artifacts = model.get("artifacts") or []
        if not artifacts:
            raise CatalogError(f"model '{name}' has no artifacts")
        for j, artifact in enumerate(artifacts):
            if not isinstance(artifact, dict) or not artifact.get("uri"):
                raise CatalogError(
                    f"model '{name}' artifact at index {j} missing required 'uri' field"
                )


def load_static_catalogs(paths: Iterable[Path]) -> List[CatalogModel]:
    """Load models from static catalog files.

    Missing, unreadable or invalid files are logged and skipped.

    Args:
        paths: Static catalog YAML files

    Returns:
        Models of all valid catalogs, in file order
    """
    static_models: List[CatalogModel] = []

    for path in paths:
        path = Path(path)
        logger.info("Loading static catalog: %s", path)
        if not path.exists():
            logger.warning("Static catalog file not found: %s", path)
            continue

        try:
            catalog = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            logger.error("Error reading static catalog file %s: %s", path, e)
            continue

        try:
            validate_static_catalog(catalog)
        except CatalogError as e:
            logger.error("Error validating static catalog file %s: %s", path, e)
            continue

        models = catalog.get("models") or []
        static_models.extend(models)
        logger.info("Loaded %d models from %s", len(models), path)

    logger.info("Total static models loaded: %d", len(static_models))
    return static_models


def _timestamp_str(value: Optional[int]) -> Optional[str]:
    return None if value is None else str(value)


def convert_tags_to_custom_properties(tags: Sequence[str]) -> Dict[str, Any]:
    """Map each tag to an empty ``MetadataStringValue`` custom property."""
    return {
        tag: {"metadataType": "MetadataStringValue", "string_value": ""}
        for tag in tags
        if tag
    }


def _svg_data_uri(svg: bytes) -> str:
    return "data:image/svg+xml;base64," + base64.b64encode(svg).decode("ascii")


def determine_logo(tags: Sequence[str]) -> str:
    """Return the logo data URI for a model, depending on its ``validated`` tag."""
    validated = any(str(tag).strip().lower() == VALIDATED_TAG for tag in tags)
    filename = VALIDATED_MODEL_LOGO if validated else MODEL_LOGO
    try:
        return _svg_data_uri((ASSETS_DIR / filename).read_bytes())
    except OSError as e:
        logger.warning("Failed to read logo %s, using fallback: %s", filename, e)
        return _svg_data_uri(FALLBACK_LOGO_SVG.encode("utf-8"))


def convert_to_catalog_model(metadata: ExtractedMetadata) -> CatalogModel:
    """Convert extracted metadata into its catalog form.

    Timestamps become strings; model timestamps fall back to those of the
    first artifact. Unset fields are omitted.
    """
    create_time = metadata.create_time_since_epoch
    update_time = metadata.last_update_time_since_epoch
    if metadata.artifacts:
        first = metadata.artifacts[0]
        if create_time is None:
            create_time = first.create_time_since_epoch
        if update_time is None:
            update_time = first.last_update_time_since_epoch

    artifacts = []
    for artifact in metadata.artifacts:
        item: Dict[str, Any] = {
            "uri": artifact.uri,
            "createTimeSinceEpoch": _timestamp_str(artifact.create_time_since_epoch),
            "lastUpdateTimeSinceEpoch": _timestamp_str(
                artifact.last_update_time_since_epoch
            ),
        }
        if artifact.custom_properties:
            item["customProperties"] = dict(artifact.custom_properties)
        artifacts.append({k: v for k, v in item.items() if v is not None})

    model: CatalogModel = {
        "name": metadata.name,
        "provider": metadata.provider,
        "description": metadata.description,
        "readme": metadata.readme,
        "language": metadata.language or None,
        "license": metadata.license,
        "licenseLink": metadata.license_link,
        "tasks": metadata.tasks or None,
        "createTimeSinceEpoch": _timestamp_str(create_time),
        "lastUpdateTimeSinceEpoch": _timestamp_str(update_time),
        "customProperties": convert_tags_to_custom_properties(metadata.tags) or None,
        "artifacts": artifacts or None,
        "logo": determine_logo(metadata.tags),
    }
    return {k: v for k, v in model.items() if v is not None}


def _name_key(model: CatalogModel) -> str:
    return str(model.get("name") or "").strip().lower()


def deduplicate_models(
    dynamic_models: Sequence[CatalogModel], static_models: Sequence[CatalogModel]
) -> List[CatalogModel]:
    """Append static models whose name is not taken yet.

    Names compare case-insensitively after trimming; dynamic models win
    over static ones, and the first static model wins among duplicates.
    Static models without a name are dropped.
    """
    seen = {_name_key(model) for model in dynamic_models}
    seen.discard("")

    result = list(dynamic_models)
    for model in static_models:
        key = _name_key(model)
        if not key:
            continue
        if key in seen:
            logger.info(
                "Skipping duplicate static model: %s (dynamic version takes precedence)",
                model.get("name"),
            )
            continue
        result.append(model)
        seen.add(key)
    return result


def _read_extracted(path: Path) -> Optional[ExtractedMetadata]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.error("Error reading %s: %s", path, e)
        return None
    if data is not None and not isinstance(data, dict):
        logger.error("Error parsing %s: not a mapping", path)
        return None
    try:
        return ExtractedMetadata.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        logger.error("Error parsing %s: %s", path, e)
        return None


def create_models_catalog(
    output_dir: Path,
    catalog_path: Path,
    static_models: Sequence[CatalogModel] = (),
) -> Path:
    """Build the models catalog from every ``metadata.yaml`` below ``output_dir``.

    Args:
        output_dir: Directory holding per-model metadata files
        catalog_path: Where to write the catalog
        static_models: Models from static catalogs, lower precedence

    Returns:
        Path of the written catalog

    Raises:
        CatalogError: If ``output_dir`` cannot be walked or the catalog
            cannot be written
    """
    output_dir = Path(output_dir)
    catalog_path = Path(catalog_path)
    if not output_dir.is_dir():
        raise CatalogError(f"Error walking directory: {output_dir} is not a directory")

    extracted: List[ExtractedMetadata] = []
    try:
        paths = sorted(output_dir.rglob(METADATA_FILENAME))
    except OSError as e:
        raise CatalogError(f"Error walking directory: {e}") from e

    for path in paths:
        logger.debug("Processing: %s", path)
        metadata = _read_extracted(path)
        if metadata is not None:
            extracted.append(metadata)

    extracted.sort(key=lambda m: m.name or "")
    models = [convert_to_catalog_model(m) for m in extracted]
    models = deduplicate_models(models, static_models)
    models.sort(key=lambda m: str(m.get("name") or ""))

    catalog = {"source": CATALOG_SOURCE, "models": models}
    try:
        catalog_path.parent.mkdir(parents=True, exist_ok=True)
        catalog_path.write_text(dump_yaml(catalog), encoding="utf-8")
    except OSError as e:
        raise CatalogError(f"Error writing catalog file: {e}") from e

    logger.info(
        "Created %s with %d dynamic models and %d static models",
        catalog_path,
        len(extracted),
        len(static_models),
    )
    return catalog_path
