"""Collector configuration and models index loading."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Dict, List, Optional, Tuple

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .core.types import DOC_LAYER_ANNOTATION, DOC_LAYER_VALUE, ModelEntry
from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
DEFAULT_MAX_CONCURRENT = 5


class CollectorSettings(BaseSettings):
    """``MMC_*`` environment variables; unset fields leave the defaults alone."""

    model_config = SettingsConfigDict(
        env_prefix="MMC_",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
    )

    output_dir: Optional[Path] = None
    max_concurrent: Optional[int] = None
    timeout: Optional[float] = None
    # comma separated hosts
    insecure_registries: Annotated[List[str], NoDecode] = Field(default_factory=list)

    @field_validator("insecure_registries", mode="before")
    @classmethod
    def split_hosts(cls, value):
        if isinstance(value, str):
            return [host.strip() for host in value.split(",") if host.strip()]
        return value


@dataclass
class CollectorConfig:
    """Settings for one collection run.

    Passed explicitly to the coordinator and every worker; nothing here is
    read from module-level state.
    """

    output_dir: Path = Path("output")
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    timeout: float = DEFAULT_TIMEOUT
    doc_layer_annotation: str = DOC_LAYER_ANNOTATION
    doc_layer_value: str = DOC_LAYER_VALUE
    doc_extension: str = ".md"
    platform: str = "linux/amd64"
    insecure_registries: List[str] = field(default_factory=list)
    credentials: Dict[str, Tuple[str, str]] = field(default_factory=dict)
    docker_config_path: Optional[Path] = None

    def __post_init__(self) -> None:
        self.output_dir = Path(self.output_dir)

    @classmethod
    def from_env(cls, **overrides) -> "CollectorConfig":
        """Build a config from ``MMC_*`` environment variables.

        Keyword arguments that are not None take precedence over the
        environment.

        Raises:
            ConfigError: If an environment variable does not validate
        """
        try:
            settings = CollectorSettings()
        except ValidationError as e:
            raise ConfigError(f"Invalid MMC_* environment configuration: {e}") from e

        values: Dict = settings.model_dump(exclude_none=True)
        if not values.get("insecure_registries"):
            values.pop("insecure_registries", None)
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def load_models_index(path: Path) -> List[ModelEntry]:
    """Load model entries from a models index YAML file.

    The file holds either a ``models:`` list or a bare list of
    ``{type, uri, labels}`` mappings. Entries of a type other than ``oci``
    are skipped.

    Args:
        path: Path to the index file

    Returns:
        Model entries in file order

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read models index {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse models index {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("models")
    if not isinstance(data, list):
        raise ConfigError(f"Models index {path} must contain a list of models")

    entries: List[ModelEntry] = []
    for i, item in enumerate(data):
        if isinstance(item, str):
            item = {"uri": item}
        if not isinstance(item, dict) or not item.get("uri"):
            raise ConfigError(f"Model at index {i} in {path} is missing 'uri'")

        model_type = item.get("type", "oci")
        if model_type != "oci":
            logger.warning(
                "Skipping model %s with unsupported type %r", item["uri"], model_type
            )
            continue

        labels = item.get("labels") or []
        if not isinstance(labels, list):
            raise ConfigError(f"Model {item['uri']} has non-list 'labels'")

        entries.append(
            ModelEntry(
                uri=str(item["uri"]),
                type=model_type,
                labels=[str(label) for label in labels],
            )
        )

    logger.info("Loaded %d models from %s", len(entries), path)
    return entries
