"""
Command line interface for the model metadata collector.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import click

from .catalog import create_models_catalog, load_static_catalogs
from .config import CollectorConfig, load_models_index
from .core.auth import load_docker_credentials
from .exceptions import CollectorError
from .pipeline import collect

logger = logging.getLogger(__name__)

DEFAULT_INPUT = Path("data/models-index.yaml")
DEFAULT_CATALOG = Path("data/models-catalog.yaml")
DEFAULT_STATIC_CATALOG = Path("input/supplemental-catalog.yaml")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _static_catalog_paths(
    static_catalog_files: Optional[str], skip_default: bool
) -> List[Path]:
    paths = []
    if not skip_default and DEFAULT_STATIC_CATALOG.exists():
        paths.append(DEFAULT_STATIC_CATALOG)
    if static_catalog_files:
        paths.extend(
            Path(p.strip()) for p in static_catalog_files.split(",") if p.strip()
        )
    return paths


@click.command()
@click.option(
    "--input",
    "-i",
    "input_path",
    type=click.Path(path_type=Path),
    default=DEFAULT_INPUT,
    show_default=True,
    help="Models index YAML file",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory for extracted metadata [default: output]",
)
@click.option(
    "--catalog-output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CATALOG,
    show_default=True,
    help="Path of the generated models catalog",
)
@click.option(
    "--max-concurrent",
    type=int,
    default=None,
    help="Maximum number of models processed at once [default: 5]",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Timeout in seconds for each registry call [default: 60]",
)
@click.option("--skip-catalog", is_flag=True, help="Do not generate the models catalog")
@click.option(
    "--static-catalog-files",
    default=None,
    help="Comma separated static catalog files to merge into the catalog",
)
@click.option(
    "--skip-default-static-catalog",
    is_flag=True,
    help=f"Do not merge {DEFAULT_STATIC_CATALOG} even if it exists",
)
@click.option(
    "--insecure-registry",
    "insecure_registries",
    multiple=True,
    help="Registry host to reach over plain HTTP (repeatable)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
)
def cli(
    input_path: Path,
    output_dir: Optional[Path],
    catalog_output: Path,
    max_concurrent: Optional[int],
    timeout: Optional[float],
    skip_catalog: bool,
    static_catalog_files: Optional[str],
    skip_default_static_catalog: bool,
    insecure_registries: Tuple[str, ...],
    log_level: str,
):
    """
    Extract model cards from OCI model images.

    Reads the models index, processes every image concurrently, writes
    per-model metadata and ``manifests.yaml``, then builds the models
    catalog.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = CollectorConfig.from_env(
            output_dir=output_dir,
            max_concurrent=max_concurrent,
            timeout=timeout,
            insecure_registries=list(insecure_registries) or None,
        )
        config.credentials = {
            **load_docker_credentials(config.docker_config_path),
            **config.credentials,
        }
        entries = load_models_index(input_path)
    except CollectorError as e:
        raise click.ClickException(str(e)) from e

    try:
        manifest = asyncio.run(collect(entries, config))
    except OSError as e:
        raise click.ClickException(f"Failed to write manifest: {e}") from e

    found = sum(1 for result in manifest.models if result.model_card_found)
    click.echo(
        f"Processed {len(manifest.models)} models ({found} with model cards) "
        f"into {config.output_dir}"
    )

    if skip_catalog:
        return

    static_models = load_static_catalogs(
        _static_catalog_paths(static_catalog_files, skip_default_static_catalog)
    )
    try:
        path = create_models_catalog(config.output_dir, catalog_output, static_models)
    except CollectorError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Catalog written to {path}")


def main():
    """
    Main entry point for the CLI.
    """
    cli()


if __name__ == "__main__":
    main()
