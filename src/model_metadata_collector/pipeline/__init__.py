"""Concurrent model card extraction pipeline."""

from .aggregator import build_manifest, write_manifest
from .coordinator import collect, process_models
from .worker import ModelWorker, WorkerState

__all__ = [
    "build_manifest",
    "write_manifest",
    "collect",
    "process_models",
    "ModelWorker",
    "WorkerState",
]
