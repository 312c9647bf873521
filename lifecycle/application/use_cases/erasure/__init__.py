"""Erasure and export use cases."""

from lifecycle.application.use_cases.erasure.export_assembler import ExportAssembler
from lifecycle.application.use_cases.erasure.lifecycle_service import (
    LifecycleService,
    build_lifecycle_service,
)
from lifecycle.application.use_cases.erasure.orchestrator import ErasureOrchestrator
from lifecycle.application.use_cases.erasure.worker import ErasureWorker

__all__ = [
    "ErasureOrchestrator",
    "ErasureWorker",
    "ExportAssembler",
    "LifecycleService",
    "build_lifecycle_service",
]
