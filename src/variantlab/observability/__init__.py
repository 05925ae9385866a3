"""Observability module for variantlab.

Provides structured logging and the JSONL generator-call log.
"""

from variantlab.observability.call_log import GenerationCallLogger, GenerationLogEntry
from variantlab.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
    get_logs_dir,
)

__all__ = [
    "GenerationCallLogger",
    "GenerationLogEntry",
    "close_file_logging",
    "configure_logging",
    "get_logger",
    "get_logs_dir",
]
