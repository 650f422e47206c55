"""Utility modules for the Docker action executor."""

from .logging import setup_logging, get_logger, log_stage

__all__ = [
    "setup_logging",
    "get_logger",
    "log_stage",
]
