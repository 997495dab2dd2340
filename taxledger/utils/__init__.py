"""Utility modules."""

from .diagnostics import DiagnosticLog
from .logging import setup_logging

__all__ = ["DiagnosticLog", "setup_logging"]
