"""Telemetry for audiobook job execution.

This package emits deterministic job lifecycle logs.
"""

from .logger import JobLogger, format_context

__all__ = ["JobLogger", "format_context"]
