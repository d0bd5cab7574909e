"""Observability utilities for the knowledge interview workflow."""
from .logger import log_event
from .tracing import span

__all__ = ["log_event", "span"]
