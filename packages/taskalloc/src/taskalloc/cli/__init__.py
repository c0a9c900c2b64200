"""Command-line helpers for the allocation engine."""

from .allocate import main as run_allocate

__all__ = ["run_allocate"]
