"""Structured logging building blocks: rotating file writer, samplers, hooks, sinks and encoding helpers."""

__version__ = "0.1.0"

__all__ = ["hooks", "rotation", "sampling", "sink", "util"]