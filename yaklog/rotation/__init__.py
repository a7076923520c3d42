"""Size-based rotating log file writer with compression and retention limits."""

__all__ = ["options", "writer"]