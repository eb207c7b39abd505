"""Access gating and bootstrap security core."""

__version__ = "0.1.0"
