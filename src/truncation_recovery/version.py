"""Version information for truncation-recovery."""

__version__ = "0.3.0"
