"""GetIcon: find the best icon for any website."""

__version__ = "0.1.0"
