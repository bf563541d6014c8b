"""Control plane for change-data-capture jobs."""

__version__ = "0.1.0"
