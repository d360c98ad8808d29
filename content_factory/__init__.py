"""Content factory: keyword to finished article through a durable job queue."""

__version__ = "0.1.0"
