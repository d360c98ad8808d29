"""Durable job queue and article revisions.

The worker lives in ``content_factory.jobs.worker`` and is imported from there
directly, since it depends on the stage processors.
"""

from content_factory.jobs.queue import JobQueue, validate_payload
from content_factory.jobs.revisions import create_revision, list_revisions

__all__ = [
    "JobQueue",
    "validate_payload",
    "create_revision",
    "list_revisions",
]
