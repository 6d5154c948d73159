"""
Worker module.
Contains the long-running queue worker.
"""

from ingest_queue.worker.main import Worker, run

__all__ = ["Worker", "run"]
