"""
Reaper module.
Contains the stale claim reaper.
"""

from ingest_queue.reaper.main import Reaper, run

__all__ = ["Reaper", "run"]
