"""
API module.
Contains the FastAPI application and routes.
"""

from ingest_queue.api.main import create_app, run

__all__ = ["create_app", "run"]
