"""Storage abstraction for job status snapshots."""

from .base import StatusStoreBase, get_status_store

__all__ = ["StatusStoreBase", "get_status_store"]
