"""Persistence layer.

SQLite database management and a typed read/write store for the daily
snapshot series, the latest circulation record and processor progress.
"""

from circulation.data.database import CirculationDatabase
from circulation.data.store import CirculationStore

__all__ = ["CirculationDatabase", "CirculationStore"]
