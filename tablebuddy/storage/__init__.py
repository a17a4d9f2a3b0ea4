"""
Storage layer - persistent table configuration store
"""

from tablebuddy.storage.config_store import SqliteConfigStore

__all__ = ["SqliteConfigStore"]
