"""
Adapters layer - Data store integrations.
"""

from .json_store import JsonDataStore

__all__ = ["JsonDataStore"]
