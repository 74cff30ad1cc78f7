"""Storage subsystem: the string-keyed document store everything persists through."""

from .kv_store import KVStore

__all__ = ["KVStore"]
