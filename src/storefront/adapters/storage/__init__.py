"""Storage adapters - Token persistence."""

from .file import FileTokenStore, MemoryTokenStore

__all__ = ["FileTokenStore", "MemoryTokenStore"]
