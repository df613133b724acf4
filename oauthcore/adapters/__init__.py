"""Capability adapters consumed by the core.

The core never performs I/O or cryptography itself. It calls a storage
adapter, an HTTP adapter and a PKCE adapter supplied at construction.
Reference implementations are provided for in-process use and tests.
"""

from .base import HttpAdapter, OAuthAdapters, PKCEAdapter, StorageAdapter
from .httpx_adapter import HttpxAdapter
from .memory import MemoryStorageAdapter
from .pkce import SecretsPKCEAdapter


__all__ = [
    "HttpAdapter",
    "HttpxAdapter",
    "MemoryStorageAdapter",
    "OAuthAdapters",
    "PKCEAdapter",
    "SecretsPKCEAdapter",
    "StorageAdapter",
]
