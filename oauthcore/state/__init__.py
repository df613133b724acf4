"""Authentication status and loading state tracking."""

from .loading import CompletedOperation, LoadingManager
from .status import AuthStatusManager


__all__ = [
    "AuthStatusManager",
    "CompletedOperation",
    "LoadingManager",
]
