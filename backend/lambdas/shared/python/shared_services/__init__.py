"""Service layer base classes and utilities."""

from .base_service import BaseService
from .store import RemoteStore, StoreResult

__all__ = [
    'BaseService',
    'RemoteStore',
    'StoreResult',
]
