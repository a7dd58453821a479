# Overview: Model package exports for SQLAlchemy entities.

from .store import AppStoreEntry

__all__ = ["AppStoreEntry"]
