"""
Repositories package - Data access layer.

Owns the on-disk layout of the card image cache so services never touch paths directly.
"""

from repositories.card_cache_repository import (
    CardCacheRepository,
    ImageWriteError,
    KeyStatus,
)

__all__ = [
    "CardCacheRepository",
    "ImageWriteError",
    "KeyStatus",
]
