"""
Services package - Business logic layer.

This package exposes business services while avoiding heavy imports at module load time.
"""

from importlib import import_module
from typing import Any

__all__ = [
    "BulkCardSource",
    "CacheAnalysisService",
    "CacheMaintenanceService",
    "CardCacheService",
    "DownloadSchedulerService",
    "RemoteCardSource",
]

_LAZY_MODULES = {
    "BulkCardSource": "services.card_source_service",
    "RemoteCardSource": "services.card_source_service",
    "CacheAnalysisService": "services.cache_analysis_service",
    "CacheMaintenanceService": "services.cache_maintenance_service",
    "CardCacheService": "services.card_cache_service",
    "DownloadSchedulerService": "services.download_scheduler_service",
}


def __getattr__(name: str) -> Any:
    if name in _LAZY_MODULES:
        module = import_module(_LAZY_MODULES[name])
        value = getattr(module, name)
        globals()[name] = value
        return value

    raise AttributeError(f"module 'services' has no attribute '{name}'")
