"""
Core модуль - модели, интерфейсы, конфигурация
"""
from .models import (
    Site,
    Page,
    Lemma,
    Index,
    IndexDiff,
    IndexingStatus,
    IndexingResponse,
    SearchData,
    SearchResponse,
    StatisticsResponse,
    PROCESSING_CODE,
    UNSUPPORTED_CODE,
    ERROR_CODE,
)

from .interfaces import (
    IStore,
    IMorphology,
    IPageFetcher,
    ICache,
    FetchResult,
)

from .config import Config, SiteConfig, config
from .locks import KeyedLocks

__all__ = [
    # Models
    "Site",
    "Page",
    "Lemma",
    "Index",
    "IndexDiff",
    "IndexingStatus",
    "IndexingResponse",
    "SearchData",
    "SearchResponse",
    "StatisticsResponse",
    "PROCESSING_CODE",
    "UNSUPPORTED_CODE",
    "ERROR_CODE",

    # Interfaces
    "IStore",
    "IMorphology",
    "IPageFetcher",
    "ICache",
    "FetchResult",

    # Config
    "Config",
    "SiteConfig",
    "config",
    "KeyedLocks",
]
