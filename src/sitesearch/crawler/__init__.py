"""
Crawler модуль - обход и индексация сайтов
"""
from .paths import normalize_path, page_url, find_site_config
from .fetcher import PageFetcher, PageHttpError, UnsupportedContentError
from .analyzer import CrawlContext, PageAnalyzer
from .manager import CrawlManager, CrawlState

__all__ = [
    "normalize_path",
    "page_url",
    "find_site_config",
    "PageFetcher",
    "PageHttpError",
    "UnsupportedContentError",
    "CrawlContext",
    "PageAnalyzer",
    "CrawlManager",
    "CrawlState",
]
