"""
FastAPI приложение - управление индексацией, поиск, статистика
"""
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional
import redis.asyncio as redis
from contextlib import asynccontextmanager
from pydantic import BaseModel
import logging

from ..core.config import config
from ..core.interfaces import IStore, IPageFetcher, ICache
from ..core.locks import KeyedLocks
from ..core.models import IndexingResponse
from ..crawler.fetcher import PageFetcher
from ..crawler.manager import CrawlManager
from ..search.engine import SearchEngine
from ..search.indexer import IndexMaintainer
from ..search.lemmas import LemmasFinder
from ..search.snippet import SnippetBuilder
from .cache import RedisSearchCache
from .database import Database
from .statistics import StatisticsService
from .storage import MemoryStore

logger = logging.getLogger(__name__)


# Глобальные объекты
store: Optional[IStore] = None
fetcher: Optional[IPageFetcher] = None
redis_client = None
search_cache: Optional[ICache] = None
search_engine: Optional[SearchEngine] = None
crawl_manager: Optional[CrawlManager] = None
statistics_service: Optional[StatisticsService] = None


def init_services(
    new_store: IStore,
    new_fetcher: IPageFetcher,
    cache: Optional[ICache] = None,
    finder: Optional[LemmasFinder] = None,
) -> None:
    """Сборка компонентов сервиса над хранилищем и загрузчиком"""
    global store, fetcher, search_cache, search_engine, crawl_manager, statistics_service

    store = new_store
    fetcher = new_fetcher
    search_cache = cache
    finder = finder or LemmasFinder()
    locks = KeyedLocks()

    search_engine = SearchEngine(
        store,
        finder,
        SnippetBuilder(finder, config.search.words_range, config.search.spoiler_threshold),
        config.sites,
        cache=cache,
        cache_ttl=config.redis.search_cache_ttl,
    )
    crawl_manager = CrawlManager(
        config.sites,
        config.crawler,
        store,
        fetcher,
        finder,
        IndexMaintainer(store, locks),
        locks,
        cache=cache,
    )
    statistics_service = StatisticsService(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Инициализация и очистка ресурсов"""
    global redis_client

    if config.storage == "postgres":
        database = Database(config.database)
        await database.connect()
        new_store = database
    else:
        new_store = MemoryStore()

    cache = None
    if config.redis.enabled:
        redis_client = await redis.from_url(
            config.redis.url,
            encoding="utf-8",
            decode_responses=True
        )
        cache = RedisSearchCache(redis_client)

    init_services(new_store, PageFetcher(config.crawler), cache=cache)

    logger.info(
        f"✓ Site search initialized: {len(config.sites)} sites, storage={config.storage}, "
        f"cache={'redis' if cache else 'off'}"
    )

    yield

    await crawl_manager.shutdown()
    await fetcher.close()
    await store.close()
    if redis_client is not None:
        await redis_client.close()
    logger.info("✓ Connections closed")


# Создание приложения
app = FastAPI(
    title="Site Search API",
    description="Индексация сайтов и полнотекстовый поиск по ним",
    version="1.0.0",
    lifespan=lifespan
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============ HELPERS ============

def indexing_result(response: IndexingResponse) -> JSONResponse:
    """Отказ из-за состояния индексации - 409, ошибка в параметрах - 400"""
    if response.result:
        status_code = 200
    elif response.conflict:
        status_code = 409
    else:
        status_code = 400
    return JSONResponse(status_code=status_code, content=response.to_dict())


# ============ INDEXING ENDPOINTS ============

@app.get("/api/startIndexing")
async def start_indexing():
    """Запуск полной индексации всех сайтов"""
    return indexing_result(await crawl_manager.start_indexing())


@app.get("/api/stopIndexing")
async def stop_indexing():
    """Остановка текущей индексации"""
    return indexing_result(await crawl_manager.stop_indexing())


class IndexPageRequest(BaseModel):
    url: Optional[str] = None


@app.post("/api/indexPage")
async def index_page(data: IndexPageRequest):
    """Добавление или обновление отдельной страницы"""
    return indexing_result(await crawl_manager.index_page(data.url))


# ============ SEARCH ENDPOINT ============

@app.get("/api/search")
async def search(
    query: Optional[str] = Query(None, description="Поисковый запрос"),
    site: Optional[str] = Query(None, description="Сайт, по умолчанию - все сайты"),
    offset: int = Query(0),
    limit: Optional[int] = Query(None),
):
    """Поиск страниц"""
    if limit is None:
        limit = config.search.default_limit

    result = await search_engine.search(query, site=site, limit=limit, offset=offset)
    return JSONResponse(
        status_code=200 if result.result else 400,
        content=result.to_dict()
    )


# ============ STATISTICS ============

@app.get("/api/statistics")
async def statistics():
    """Статистика по сайтам"""
    result = await statistics_service.get_statistics()
    return result.to_dict()


# ============ HEALTH CHECK ============

@app.get("/health")
async def health():
    """Health check"""
    status = {"status": "healthy", "storage": config.storage}
    try:
        if isinstance(store, Database):
            await store.ping()
        if redis_client is not None:
            await redis_client.ping()
            status["redis"] = "connected"
        return status
    except Exception as e:
        logger.warning(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": str(e)}
        )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Site Search API",
        "version": "1.0.0",
        "docs": "/docs"
    }
