"""
Управление индексацией: запуск и остановка обхода сайтов,
переиндексация отдельной страницы
"""
import asyncio
import logging
import random
import time
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from ..core.config import SiteConfig, CrawlerConfig
from ..core.interfaces import IStore, IPageFetcher, ICache
from ..core.locks import KeyedLocks
from ..core.models import Site, Page, IndexingStatus, IndexingResponse, PROCESSING_CODE
from ..search.indexer import IndexMaintainer
from ..search.lemmas import LemmasFinder
from .analyzer import CrawlContext, PageAnalyzer
from .paths import find_site_config, normalize_path

logger = logging.getLogger(__name__)

STOPPED_BY_USER = "Indexing stopped by user"


class CrawlState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class CrawlManager:
    """
    Управление индексацией

    Одновременно идёт не больше одного обхода. Запуск, остановка и
    переиндексация страницы выполняются под общей блокировкой.
    """

    def __init__(
        self,
        sites: Sequence[SiteConfig],
        crawler: CrawlerConfig,
        store: IStore,
        fetcher: IPageFetcher,
        finder: LemmasFinder,
        indexer: IndexMaintainer,
        locks: KeyedLocks,
        cache: Optional[ICache] = None,
        rng: random.Random = None,
    ):
        self.sites = list(sites)
        self.crawler = crawler
        self.store = store
        self.fetcher = fetcher
        self.finder = finder
        self.indexer = indexer
        self.locks = locks
        self.cache = cache
        self.rng = rng or random.Random()

        self._lock = asyncio.Lock()
        self._workers = asyncio.Semaphore(crawler.max_workers)
        self._state = CrawlState.IDLE

        # Задачи главных страниц текущего обхода
        self._roots: List[PageAnalyzer] = []
        self._contexts: Dict[str, CrawlContext] = {}
        self._crawl_task: Optional[asyncio.Task] = None
        self._stop_task: Optional[asyncio.Task] = None

        # Фоновые переиндексации отдельных страниц
        self._page_tasks: Set[asyncio.Task] = set()

    @property
    def state(self) -> CrawlState:
        return self._state

    @property
    def is_indexing(self) -> bool:
        return self._state != CrawlState.IDLE

    def _make_context(self, site: Site) -> CrawlContext:
        return CrawlContext(
            site=site,
            store=self.store,
            fetcher=self.fetcher,
            finder=self.finder,
            indexer=self.indexer,
            locks=self.locks,
            crawler=self.crawler,
            workers=self._workers,
            rng=self.rng,
        )

    # ========== START ==========

    async def start_indexing(self) -> IndexingResponse:
        """Полная индексация всех сайтов из настроек"""
        async with self._lock:
            if self._state == CrawlState.RUNNING:
                return IndexingResponse.fail("Indexing is already running", conflict=True)
            if self._state == CrawlState.STOPPING:
                return IndexingResponse.fail("Previous indexing is still stopping", conflict=True)

            await self._cancel_page_tasks()

            # Старые данные удаляются вместе со страницами, леммами и индексами
            old_sites = await self.store.get_sites_by_urls([s.url for s in self.sites])
            if old_sites:
                await self.store.delete_sites([s.id for s in old_sites])

            roots = []
            contexts = {}
            for site_config in self.sites:
                site = await self.store.save_site(Site(url=site_config.url, name=site_config.name))
                root_page = (await self.store.insert_pages([Page(site_id=site.id, path="/")]))[0]

                context = self._make_context(site)
                contexts[site.url] = context
                roots.append(PageAnalyzer(context, root_page))

            await self._invalidate_cache()

            self._state = CrawlState.RUNNING
            self._roots = roots
            self._contexts = contexts
            for root in roots:
                root.fork()
            self._crawl_task = asyncio.create_task(self._run(roots), name="crawl")

        logger.info(f"[Manager] Indexing of {len(roots)} sites started")
        return IndexingResponse.ok()

    async def _run(self, roots: List[PageAnalyzer]) -> None:
        start = time.time()
        if roots:
            await asyncio.wait([root.task for root in roots])

        for root in roots:
            if not root.task.cancelled() and root.task.exception() is not None:
                logger.error(
                    f"[Manager] Indexing of {root.context.site.url} failed: {root.task.exception()}"
                )

        async with self._lock:
            if self._state != CrawlState.RUNNING or self._roots is not roots:
                # Остановкой занимается stop_indexing
                return
            self._state = CrawlState.IDLE
            self._roots = []
            self._contexts = {}

        await self._invalidate_cache()
        logger.info(f"[Manager] Indexing finished in {int((time.time() - start) * 1000)} ms")

    # ========== STOP ==========

    async def stop_indexing(self) -> IndexingResponse:
        """Остановить текущую индексацию"""
        async with self._lock:
            if self._state == CrawlState.IDLE:
                return IndexingResponse.fail("Indexing is not running", conflict=True)
            if self._state == CrawlState.STOPPING:
                return IndexingResponse.fail("Indexing is already stopping", conflict=True)

            self._state = CrawlState.STOPPING
            self._stop_task = asyncio.create_task(self._stop(self._roots), name="crawl-stop")

        logger.info("[Manager] Stopping indexing")
        return IndexingResponse.ok()

    async def _stop(self, roots: List[PageAnalyzer]) -> None:
        start = time.time()
        try:
            # Каждая задача дожидается отмены всего своего поддерева
            for root in roots:
                await root.cancel()

            for root in roots:
                await self._mark_stopped(root.context)
        finally:
            async with self._lock:
                self._state = CrawlState.IDLE
                self._roots = []
                self._contexts = {}

            await self._invalidate_cache()

        logger.info(f"[Manager] Indexing stopped in {int((time.time() - start) * 1000)} ms")

    async def _mark_stopped(self, context: CrawlContext) -> None:
        site = context.site
        async with self.locks.site_row(site.id):
            if site.status != IndexingStatus.INDEXING:
                return
            site.status = IndexingStatus.FAILED
            site.last_error = STOPPED_BY_USER
            site.status_time = datetime.now()
            await self.store.save_site(site)

    # ========== SINGLE PAGE ==========

    async def index_page(self, url: Optional[str]) -> IndexingResponse:
        """
        Переиндексировать одну страницу

        Старые леммы и индексы страницы удаляются сразу, загрузка и
        индексация выполняются в фоне.
        """
        if url is None or not url.strip():
            return IndexingResponse.fail("URL is not specified")

        url = url.strip().lower()
        site_config = find_site_config(self.sites, url)
        if site_config is None:
            return IndexingResponse.fail(
                "The page is outside the sites listed in the configuration"
            )

        path = normalize_path(site_config.url, url)

        async with self._lock:
            context = self._contexts.get(site_config.url)
            created = False

            if context is None:
                site = await self.store.get_site_by_url(site_config.url)
                if site is None:
                    # Общий обход не запускался, статус сайта определяется этой страницей
                    site = await self.store.save_site(
                        Site(url=site_config.url, name=site_config.name)
                    )
                    created = True
                context = self._make_context(site)

            old_page = await self.store.get_page(context.site.id, path)
            if old_page is not None and old_page.code == PROCESSING_CODE:
                # Страница уже ожидает обработки
                return IndexingResponse.ok()

            if old_page is not None:
                await self.indexer.remove_page(old_page)

            async with self.locks.site(context.site.id):
                page = (await self.store.insert_pages([Page(site_id=context.site.id, path=path)]))[0]

            task = asyncio.create_task(
                self._reindex_page(context, page, created), name=f"index-page:{url}"
            )
            self._page_tasks.add(task)
            task.add_done_callback(self._page_tasks.discard)

        logger.info(f"[Manager] Indexing of page {url} started")
        return IndexingResponse.ok()

    async def _reindex_page(self, context: CrawlContext, page: Page, created: bool) -> None:
        start = time.time()
        analyzer = PageAnalyzer(context, page, standalone=True)
        try:
            async with context.workers:
                await analyzer.analyze_page()

            if created:
                await context.mark_indexed()
        except Exception as e:
            await analyzer.register_error(e)
        finally:
            await self._invalidate_cache()

        logger.info(
            f"[Manager] Page {context.url_of(page)} indexed in {int((time.time() - start) * 1000)} ms"
        )

    async def _cancel_page_tasks(self) -> None:
        tasks = list(self._page_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    # ========== LIFECYCLE ==========

    async def wait(self) -> None:
        """Дождаться завершения текущего обхода, остановки и переиндексаций"""
        tasks = [t for t in (self._crawl_task, self._stop_task) if t is not None]
        tasks.extend(self._page_tasks)
        if tasks:
            await asyncio.wait(tasks)

    async def shutdown(self) -> None:
        """Отменить все фоновые задачи"""
        async with self._lock:
            roots = self._roots
            self._roots = []
            self._contexts = {}
            self._state = CrawlState.IDLE

        for root in roots:
            await root.cancel()
        await self._cancel_page_tasks()

        for task in (self._crawl_task, self._stop_task):
            if task is not None and not task.done():
                task.cancel()
                await asyncio.wait([task])

    async def _invalidate_cache(self) -> None:
        if self.cache is None:
            return
        try:
            removed = await self.cache.invalidate()
            logger.debug(f"[Manager] Search cache invalidated: {removed} entries")
        except Exception as e:
            logger.warning(f"[Manager] Search cache invalidation failed: {e}")
