"""
Обход сайта

Каждая страница обрабатывается своей задачей PageAnalyzer. Задача загружает
страницу, индексирует её леммы, находит новые ссылки и запускает дочерние
задачи для новых страниц. Ошибка, после которой продолжать индексацию сайта
нельзя, переводит сайт в FAILED, и все задачи сайта останавливаются
при ближайшей проверке.
"""
import asyncio
import logging
import random
import re
from datetime import datetime
from typing import List, Optional

from bs4 import BeautifulSoup

from ..core.config import CrawlerConfig
from ..core.interfaces import IStore, IPageFetcher
from ..core.locks import KeyedLocks
from ..core.models import Site, Page, IndexingStatus, UNSUPPORTED_CODE, ERROR_CODE
from ..search.indexer import IndexMaintainer
from ..search.lemmas import LemmasFinder
from .fetcher import PageHttpError, UnsupportedContentError
from .paths import normalize_path, page_url

logger = logging.getLogger(__name__)


class CrawlContext:
    """
    Общие данные задач одного сайта

    Объект Site общий для всех задач сайта: его статус FAILED служит
    сигналом остановки для всех задач.
    """

    def __init__(
        self,
        site: Site,
        store: IStore,
        fetcher: IPageFetcher,
        finder: LemmasFinder,
        indexer: IndexMaintainer,
        locks: KeyedLocks,
        crawler: CrawlerConfig,
        workers: asyncio.Semaphore,
        rng: random.Random = None,
    ):
        self.site = site
        self.store = store
        self.fetcher = fetcher
        self.finder = finder
        self.indexer = indexer
        self.locks = locks
        self.crawler = crawler
        self.workers = workers
        self.rng = rng or random.Random()

    @property
    def stopped(self) -> bool:
        return self.site.indexing_failed

    def url_of(self, page: Page) -> str:
        return page_url(self.site.url, page.path)

    async def touch(self) -> None:
        """Обновить время статуса сайта"""
        async with self.locks.site_row(self.site.id):
            self.site.status_time = datetime.now()
            await self.store.save_site(self.site)

    async def fail(self, error: str) -> None:
        """Остановить индексацию сайта с ошибкой"""
        async with self.locks.site_row(self.site.id):
            if self.site.indexing_failed:
                # Сохраняется первая ошибка, остальные - её следствия
                logger.warning(f"[Crawler] {self.site.url} - {error}")
                return

            logger.error(f"[Crawler] {self.site.url} - {error}")
            self.site.status = IndexingStatus.FAILED
            self.site.last_error = error
            self.site.status_time = datetime.now()
            await self.store.save_site(self.site)

    async def mark_indexed(self) -> bool:
        async with self.locks.site_row(self.site.id):
            if self.site.status != IndexingStatus.INDEXING:
                return False

            self.site.status = IndexingStatus.INDEXED
            self.site.status_time = datetime.now()
            await self.store.save_site(self.site)

        logger.info(f"[Crawler] Indexing of {self.site.name} ({self.site.url}) is finished")
        return True


class PageAnalyzer:
    """
    Задача обработки одной страницы

    1. Пауза перед запросом к сайту
    2. Загрузка и сохранение страницы
    3. Индексация лемм
    4. Поиск новых страниц сайта и запуск дочерних задач
    5. Ожидание дочерних задач
    6. Для главной страницы - завершение индексации сайта

    Между шагами проверяется отмена задачи и статус сайта.
    """

    def __init__(self, context: CrawlContext, page: Page, standalone: bool = False):
        self.context = context
        self.page = page
        # Переиндексация одной страницы вне обхода: статус сайта не проверяется
        self.standalone = standalone
        self.children: List["PageAnalyzer"] = []
        self._cancelled = False
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def fork(self) -> "PageAnalyzer":
        """Запустить задачу в фоне"""
        self._task = asyncio.create_task(self.compute(), name=f"page:{self.page.path}")
        return self

    async def cancel(self) -> None:
        """
        Отменить задачу вместе со всеми дочерними

        После возврата ни одна задача поддерева не выполняется.
        """
        self._cancelled = True
        await self._cancel_children()

        if self._task is not None and not self._task.done():
            self._task.cancel()
            await asyncio.wait([self._task])

    async def _cancel_children(self) -> None:
        for child in self.children:
            await child.cancel()

    def _is_stopped(self) -> bool:
        return self._cancelled or (not self.standalone and self.context.stopped)

    async def _stopped(self) -> bool:
        """Проверка остановки. Остановленная задача отменяет дочерние"""
        if not self._is_stopped():
            return False

        await self._cancel_children()
        return True

    # ========== TASK ==========

    async def compute(self) -> None:
        try:
            if not await self._analyze_and_fork():
                return

            await self._join_children()

            if await self._stopped():
                return

            if self.page.is_root:
                await self.context.mark_indexed()

        except Exception as e:
            await self.register_error(e)

    async def _analyze_and_fork(self) -> bool:
        """Шаги, выполняемые в слоте обработчика. False - обход дальше не идёт"""
        async with self.context.workers:
            await self._pause()

            if await self._stopped():
                return False

            if not await self.analyze_page():
                if self.page.is_root and not self._is_stopped():
                    await self.context.fail(
                        f"{self.page.path}: main page has no content (code {self.page.code})"
                    )
                return False

            if await self._stopped():
                return False

            new_pages = await self._find_new_pages()
            await self._fork_children(new_pages)

        return True

    async def _pause(self) -> None:
        """Пауза между запросами к одному сайту"""
        crawler = self.context.crawler
        delay = crawler.requests_interval.delay_ms(self.context.rng)
        if delay <= 0:
            return

        async with self.context.locks.pacing(self.context.site.id):
            await asyncio.sleep(delay / 1000)

    async def analyze_page(self) -> bool:
        """
        Загрузить страницу и проиндексировать её леммы

        Returns:
            True, если у страницы есть содержимое для разбора
        """
        html = await self._fetch_page()
        if html is None or self._is_stopped():
            return False

        lemmas = await asyncio.to_thread(self.context.finder.find_lemmas_in_html, html)

        if self._is_stopped():
            return False

        try:
            await self.context.indexer.commit(self.page, lemmas, self._is_stopped)
        except Exception as e:
            logger.exception(f"[Crawler] Failed to save lemmas of {self.context.url_of(self.page)}")
            await self.context.fail(f"{self.page.path}: {e}")
            return False

        return self.page.can_be_parsed

    async def _fetch_page(self) -> Optional[str]:
        url = self.context.url_of(self.page)

        try:
            result = await self.context.fetcher.fetch(url)
        except PageHttpError as e:
            logger.info(f"[Crawler] {url}: HTTP {e.status}")
            await self._save_page(e.status, "")
            await self.context.touch()
            return None
        except UnsupportedContentError as e:
            logger.info(f"[Crawler] {url}: unsupported content type '{e.content_type}'")
            await self._save_page(UNSUPPORTED_CODE, "")
            await self.context.touch()
            return None
        except Exception as e:
            await self.register_error(e)
            return None

        if self._is_stopped():
            return None

        await self._save_page(result.status, result.html)
        await self.context.touch()
        return result.html

    async def _save_page(self, code: int, content: str) -> None:
        async with self.context.locks.page(self.page.id):
            self.page.code = code
            self.page.content = content
            await self.context.store.save_page(self.page)

    async def register_error(self, error: Exception) -> None:
        """Непредвиденная ошибка: код 500 у страницы, сайт в FAILED"""
        logger.error(f"[Crawler] {self.context.url_of(self.page)}: {error}")
        await self._save_page(ERROR_CODE, self.page.content)
        await self.context.fail(f"{self.page.path}: {error}")

    # ========== NEW PAGES ==========

    def _find_links(self) -> List[str]:
        """
        Пути ссылок страницы на этот же сайт

        Ссылка начинается с адреса сайта или с "/" и не содержит "#"
        """
        site_url = self.context.site.url
        pattern = re.compile(rf"^({re.escape(site_url)}|/)[^#]*$", re.IGNORECASE)
        soup = BeautifulSoup(self.page.content, "html.parser")

        paths = []
        for link in soup.find_all("a", href=True):
            href = link["href"].strip()
            if not pattern.match(href):
                continue
            path = normalize_path(site_url, href)
            if path not in paths:
                paths.append(path)
        return paths

    async def _find_new_pages(self) -> List[Page]:
        paths = await asyncio.to_thread(self._find_links)
        if not paths or await self._stopped():
            return []

        site = self.context.site
        async with self.context.locks.site(site.id):
            existing = await self.context.store.find_existing_paths(site.id, paths)
            new_pages = [Page(site_id=site.id, path=path) for path in paths if path not in existing]

            if not new_pages or self._is_stopped():
                return []

            new_pages = await self.context.store.insert_pages(new_pages)

        await self.context.touch()
        logger.debug(f"[Crawler] {self.context.url_of(self.page)}: {len(new_pages)} new pages")
        return new_pages

    async def _fork_children(self, pages: List[Page]) -> None:
        for page in pages:
            if await self._stopped():
                return
            self.children.append(PageAnalyzer(self.context, page).fork())

    async def _join_children(self) -> None:
        for child in self.children:
            # Отмена дочерней задачи не прерывает ожидание остальных
            await asyncio.wait([child.task])

            if not child.task.cancelled() and child.task.exception() is not None:
                await self._register_child_error(child, child.task.exception())

            if await self._stopped():
                return

    async def _register_child_error(self, child: "PageAnalyzer", error: BaseException) -> None:
        logger.error(f"[Crawler] Task of {self.context.url_of(child.page)} failed: {error}")
        await self._save_page(ERROR_CODE, self.page.content)
        await self.context.fail(f"{child.page.path}: {error}")
