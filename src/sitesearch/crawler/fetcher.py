"""
Загрузка страниц сайтов
"""
import logging
from typing import Optional

import aiohttp

from ..core.config import CrawlerConfig
from ..core.interfaces import IPageFetcher, FetchResult

logger = logging.getLogger(__name__)


class PageHttpError(Exception):
    """Сервер вернул код ошибки. Не ошибка программы, код сохраняется у страницы"""

    def __init__(self, status: int, url: str = ""):
        super().__init__(f"HTTP {status}: {url}")
        self.status = status
        self.url = url


class UnsupportedContentError(Exception):
    """По ссылке не страница, а, например, картинка"""

    def __init__(self, content_type: str, url: str = ""):
        super().__init__(f"Unsupported content type '{content_type}': {url}")
        self.content_type = content_type
        self.url = url


def is_supported_content(content_type: str) -> bool:
    """HTML, XHTML, XML и текст"""
    content_type = (content_type or "").lower()
    if not content_type:
        # Сервер не указал тип - пробуем разобрать как HTML
        return True
    return (
        content_type.startswith("text/")
        or content_type in ("application/xml", "application/xhtml+xml")
        or content_type.endswith("+xml")
    )


class PageFetcher(IPageFetcher):
    """
    Загрузчик страниц на aiohttp

    Одна сессия на все запросы, редиректы выполняются автоматически.
    """

    def __init__(self, crawler: CrawlerConfig):
        self.crawler = crawler
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.crawler.fetch_timeout),
                headers={
                    "User-Agent": self.crawler.user_agent,
                    "Referer": self.crawler.referer,
                },
            )
        return self._session

    async def fetch(self, url: str) -> FetchResult:
        session = self._get_session()

        async with session.get(url, allow_redirects=True) as response:
            if response.status >= 400:
                raise PageHttpError(response.status, url)

            content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
            if not is_supported_content(content_type):
                raise UnsupportedContentError(content_type, url)

            html = await response.text(errors="replace")
            return FetchResult(status=response.status, html=html, content_type=content_type)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
