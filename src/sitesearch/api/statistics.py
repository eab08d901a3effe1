"""
Статистика индексации
"""
import logging
import time

from ..core.interfaces import IStore
from ..core.models import (
    IndexingStatus, TotalStatistics, DetailedStatisticsItem, StatisticsResponse
)

logger = logging.getLogger(__name__)


class StatisticsService:
    """Сводка по сайтам, страницам и леммам хранилища"""

    def __init__(self, store: IStore):
        self.store = store

    async def get_statistics(self) -> StatisticsResponse:
        start = time.time()

        sites = await self.store.get_sites()
        pages = await self.store.count_pages()
        lemmas = await self.store.count_lemmas()

        total = TotalStatistics(
            sites=len(sites),
            pages=sum(pages.get(site.id, 0) for site in sites),
            lemmas=sum(lemmas.get(site.id, 0) for site in sites),
            indexing=any(site.status == IndexingStatus.INDEXING for site in sites),
        )

        detailed = [
            DetailedStatisticsItem(
                url=site.url,
                name=site.name,
                status=site.status,
                status_time=int(site.status_time.timestamp() * 1000),
                pages=pages.get(site.id, 0),
                lemmas=lemmas.get(site.id, 0),
                error=site.last_error,
            )
            for site in sites
        ]

        logger.debug(f"[Statistics] Built in {int((time.time() - start) * 1000)} ms")
        return StatisticsResponse(total=total, detailed=detailed)
