"""
Поисковый движок
"""
import asyncio
import hashlib
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.config import SiteConfig
from ..core.interfaces import IStore, ICache
from ..core.models import IndexingStatus, Page, Site, SearchData, SearchResponse
from .lemmas import LemmasFinder, html_to_text, title_of
from .snippet import SnippetBuilder

logger = logging.getLogger(__name__)


class SearchEngine:
    """
    Поиск страниц по леммам запроса

    Ранжирование:
    1. Сайт отбрасывается, если у него нет хотя бы одной леммы запроса
    2. Страницы пересекаются по леммам от самой редкой к самой частой
    3. Абсолютная релевантность - сумма рангов лемм на странице
    4. Относительная - абсолютная, делённая на максимальную
    """

    def __init__(
        self,
        store: IStore,
        finder: LemmasFinder,
        snippets: SnippetBuilder,
        sites: Sequence[SiteConfig],
        cache: Optional[ICache] = None,
        cache_ttl: int = 60,
    ):
        self.store = store
        self.finder = finder
        self.snippets = snippets
        self.sites = list(sites)
        self.cache = cache
        self.cache_ttl = cache_ttl

    async def search(
        self,
        query: str,
        site: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> SearchResponse:
        """
        Выполнить поиск

        Args:
            query: поисковый запрос
            site: адрес сайта из настроек или None для поиска по всем сайтам
            limit: размер страницы результатов
            offset: сдвиг от начала результатов
        """
        if query is None or not query.strip():
            return SearchResponse.fail("Empty search query")
        if limit <= 0:
            return SearchResponse.fail("Parameter limit must be greater than zero")
        if offset < 0:
            return SearchResponse.fail("Parameter offset must not be negative")

        if site:
            sites, error = await self._site_to_search(site)
        else:
            sites, error = await self._sites_to_search()
        if error:
            return SearchResponse.fail(error)

        cache_key = self._make_cache_key(query, site, limit, offset)
        if self.cache:
            cached = await self.cache.get_search_result(cache_key)
            if cached:
                logger.debug(f"[SEARCH] Cache hit for '{query}'")
                return cached

        lemmas = await asyncio.to_thread(self.finder.lemma_set, query)
        if not lemmas:
            return SearchResponse(result=True, count=0, data=[])

        relevance = await self._compute_relevance(sites, lemmas)
        ranked = self._rank(relevance)
        data = await self._search_data(ranked[offset:offset + limit], sites, lemmas)

        result = SearchResponse(result=True, count=len(ranked), data=data)
        logger.info(f"[SEARCH] '{query}': {len(ranked)} pages on {len(sites)} sites")

        if self.cache:
            await self.cache.set_search_result(cache_key, result, ttl=self.cache_ttl)

        return result

    async def _site_to_search(self, site_url: str) -> Tuple[List[Site], Optional[str]]:
        url = site_url.strip().lower()
        if url.endswith("/"):
            # Далее ожидается формат без слэша на конце
            url = url[:-1]

        if all(s.url != url for s in self.sites):
            return [], "The site is not listed in the indexing settings"

        site = await self.store.get_site_by_url(url)
        # FAILED тоже считается завершением индексации
        if site is None or site.status == IndexingStatus.INDEXING:
            return [], "Indexing of the site is not finished yet"

        return [site], None

    async def _sites_to_search(self) -> Tuple[List[Site], Optional[str]]:
        # Сайты из базы дополнительно отбираются по настройкам
        urls = [s.url for s in self.sites]
        sites = await self.store.get_sites_by_urls(urls)

        if len(sites) != len(urls):
            return [], "Indexing of some sites has not been started"
        if any(s.status == IndexingStatus.INDEXING for s in sites):
            return [], "Indexing of some sites is not finished yet"

        return sites, None

    async def _compute_relevance(self, sites: List[Site], lemmas: set) -> Dict[int, float]:
        """Абсолютная релевантность страниц всех сайтов, {page_id: сумма рангов}"""
        relevance: Dict[int, float] = {}

        for site in sites:
            site_lemmas = await self.store.find_lemmas(site.id, lemmas)
            if len(site_lemmas) != len(lemmas):
                # Без хотя бы одной леммы подходящей страницы на сайте нет
                continue

            site_lemmas.sort(key=lambda lemma: lemma.frequency)

            pages = {
                index.page_id: index.rank
                for index in await self.store.find_indexes_by_lemma(site_lemmas[0].id)
            }
            for lemma in site_lemmas[1:]:
                if not pages:
                    break
                indexes = await self.store.find_indexes_by_lemma(lemma.id, pages.keys())
                pages = {index.page_id: pages[index.page_id] + index.rank for index in indexes}

            relevance.update(pages)

        return relevance

    @staticmethod
    def _rank(relevance: Dict[int, float]) -> List[Tuple[int, float]]:
        """Страницы с относительной релевантностью по убыванию"""
        if not relevance:
            return []

        max_relevance = max(relevance.values())
        ranked = [(page_id, value / max_relevance) for page_id, value in relevance.items()]
        ranked.sort(key=lambda item: (-item[1], item[0]))
        return ranked

    async def _search_data(
        self,
        ranked: List[Tuple[int, float]],
        sites: List[Site],
        lemmas: set
    ) -> List[SearchData]:
        if not ranked:
            return []

        sites_by_id = {site.id: site for site in sites}
        pages: Dict[int, Page] = {
            page.id: page for page in await self.store.get_pages([page_id for page_id, _ in ranked])
        }

        data = []
        for page_id, relevance in ranked:
            page = pages.get(page_id)
            if page is None:
                # Страница удалена между запросами
                continue
            site = sites_by_id[page.site_id]

            title = ""
            snippet = ""
            if page.can_be_parsed:
                title, snippet = await asyncio.to_thread(self._describe, page.content, lemmas)

            data.append(SearchData(
                site=site.url,
                site_name=site.name,
                uri=page.path,
                title=title,
                snippet=snippet,
                relevance=relevance,
            ))

        return data

    def _describe(self, html: str, lemmas: set) -> Tuple[str, str]:
        """Заголовок и сниппет страницы"""
        return title_of(html), self.snippets.build(html_to_text(html), lemmas)

    def _make_cache_key(self, query: str, site: Optional[str], limit: int, offset: int) -> str:
        """Создание ключа кэша"""
        parts = [query.strip().lower(), (site or "").strip().lower(), str(limit), str(offset)]
        key_str = "|".join(parts)
        return hashlib.md5(key_str.encode()).hexdigest()
