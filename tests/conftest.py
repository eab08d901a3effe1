import asyncio
import re
from typing import Dict, List, Optional

import pytest

from sitesearch.core.config import SiteConfig, CrawlerConfig, RequestsInterval
from sitesearch.core.interfaces import IMorphology, IPageFetcher, FetchResult, ICache
from sitesearch.core.locks import KeyedLocks
from sitesearch.core.models import Site, Page, IndexingStatus, SearchResponse
from sitesearch.crawler.fetcher import PageHttpError
from sitesearch.crawler.manager import CrawlManager
from sitesearch.api.storage import MemoryStore
from sitesearch.search.indexer import IndexMaintainer
from sitesearch.search.lemmas import LemmasFinder
from sitesearch.search.morphology import MorphologyChain


SITE_URL = "https://example.com"


class FakeMorphology(IMorphology):
    """Словарная морфология для тестов"""

    language = "fake"

    WORD_PATTERN = re.compile(r"^([а-яё]+(-[а-яё]+)*|[a-z]+)$")

    FORMS = {
        "кота": ["кот"],
        "коты": ["кот"],
        "котов": ["кот"],
        "кошки": ["кошка", "кошки"],
        "кошку": ["кошка"],
        "собаки": ["собака"],
        "собак": ["собака"],
        "лошади": ["лошадь"],
        "testing": ["testing", "test"],
    }

    TAGS = {
        "и": ["CONJ"],
        "в": ["PREP,NOUN"],
        "на": ["PREP"],
        "без": ["PREP"],
        "не": ["PRCL"],
        "ой": ["INTJ"],
        "is": ["VBZ", "VBE"],
        "the": ["DT", "PREP"],
    }

    def validate(self, word: str) -> bool:
        return bool(self.WORD_PATTERN.match(word))

    def normal_forms(self, word: str) -> List[str]:
        return self.FORMS.get(word, [word])

    def tags(self, word: str) -> List[str]:
        return self.TAGS.get(word, ["NOUN"])


class FakeFetcher(IPageFetcher):
    """
    Загрузчик страниц из словаря

    Значение: HTML-строка, HTTP-код ошибки или исключение.
    Адреса из `blocked` ждут события `gate`.
    """

    def __init__(self, pages: Dict[str, object] = None):
        self.pages = dict(pages or {})
        self.requested: List[str] = []
        self.blocked = set()
        self.gate = asyncio.Event()

    async def fetch(self, url: str) -> FetchResult:
        self.requested.append(url)
        if url in self.blocked:
            await self.gate.wait()

        value = self.pages.get(url, 404)
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            raise PageHttpError(value, url)
        return FetchResult(status=200, html=value, content_type="text/html")


class FakeCache(ICache):
    def __init__(self):
        self.data: Dict[str, SearchResponse] = {}
        self.invalidations = 0

    async def get_search_result(self, query_hash: str) -> Optional[SearchResponse]:
        return self.data.get(query_hash)

    async def set_search_result(self, query_hash: str, result: SearchResponse, ttl: int = 60) -> None:
        self.data[query_hash] = result

    async def invalidate(self) -> int:
        self.invalidations += 1
        removed = len(self.data)
        self.data.clear()
        return removed


async def check_index_invariant(store: MemoryStore) -> None:
    """frequency леммы равна количеству страниц с индексом этой леммы"""
    for lemma in store.lemmas.values():
        pages = await store.find_indexes_by_lemma(lemma.id)
        assert lemma.frequency == len(pages), lemma
        assert lemma.frequency > 0


async def wait_for(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition was not met in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def morphology():
    return FakeMorphology()


@pytest.fixture
def finder(morphology):
    return LemmasFinder(MorphologyChain([morphology]))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def locks():
    return KeyedLocks()


@pytest.fixture
def indexer(store, locks):
    return IndexMaintainer(store, locks)


@pytest.fixture
def sites():
    return [SiteConfig(url=SITE_URL, name="Example")]


@pytest.fixture
def crawler_config():
    return CrawlerConfig(requests_interval=RequestsInterval(min=0), max_workers=4)


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def manager(sites, crawler_config, store, fetcher, finder, indexer, locks):
    return CrawlManager(sites, crawler_config, store, fetcher, finder, indexer, locks)


@pytest.fixture
async def indexed_site(store):
    return await store.save_site(Site(url=SITE_URL, name="Example", status=IndexingStatus.INDEXED))


@pytest.fixture
def add_page(store, finder, indexer):
    """Добавить проиндексированную страницу"""

    async def _add(site: Site, path: str, html: str) -> Page:
        page = (await store.insert_pages([Page(site_id=site.id, path=path, code=200, content=html)]))[0]
        await indexer.commit(page, finder.find_lemmas_in_html(html))
        return page

    return _add
