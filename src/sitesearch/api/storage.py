"""
Хранилище данных в памяти процесса

Используется при STORAGE=memory и в тестах. Соблюдает те же ограничения
уникальности и каскадного удаления, что и PostgreSQL.
"""
from dataclasses import replace
from itertools import count
from typing import Optional, List, Dict, Iterable, Set, Tuple

from ..core.interfaces import IStore
from ..core.models import Site, Page, Lemma, Index, IndexDiff


class StoreIntegrityError(Exception):
    """Нарушено ограничение уникальности или ссылочной целостности"""


class MemoryStore(IStore):
    """
    Хранилище в памяти

    Наружу отдаются копии записей, поэтому изменения объектов
    не попадают в хранилище без явного сохранения.
    """

    def __init__(self):
        self._ids = count(1)
        self.sites: Dict[int, Site] = {}
        self.pages: Dict[int, Page] = {}
        self.lemmas: Dict[int, Lemma] = {}
        # (page_id, lemma_id) -> (id, rank)
        self.indexes: Dict[Tuple[int, int], Tuple[int, float]] = {}

    def _next_id(self) -> int:
        return next(self._ids)

    # ========== SITES ==========

    async def get_site_by_url(self, url: str) -> Optional[Site]:
        for site in self.sites.values():
            if site.url == url:
                return replace(site)
        return None

    async def get_sites_by_urls(self, urls: Iterable[str]) -> List[Site]:
        urls = set(urls)
        return [replace(s) for s in self.sites.values() if s.url in urls]

    async def get_sites(self) -> List[Site]:
        return [replace(s) for s in self.sites.values()]

    async def save_site(self, site: Site) -> Site:
        for other in self.sites.values():
            if other.url == site.url and other.id != site.id:
                raise StoreIntegrityError(f"Site {site.url} already exists")

        if site.id is None:
            site.id = self._next_id()
        self.sites[site.id] = replace(site)
        return site

    async def delete_sites(self, site_ids: Iterable[int]) -> int:
        site_ids = set(site_ids) & set(self.sites)
        page_ids = {p.id for p in self.pages.values() if p.site_id in site_ids}
        lemma_ids = {l.id for l in self.lemmas.values() if l.site_id in site_ids}

        self._delete_indexes(lambda page_id, lemma_id: page_id in page_ids or lemma_id in lemma_ids)
        for page_id in page_ids:
            del self.pages[page_id]
        for lemma_id in lemma_ids:
            del self.lemmas[lemma_id]
        for site_id in site_ids:
            del self.sites[site_id]
        return len(site_ids)

    # ========== PAGES ==========

    async def get_page(self, site_id: int, path: str) -> Optional[Page]:
        for page in self.pages.values():
            if page.site_id == site_id and page.path == path:
                return replace(page)
        return None

    async def get_pages(self, page_ids: Iterable[int]) -> List[Page]:
        return [replace(self.pages[i]) for i in page_ids if i in self.pages]

    async def find_existing_paths(self, site_id: int, paths: Iterable[str]) -> Set[str]:
        paths = set(paths)
        return {p.path for p in self.pages.values() if p.site_id == site_id and p.path in paths}

    async def insert_pages(self, pages: List[Page]) -> List[Page]:
        keys = set()
        for page in pages:
            key = (page.site_id, page.path)
            if page.site_id not in self.sites:
                raise StoreIntegrityError(f"Site {page.site_id} does not exist")
            if key in keys or await self.get_page(*key) is not None:
                raise StoreIntegrityError(f"Page {page.path} already exists")
            keys.add(key)

        for page in pages:
            page.id = self._next_id()
            self.pages[page.id] = replace(page)
        return pages

    async def save_page(self, page: Page) -> Page:
        if page.id is None:
            return (await self.insert_pages([page]))[0]
        if page.id not in self.pages:
            raise StoreIntegrityError(f"Page {page.id} does not exist")

        self.pages[page.id] = replace(page)
        return page

    async def delete_page(self, page_id: int) -> None:
        self._delete_indexes(lambda p, _: p == page_id)
        self.pages.pop(page_id, None)

    async def count_pages(self) -> Dict[int, int]:
        result: Dict[int, int] = {}
        for page in self.pages.values():
            result[page.site_id] = result.get(page.site_id, 0) + 1
        return result

    # ========== LEMMAS / INDEXES ==========

    async def find_lemmas(self, site_id: int, lemmas: Iterable[str]) -> List[Lemma]:
        names = set(lemmas)
        return [
            replace(l) for l in self.lemmas.values()
            if l.site_id == site_id and l.lemma in names
        ]

    async def count_lemmas(self) -> Dict[int, int]:
        result: Dict[int, int] = {}
        for lemma in self.lemmas.values():
            result[lemma.site_id] = result.get(lemma.site_id, 0) + 1
        return result

    def _make_index(self, page_id: int, lemma_id: int) -> Index:
        index_id, rank = self.indexes[(page_id, lemma_id)]
        return Index(id=index_id, page_id=page_id, lemma=replace(self.lemmas[lemma_id]), rank=rank)

    async def find_indexes_by_page(self, page_id: int) -> List[Index]:
        return [self._make_index(p, l) for p, l in self.indexes if p == page_id]

    async def find_indexes_by_lemma(
        self,
        lemma_id: int,
        page_ids: Optional[Iterable[int]] = None
    ) -> List[Index]:
        pages = set(page_ids) if page_ids is not None else None
        return [
            self._make_index(p, l) for p, l in self.indexes
            if l == lemma_id and (pages is None or p in pages)
        ]

    async def apply_index_diff(self, diff: IndexDiff) -> None:
        # Проверка до изменений: транзакция применяется целиком или не применяется
        for index in diff.save_indexes:
            if index.page_id not in self.pages:
                raise StoreIntegrityError(f"Page {index.page_id} does not exist")
        for lemma in diff.save_lemmas:
            if lemma.site_id not in self.sites:
                raise StoreIntegrityError(f"Site {lemma.site_id} does not exist")

        delete_index_ids = {index.id for index in diff.delete_indexes}
        self._delete_indexes(lambda p, l: self.indexes[(p, l)][0] in delete_index_ids)

        delete_lemma_ids = {lemma.id for lemma in diff.delete_lemmas}
        self._delete_indexes(lambda _, l: l in delete_lemma_ids)
        for lemma_id in delete_lemma_ids:
            self.lemmas.pop(lemma_id, None)

        for lemma in diff.save_lemmas:
            if lemma.id is None:
                lemma.id = self._next_id()
            self.lemmas[lemma.id] = replace(lemma)

        for index in diff.save_indexes:
            key = (index.page_id, index.lemma_id)
            if key in self.indexes:
                index.id = self.indexes[key][0]
            elif index.id is None:
                index.id = self._next_id()
            self.indexes[key] = (index.id, index.rank)

    def _delete_indexes(self, predicate) -> None:
        for key in [k for k in self.indexes if predicate(*k)]:
            del self.indexes[key]
