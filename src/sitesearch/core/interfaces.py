"""
Интерфейсы (абстрактные классы) поискового движка
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Dict, Iterable, Set
from .models import Site, Page, Lemma, Index, IndexDiff, SearchResponse


class IStore(ABC):
    """
    Хранилище сайтов, страниц, лемм и индексов

    Обязательные ограничения:
    - Site.url уникален, удаление сайта удаляет его страницы и леммы
    - (Page.site_id, Page.path) уникальны, удаление страницы удаляет её индексы
    - (Lemma.site_id, Lemma.lemma) уникальны, удаление леммы удаляет её индексы
    - (Index.page_id, Index.lemma_id) уникальны
    """

    # ========== SITES ==========

    @abstractmethod
    async def get_site_by_url(self, url: str) -> Optional[Site]:
        pass

    @abstractmethod
    async def get_sites_by_urls(self, urls: Iterable[str]) -> List[Site]:
        pass

    @abstractmethod
    async def get_sites(self) -> List[Site]:
        pass

    @abstractmethod
    async def save_site(self, site: Site) -> Site:
        """Создать или обновить сайт. Новому сайту присваивается id"""
        pass

    @abstractmethod
    async def delete_sites(self, site_ids: Iterable[int]) -> int:
        """Удалить сайты вместе со страницами, леммами и индексами"""
        pass

    # ========== PAGES ==========

    @abstractmethod
    async def get_page(self, site_id: int, path: str) -> Optional[Page]:
        pass

    @abstractmethod
    async def get_pages(self, page_ids: Iterable[int]) -> List[Page]:
        pass

    @abstractmethod
    async def find_existing_paths(self, site_id: int, paths: Iterable[str]) -> Set[str]:
        """Какие из путей уже есть у сайта"""
        pass

    @abstractmethod
    async def insert_pages(self, pages: List[Page]) -> List[Page]:
        """Пакетная вставка новых страниц. Страницам присваиваются id"""
        pass

    @abstractmethod
    async def save_page(self, page: Page) -> Page:
        pass

    @abstractmethod
    async def delete_page(self, page_id: int) -> None:
        pass

    @abstractmethod
    async def count_pages(self) -> Dict[int, int]:
        """Количество страниц по site_id"""
        pass

    # ========== LEMMAS / INDEXES ==========

    @abstractmethod
    async def find_lemmas(self, site_id: int, lemmas: Iterable[str]) -> List[Lemma]:
        pass

    @abstractmethod
    async def count_lemmas(self) -> Dict[int, int]:
        """Количество лемм по site_id"""
        pass

    @abstractmethod
    async def find_indexes_by_page(self, page_id: int) -> List[Index]:
        """Индексы страницы вместе с леммами"""
        pass

    @abstractmethod
    async def find_indexes_by_lemma(
        self,
        lemma_id: int,
        page_ids: Optional[Iterable[int]] = None
    ) -> List[Index]:
        """Индексы леммы, при необходимости только для указанных страниц"""
        pass

    @abstractmethod
    async def apply_index_diff(self, diff: IndexDiff) -> None:
        """
        Применить изменения в одной транзакции

        Новым леммам присваиваются id до записи индексов
        """
        pass

    async def close(self) -> None:
        """Освобождение ресурсов"""
        pass


class IMorphology(ABC):
    """Морфология одного языка"""

    language: str = ""

    @abstractmethod
    def validate(self, word: str) -> bool:
        """Слово написано на языке этой морфологии"""
        pass

    @abstractmethod
    def normal_forms(self, word: str) -> List[str]:
        """Нормальные формы слова, первая - самая приоритетная"""
        pass

    @abstractmethod
    def tags(self, word: str) -> List[str]:
        """Морфологические признаки всех вариантов разбора слова"""
        pass


@dataclass
class FetchResult:
    """Успешно загруженная страница"""
    status: int
    html: str
    content_type: str = ""


class IPageFetcher(ABC):
    """Загрузчик страниц"""

    @abstractmethod
    async def fetch(self, url: str) -> FetchResult:
        """
        Загрузить страницу

        Raises:
            PageHttpError: сервер вернул код ошибки
            UnsupportedContentError: по ссылке не HTML
        """
        pass

    async def close(self) -> None:
        pass


class ICache(ABC):
    """Интерфейс кэша"""

    @abstractmethod
    async def get_search_result(self, query_hash: str) -> Optional[SearchResponse]:
        """Получить закэшированный результат поиска"""
        pass

    @abstractmethod
    async def set_search_result(
        self,
        query_hash: str,
        result: SearchResponse,
        ttl: int = 60
    ) -> None:
        """Сохранить результат поиска в кэш"""
        pass

    @abstractmethod
    async def invalidate(self) -> int:
        """
        Очистить кэш результатов поиска

        Returns:
            Количество удалённых записей
        """
        pass
