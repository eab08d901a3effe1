"""
Модели данных поискового движка по сайтам
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any
from enum import Enum


# Коды страниц, не пришедшие от сервера
PROCESSING_CODE = 102  # Processing - страница обнаружена, ещё не загружена
UNSUPPORTED_CODE = 415  # Unsupported Media Type - по ссылке не HTML
ERROR_CODE = 500  # Internal Server Error - непредвиденная ошибка при обработке


class IndexingStatus(Enum):
    INDEXING = "INDEXING"
    INDEXED = "INDEXED"
    FAILED = "FAILED"


@dataclass
class Site:
    """Индексируемый сайт"""
    url: str
    name: str
    status: IndexingStatus = IndexingStatus.INDEXING
    status_time: datetime = field(default_factory=datetime.now)
    last_error: Optional[str] = None
    id: Optional[int] = None

    @property
    def indexing_failed(self) -> bool:
        return self.status == IndexingStatus.FAILED


@dataclass
class Page:
    """Страница сайта"""
    site_id: int
    path: str
    code: int = PROCESSING_CODE
    content: str = ""
    id: Optional[int] = None

    @property
    def is_root(self) -> bool:
        return self.path.strip() == "/"

    @property
    def can_be_parsed(self) -> bool:
        return bool(self.content and self.content.strip())


@dataclass
class Lemma:
    """Лемма сайта. frequency - количество страниц сайта, на которых она встречается"""
    site_id: int
    lemma: str
    frequency: int = 1
    id: Optional[int] = None


@dataclass
class Index:
    """Связь страницы и леммы. rank - количество упоминаний леммы на странице"""
    page_id: int
    lemma: Lemma
    rank: float
    id: Optional[int] = None

    @property
    def lemma_id(self) -> Optional[int]:
        return self.lemma.id


@dataclass
class IndexDiff:
    """
    Изменения лемм и индексов одной страницы

    Применяется целиком в одной транзакции в порядке:
    удаление индексов, удаление лемм, запись лемм, запись индексов
    """
    delete_indexes: List[Index] = field(default_factory=list)
    delete_lemmas: List[Lemma] = field(default_factory=list)
    save_lemmas: List[Lemma] = field(default_factory=list)
    save_indexes: List[Index] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.delete_indexes or self.delete_lemmas
                    or self.save_lemmas or self.save_indexes)


@dataclass
class IndexingResponse:
    """Ответ на команду управления индексацией"""
    result: bool
    error: Optional[str] = None
    # Отказ из-за уже идущей (или останавливающейся) индексации
    conflict: bool = False

    @classmethod
    def ok(cls) -> "IndexingResponse":
        return cls(result=True)

    @classmethod
    def fail(cls, error: str, conflict: bool = False) -> "IndexingResponse":
        return cls(result=False, error=error, conflict=conflict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"result": self.result}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SearchData:
    """Найденная страница"""
    site: str
    site_name: str
    uri: str
    title: str
    snippet: str
    relevance: float


@dataclass
class SearchResponse:
    """Результат поиска"""
    result: bool
    count: Optional[int] = None
    data: Optional[List[SearchData]] = None
    error: Optional[str] = None

    @classmethod
    def fail(cls, error: str) -> "SearchResponse":
        return cls(result=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"result": self.result}
        if self.count is not None:
            data["count"] = self.count
        if self.data is not None:
            data["data"] = [item.__dict__.copy() for item in self.data]
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResponse":
        items = data.get("data")
        return cls(
            result=data["result"],
            count=data.get("count"),
            data=[SearchData(**item) for item in items] if items is not None else None,
            error=data.get("error"),
        )


@dataclass
class TotalStatistics:
    sites: int = 0
    pages: int = 0
    lemmas: int = 0
    indexing: bool = False


@dataclass
class DetailedStatisticsItem:
    url: str
    name: str
    status: IndexingStatus
    status_time: int  # миллисекунды с начала эпохи
    pages: int = 0
    lemmas: int = 0
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "url": self.url,
            "name": self.name,
            "status": self.status.value,
            "status_time": self.status_time,
            "pages": self.pages,
            "lemmas": self.lemmas,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class StatisticsResponse:
    total: TotalStatistics
    detailed: List[DetailedStatisticsItem] = field(default_factory=list)
    result: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result,
            "statistics": {
                "total": self.total.__dict__.copy(),
                "detailed": [item.to_dict() for item in self.detailed],
            },
        }
