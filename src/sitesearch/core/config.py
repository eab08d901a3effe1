"""
Конфигурация сервиса
"""
from dataclasses import dataclass, field
from typing import Optional, List
import json
import logging
import os
import random

logger = logging.getLogger(__name__)


@dataclass
class SiteConfig:
    """Сайт из настроек индексации"""
    url: str
    name: str = ""

    def __post_init__(self):
        # Далее везде ожидается формат без слэша на конце
        url = self.url.strip().lower()
        if url.endswith("/"):
            url = url[:-1]
        if not url:
            raise ValueError("Site url must not be empty")
        self.url = url
        self.name = self.name.strip() or url


@dataclass
class RequestsInterval:
    """Пауза перед запросом страницы, миллисекунды"""
    min: int = 0
    # Если требуется точное время, верхняя граница не указывается
    max: Optional[int] = None

    def __post_init__(self):
        if self.min < 0:
            raise ValueError("min must not be negative")
        if self.max is not None:
            if self.max < 0:
                raise ValueError("max must not be negative")
            if self.max < self.min:
                logger.warning("Requests interval max %s is less than min %s and will be ignored",
                               self.max, self.min)

    def delay_ms(self, rng: random.Random = None) -> int:
        rng = rng or random
        if self.max is not None and self.max > self.min:
            return rng.randint(self.min, self.max)
        return self.min


@dataclass
class CrawlerConfig:
    """Настройки обхода сайтов"""
    user_agent: str = "SiteSearchBot/1.0 (+https://github.com/sitesearch)"
    referer: str = "https://www.google.com"
    requests_interval: RequestsInterval = field(default_factory=RequestsInterval)

    # Одновременно анализируемых страниц
    max_workers: int = 8

    # Таймаут загрузки страницы (секунды)
    fetch_timeout: int = 30


@dataclass
class SearchConfig:
    """Настройки поиска"""
    # Количество значимых слов слева и справа от найденного в сниппете
    words_range: int = 2

    # Длина сниппета, после которой остаток прячется под спойлер
    spoiler_threshold: int = 270

    default_limit: int = 20

    def __post_init__(self):
        if self.words_range < 1:
            raise ValueError("words_range must not be less than 1")


@dataclass
class DatabaseConfig:
    """Настройки PostgreSQL"""
    host: str = "localhost"
    port: int = 5432
    database: str = "search_engine"
    user: str = "postgres"
    password: str = ""
    pool_size: int = 10

    @property
    def url(self) -> str:
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class RedisConfig:
    """Настройки Redis"""
    url: str = "redis://localhost:6379/0"
    enabled: bool = False

    # TTL для кэша (секунды)
    search_cache_ttl: int = 60


@dataclass
class ApiConfig:
    """Настройки API"""
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: list = field(default_factory=lambda: ["*"])


def load_sites(raw: Optional[str], path: Optional[str]) -> List[SiteConfig]:
    """Список сайтов из JSON-строки или JSON-файла: [{"url": ..., "name": ...}]"""
    if path:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    if not raw:
        return []

    items = json.loads(raw)
    return [SiteConfig(url=item["url"], name=item.get("name", "")) for item in items]


@dataclass
class Config:
    """Главная конфигурация"""
    env: str = "development"
    debug: bool = True

    # memory - хранение в памяти процесса, postgres - PostgreSQL
    storage: str = "memory"

    sites: List[SiteConfig] = field(default_factory=list)
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    api: ApiConfig = field(default_factory=ApiConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Загрузить конфигурацию из переменных окружения"""
        interval_max = os.getenv("CRAWLER_INTERVAL_MAX")

        return cls(
            env=os.getenv("ENV", "development"),
            debug=os.getenv("DEBUG", "true").lower() == "true",
            storage=os.getenv("STORAGE", "memory").lower(),

            sites=load_sites(os.getenv("SITES"), os.getenv("SITES_FILE")),

            crawler=CrawlerConfig(
                user_agent=os.getenv("CRAWLER_USER_AGENT", CrawlerConfig.user_agent),
                referer=os.getenv("CRAWLER_REFERER", CrawlerConfig.referer),
                requests_interval=RequestsInterval(
                    min=int(os.getenv("CRAWLER_INTERVAL_MIN", "500")),
                    max=int(interval_max) if interval_max else None,
                ),
                max_workers=int(os.getenv("CRAWLER_MAX_WORKERS", "8")),
                fetch_timeout=int(os.getenv("CRAWLER_FETCH_TIMEOUT", "30")),
            ),

            search=SearchConfig(
                words_range=int(os.getenv("SEARCH_WORDS_RANGE", "2")),
                spoiler_threshold=int(os.getenv("SEARCH_SPOILER_THRESHOLD", "270")),
                default_limit=int(os.getenv("SEARCH_DEFAULT_LIMIT", "20")),
            ),

            database=DatabaseConfig(
                host=os.getenv("POSTGRES_HOST", "localhost"),
                port=int(os.getenv("POSTGRES_PORT", "5432")),
                database=os.getenv("POSTGRES_DB", "search_engine"),
                user=os.getenv("POSTGRES_USER", "postgres"),
                password=os.getenv("POSTGRES_PASSWORD", ""),
                pool_size=int(os.getenv("POSTGRES_POOL_SIZE", "10")),
            ),

            redis=RedisConfig(
                url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
                enabled=os.getenv("REDIS_ENABLED", "false").lower() == "true",
                search_cache_ttl=int(os.getenv("SEARCH_CACHE_TTL", "60")),
            ),

            api=ApiConfig(
                host=os.getenv("API_HOST", "0.0.0.0"),
                port=int(os.getenv("API_PORT", "8080")),
            ),
        )


# Глобальный экземпляр конфигурации
config = Config.from_env()
