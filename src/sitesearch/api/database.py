"""
PostgreSQL Database - хранение сайтов, страниц, лемм и индексов
"""
import asyncpg
from typing import Optional, List, Dict, Iterable, Set
import logging

from ..core.config import DatabaseConfig
from ..core.interfaces import IStore
from ..core.models import Site, Page, Lemma, Index, IndexDiff, IndexingStatus

logger = logging.getLogger(__name__)


class Database(IStore):
    """PostgreSQL подключение и операции"""

    def __init__(self, settings: DatabaseConfig):
        self.settings = settings
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Создание пула подключений"""
        self.pool = await asyncpg.create_pool(
            host=self.settings.host,
            port=self.settings.port,
            user=self.settings.user,
            password=self.settings.password,
            database=self.settings.database,
            min_size=2,
            max_size=self.settings.pool_size
        )
        # Создаем таблицы если не существуют
        await self._init_tables()
        logger.info(f"[Database] Connected to {self.settings.host}:{self.settings.port}/{self.settings.database}")

    async def disconnect(self):
        """Закрытие пула подключений"""
        if self.pool:
            await self.pool.close()
            self.pool = None

    async def close(self) -> None:
        await self.disconnect()

    async def ping(self) -> bool:
        async with self.pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1

    async def _init_tables(self):
        """Создание таблиц при первом запуске"""
        async with self.pool.acquire() as conn:
            await conn.execute('''
                CREATE TABLE IF NOT EXISTS sites (
                    id SERIAL PRIMARY KEY,
                    url VARCHAR(255) UNIQUE NOT NULL,
                    name VARCHAR(255) NOT NULL,
                    status VARCHAR(20) NOT NULL,
                    status_time TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    last_error TEXT
                );

                CREATE TABLE IF NOT EXISTS pages (
                    id SERIAL PRIMARY KEY,
                    site_id INTEGER NOT NULL REFERENCES sites(id) ON DELETE CASCADE,
                    path TEXT NOT NULL,
                    code INTEGER NOT NULL,
                    content TEXT NOT NULL DEFAULT '',
                    UNIQUE(site_id, path)
                );

                CREATE TABLE IF NOT EXISTS lemmas (
                    id SERIAL PRIMARY KEY,
                    site_id INTEGER NOT NULL REFERENCES sites(id) ON DELETE CASCADE,
                    lemma VARCHAR(255) NOT NULL,
                    frequency INTEGER NOT NULL,
                    UNIQUE(site_id, lemma)
                );

                CREATE TABLE IF NOT EXISTS search_index (
                    id SERIAL PRIMARY KEY,
                    page_id INTEGER NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
                    lemma_id INTEGER NOT NULL REFERENCES lemmas(id) ON DELETE CASCADE,
                    rank REAL NOT NULL,
                    UNIQUE(page_id, lemma_id)
                );

                CREATE INDEX IF NOT EXISTS idx_pages_site_id ON pages(site_id);
                CREATE INDEX IF NOT EXISTS idx_search_index_lemma_id ON search_index(lemma_id);
            ''')

    # ========== SITES ==========

    @staticmethod
    def _row_to_site(row) -> Site:
        return Site(
            id=row["id"],
            url=row["url"],
            name=row["name"],
            status=IndexingStatus(row["status"]),
            status_time=row["status_time"],
            last_error=row["last_error"],
        )

    async def get_site_by_url(self, url: str) -> Optional[Site]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow('''
                SELECT id, url, name, status, status_time, last_error
                FROM sites WHERE url = $1
            ''', url)
            return self._row_to_site(row) if row else None

    async def get_sites_by_urls(self, urls: Iterable[str]) -> List[Site]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT id, url, name, status, status_time, last_error
                FROM sites WHERE url = ANY($1::varchar[])
                ORDER BY id
            ''', list(urls))
            return [self._row_to_site(row) for row in rows]

    async def get_sites(self) -> List[Site]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT id, url, name, status, status_time, last_error
                FROM sites ORDER BY id
            ''')
            return [self._row_to_site(row) for row in rows]

    async def save_site(self, site: Site) -> Site:
        async with self.pool.acquire() as conn:
            if site.id is None:
                site.id = await conn.fetchval('''
                    INSERT INTO sites (url, name, status, status_time, last_error)
                    VALUES ($1, $2, $3, $4, $5)
                    RETURNING id
                ''', site.url, site.name, site.status.value, site.status_time, site.last_error)
            else:
                await conn.execute('''
                    UPDATE sites SET name = $2, status = $3, status_time = $4, last_error = $5
                    WHERE id = $1
                ''', site.id, site.name, site.status.value, site.status_time, site.last_error)
        return site

    async def delete_sites(self, site_ids: Iterable[int]) -> int:
        async with self.pool.acquire() as conn:
            result = await conn.execute('''
                DELETE FROM sites WHERE id = ANY($1::int[])
            ''', list(site_ids))
            return int(result.split()[-1])

    # ========== PAGES ==========

    @staticmethod
    def _row_to_page(row) -> Page:
        return Page(
            id=row["id"],
            site_id=row["site_id"],
            path=row["path"],
            code=row["code"],
            content=row["content"],
        )

    async def get_page(self, site_id: int, path: str) -> Optional[Page]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow('''
                SELECT id, site_id, path, code, content
                FROM pages WHERE site_id = $1 AND path = $2
            ''', site_id, path)
            return self._row_to_page(row) if row else None

    async def get_pages(self, page_ids: Iterable[int]) -> List[Page]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT id, site_id, path, code, content
                FROM pages WHERE id = ANY($1::int[])
            ''', list(page_ids))
            return [self._row_to_page(row) for row in rows]

    async def find_existing_paths(self, site_id: int, paths: Iterable[str]) -> Set[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT path FROM pages WHERE site_id = $1 AND path = ANY($2::text[])
            ''', site_id, list(paths))
            return {row["path"] for row in rows}

    async def insert_pages(self, pages: List[Page]) -> List[Page]:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                for page in pages:
                    page.id = await conn.fetchval('''
                        INSERT INTO pages (site_id, path, code, content)
                        VALUES ($1, $2, $3, $4)
                        RETURNING id
                    ''', page.site_id, page.path, page.code, page.content)
        return pages

    async def save_page(self, page: Page) -> Page:
        if page.id is None:
            return (await self.insert_pages([page]))[0]

        async with self.pool.acquire() as conn:
            await conn.execute('''
                UPDATE pages SET code = $2, content = $3 WHERE id = $1
            ''', page.id, page.code, page.content)
        return page

    async def delete_page(self, page_id: int) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM pages WHERE id = $1", page_id)

    async def count_pages(self) -> Dict[int, int]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT site_id, COUNT(*) AS count FROM pages GROUP BY site_id
            ''')
            return {row["site_id"]: row["count"] for row in rows}

    # ========== LEMMAS / INDEXES ==========

    async def find_lemmas(self, site_id: int, lemmas: Iterable[str]) -> List[Lemma]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT id, site_id, lemma, frequency
                FROM lemmas WHERE site_id = $1 AND lemma = ANY($2::varchar[])
            ''', site_id, list(lemmas))
            return [Lemma(**dict(row)) for row in rows]

    async def count_lemmas(self) -> Dict[int, int]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT site_id, COUNT(*) AS count FROM lemmas GROUP BY site_id
            ''')
            return {row["site_id"]: row["count"] for row in rows}

    @staticmethod
    def _row_to_index(row) -> Index:
        lemma = Lemma(
            id=row["lemma_id"],
            site_id=row["site_id"],
            lemma=row["lemma"],
            frequency=row["frequency"],
        )
        return Index(id=row["id"], page_id=row["page_id"], lemma=lemma, rank=row["rank"])

    async def find_indexes_by_page(self, page_id: int) -> List[Index]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch('''
                SELECT i.id, i.page_id, i.lemma_id, i.rank, l.site_id, l.lemma, l.frequency
                FROM search_index i
                JOIN lemmas l ON l.id = i.lemma_id
                WHERE i.page_id = $1
            ''', page_id)
            return [self._row_to_index(row) for row in rows]

    async def find_indexes_by_lemma(
        self,
        lemma_id: int,
        page_ids: Optional[Iterable[int]] = None
    ) -> List[Index]:
        query = '''
            SELECT i.id, i.page_id, i.lemma_id, i.rank, l.site_id, l.lemma, l.frequency
            FROM search_index i
            JOIN lemmas l ON l.id = i.lemma_id
            WHERE i.lemma_id = $1
        '''
        args = [lemma_id]
        if page_ids is not None:
            query += " AND i.page_id = ANY($2::int[])"
            args.append(list(page_ids))

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [self._row_to_index(row) for row in rows]

    async def apply_index_diff(self, diff: IndexDiff) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                if diff.delete_indexes:
                    await conn.execute('''
                        DELETE FROM search_index WHERE id = ANY($1::int[])
                    ''', [index.id for index in diff.delete_indexes])

                if diff.delete_lemmas:
                    await conn.execute('''
                        DELETE FROM lemmas WHERE id = ANY($1::int[])
                    ''', [lemma.id for lemma in diff.delete_lemmas])

                for lemma in diff.save_lemmas:
                    if lemma.id is None:
                        lemma.id = await conn.fetchval('''
                            INSERT INTO lemmas (site_id, lemma, frequency)
                            VALUES ($1, $2, $3)
                            RETURNING id
                        ''', lemma.site_id, lemma.lemma, lemma.frequency)
                    else:
                        await conn.execute('''
                            UPDATE lemmas SET frequency = $2 WHERE id = $1
                        ''', lemma.id, lemma.frequency)

                for index in diff.save_indexes:
                    index.id = await conn.fetchval('''
                        INSERT INTO search_index (page_id, lemma_id, rank)
                        VALUES ($1, $2, $3)
                        ON CONFLICT (page_id, lemma_id) DO UPDATE SET rank = EXCLUDED.rank
                        RETURNING id
                    ''', index.page_id, index.lemma_id, index.rank)
