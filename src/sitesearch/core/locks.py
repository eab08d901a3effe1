"""
Блокировки по идентификатору объекта
"""
import asyncio
import weakref
from typing import Hashable


class KeyedLocks:
    """
    Набор asyncio-блокировок, выдаваемых по ключу

    Пока блокировка кем-то удерживается или ожидается, один и тот же ключ
    даёт одну и ту же блокировку, поэтому задачи, работающие с разными
    копиями одной записи, синхронизируются по её id, а не по объекту в памяти.
    Свободная блокировка, на которую никто не ссылается, удаляется из набора.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, *key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def site(self, site_id: int) -> asyncio.Lock:
        """Леммы и индексы сайта, поиск новых страниц"""
        return self.get("site", site_id)

    def site_row(self, site_id: int) -> asyncio.Lock:
        """Запись самого сайта"""
        return self.get("site-row", site_id)

    def page(self, page_id: int) -> asyncio.Lock:
        return self.get("page", page_id)

    def pacing(self, site_id: int) -> asyncio.Lock:
        """Пауза между запросами к одному сайту"""
        return self.get("pacing", site_id)
