"""
Индексатор страниц

Поддерживает леммы и индексы сайта в соответствии с текущим содержимым
страниц: Lemma.frequency равна количеству страниц сайта с этой леммой,
Index.rank - количеству упоминаний леммы на странице.
"""
import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable, Optional

from ..core.interfaces import IStore
from ..core.locks import KeyedLocks
from ..core.models import Page, Lemma, Index, IndexDiff

logger = logging.getLogger(__name__)


def compute_index_diff(
    page: Page,
    lemmas: Dict[str, int],
    site_lemmas: Iterable[Lemma],
    used_indexes: Iterable[Index]
) -> IndexDiff:
    """
    Изменения лемм и индексов страницы

    Args:
        page: страница с id
        lemmas: новые леммы страницы {лемма: количество}
        site_lemmas: уже сохранённые леммы сайта из числа новых
        used_indexes: текущие индексы страницы вместе с леммами

    Returns:
        IndexDiff, применение которого приводит индекс страницы к `lemmas`
    """
    diff = IndexDiff()
    existing = {lemma.lemma: lemma for lemma in site_lemmas}
    used = {index.lemma_id: index for index in used_indexes}
    kept_ids = set()

    for name, count in lemmas.items():
        rank = float(count)
        lemma = existing.get(name)

        if lemma is not None and lemma.id in used:
            # Лемма уже учтена для этой страницы
            kept_ids.add(lemma.id)
            index = used[lemma.id]
            if index.rank != rank:
                diff.save_indexes.append(replace(index, rank=rank))
            continue

        if lemma is not None:
            lemma = replace(lemma, frequency=lemma.frequency + 1)
        else:
            lemma = Lemma(site_id=page.site_id, lemma=name, frequency=1)

        diff.save_lemmas.append(lemma)
        diff.save_indexes.append(Index(page_id=page.id, lemma=lemma, rank=rank))

    for lemma_id, index in used.items():
        if lemma_id in kept_ids:
            continue

        diff.delete_indexes.append(index)
        if index.lemma.frequency > 1:
            diff.save_lemmas.append(replace(index.lemma, frequency=index.lemma.frequency - 1))
        else:
            diff.delete_lemmas.append(index.lemma)

    return diff


class IndexMaintainer:
    """
    Запись лемм и индексов страниц

    Все изменения лемм одного сайта выполняются под блокировкой сайта,
    каждый набор изменений пишется одной транзакцией.
    """

    def __init__(self, store: IStore, locks: KeyedLocks):
        self.store = store
        self.locks = locks

    async def commit(
        self,
        page: Page,
        lemmas: Dict[str, int],
        is_cancelled: Callable[[], bool] = lambda: False
    ) -> Optional[IndexDiff]:
        """
        Сохранить новые леммы страницы

        Returns:
            Применённые изменения или None, если индексация отменена
        """
        async with self.locks.site(page.site_id):
            if is_cancelled():
                return None

            site_lemmas = await self.store.find_lemmas(page.site_id, lemmas.keys())
            used_indexes = await self.store.find_indexes_by_page(page.id)

            diff = compute_index_diff(page, lemmas, site_lemmas, used_indexes)

            if is_cancelled():
                return None

            if not diff.is_empty:
                await self.store.apply_index_diff(diff)

        logger.debug(
            f"[Indexer] Page {page.path} (site {page.site_id}): "
            f"+{len(diff.save_indexes)} indexes, -{len(diff.delete_indexes)} indexes, "
            f"-{len(diff.delete_lemmas)} lemmas"
        )
        return diff

    async def remove_page(self, page: Page) -> IndexDiff:
        """Удалить страницу, уменьшив частоты её лемм"""
        async with self.locks.site(page.site_id):
            used_indexes = await self.store.find_indexes_by_page(page.id)
            diff = compute_index_diff(page, {}, [], used_indexes)

            if not diff.is_empty:
                await self.store.apply_index_diff(diff)
            await self.store.delete_page(page.id)

        logger.info(f"[Indexer] Page {page.path} removed from site {page.site_id} index")
        return diff

