import asyncio
import gc

from sitesearch.core.locks import KeyedLocks

from .conftest import SITE_URL


def test_same_key_gives_same_lock_while_referenced():
    locks = KeyedLocks()
    lock = locks.page(1)

    assert locks.page(1) is lock
    assert locks.page(2) is not lock
    assert locks.site(1) is not lock


def test_free_locks_are_dropped():
    locks = KeyedLocks()
    lock = locks.page(1)
    assert len(locks) == 1

    del lock
    gc.collect()
    assert len(locks) == 0


async def test_waiters_share_lock():
    locks = KeyedLocks()
    order = []

    async def worker(name):
        async with locks.page(7):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a-in", "a-out", "b-in", "b-out"]


async def test_locks_do_not_accumulate_across_crawls(manager, locks, fetcher):
    links = "".join(f'<a href="/p{i}"></a>' for i in range(20))
    fetcher.pages[SITE_URL + "/"] = links + "<p>кот</p>"
    for i in range(20):
        fetcher.pages[f"{SITE_URL}/p{i}"] = "<p>собаки</p>"

    for _ in range(3):
        assert (await manager.start_indexing()).result
        await manager.wait()

    gc.collect()
    assert len(locks) < 20
