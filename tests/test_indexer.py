from sitesearch.core.models import Site, Page, Lemma, Index
from sitesearch.search.indexer import compute_index_diff

from .conftest import SITE_URL, check_index_invariant


async def make_pages(store, *paths):
    site = await store.save_site(Site(url=SITE_URL, name="Example"))
    return site, await store.insert_pages([Page(site_id=site.id, path=p, code=200) for p in paths])


async def lemma_frequencies(store, site_id):
    lemmas = await store.find_lemmas(site_id, [l.lemma for l in store.lemmas.values()])
    return {lemma.lemma: lemma.frequency for lemma in lemmas}


async def page_ranks(store, page_id):
    return {index.lemma.lemma: index.rank for index in await store.find_indexes_by_page(page_id)}


class TestComputeIndexDiff:
    def test_new_page(self):
        page = Page(site_id=1, path="/", id=10)
        diff = compute_index_diff(page, {"кот": 2}, [], [])

        assert [(l.lemma, l.frequency, l.id) for l in diff.save_lemmas] == [("кот", 1, None)]
        assert [(i.page_id, i.lemma.lemma, i.rank) for i in diff.save_indexes] == [(10, "кот", 2.0)]
        assert not diff.delete_indexes and not diff.delete_lemmas

    def test_unchanged_page(self):
        page = Page(site_id=1, path="/", id=10)
        lemma = Lemma(site_id=1, lemma="кот", frequency=3, id=5)
        index = Index(page_id=10, lemma=lemma, rank=2.0, id=7)

        diff = compute_index_diff(page, {"кот": 2}, [lemma], [index])
        assert diff.is_empty

    def test_existing_lemma_of_other_pages(self):
        page = Page(site_id=1, path="/", id=10)
        lemma = Lemma(site_id=1, lemma="кот", frequency=3, id=5)

        diff = compute_index_diff(page, {"кот": 1}, [lemma], [])
        assert [(l.id, l.frequency) for l in diff.save_lemmas] == [(5, 4)]
        # Исходный объект не меняется
        assert lemma.frequency == 3

    def test_lemma_removed_from_page(self):
        page = Page(site_id=1, path="/", id=10)
        shared = Lemma(site_id=1, lemma="кот", frequency=2, id=5)
        own = Lemma(site_id=1, lemma="собака", frequency=1, id=6)
        indexes = [
            Index(page_id=10, lemma=shared, rank=1.0, id=7),
            Index(page_id=10, lemma=own, rank=1.0, id=8),
        ]

        diff = compute_index_diff(page, {}, [], indexes)
        assert [i.id for i in diff.delete_indexes] == [7, 8]
        assert [(l.id, l.frequency) for l in diff.save_lemmas] == [(5, 1)]
        assert [l.id for l in diff.delete_lemmas] == [6]


class TestIndexMaintainer:
    async def test_commit_new_pages(self, store, indexer):
        site, (first, second) = await make_pages(store, "/a", "/b")

        await indexer.commit(first, {"кот": 2, "собака": 1})
        await indexer.commit(second, {"кот": 1})

        assert await lemma_frequencies(store, site.id) == {"кот": 2, "собака": 1}
        assert await page_ranks(store, first.id) == {"кот": 2.0, "собака": 1.0}
        assert await page_ranks(store, second.id) == {"кот": 1.0}
        await check_index_invariant(store)

    async def test_recommit_changes_ranks_and_frequencies(self, store, indexer):
        site, (first, second) = await make_pages(store, "/a", "/b")
        await indexer.commit(first, {"кот": 2, "собака": 1})
        await indexer.commit(second, {"кот": 1})

        await indexer.commit(first, {"кот": 3, "лошадь": 1})

        assert await lemma_frequencies(store, site.id) == {"кот": 2, "лошадь": 1}
        assert await page_ranks(store, first.id) == {"кот": 3.0, "лошадь": 1.0}
        await check_index_invariant(store)

    async def test_commit_is_idempotent(self, store, indexer):
        site, (page,) = await make_pages(store, "/a")
        await indexer.commit(page, {"кот": 2})
        snapshot = (dict(store.lemmas), dict(store.indexes))

        diff = await indexer.commit(page, {"кот": 2})

        assert diff.is_empty
        assert (dict(store.lemmas), dict(store.indexes)) == snapshot

    async def test_cancelled_commit_writes_nothing(self, store, indexer):
        site, (page,) = await make_pages(store, "/a")

        assert await indexer.commit(page, {"кот": 2}, is_cancelled=lambda: True) is None
        assert store.lemmas == {}
        assert store.indexes == {}

    async def test_remove_page(self, store, indexer):
        site, (first, second) = await make_pages(store, "/a", "/b")
        await indexer.commit(first, {"кот": 2, "собака": 1})
        await indexer.commit(second, {"кот": 1})

        await indexer.remove_page(first)

        assert await lemma_frequencies(store, site.id) == {"кот": 1}
        assert await store.get_page(site.id, "/a") is None
        assert await page_ranks(store, second.id) == {"кот": 1.0}
        await check_index_invariant(store)
