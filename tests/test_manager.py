from sitesearch.core.models import Site, Page, IndexingStatus, PROCESSING_CODE
from sitesearch.crawler.manager import CrawlManager

from .conftest import SITE_URL, FakeCache, check_index_invariant

ROOT = SITE_URL + "/"


class TestGuards:
    async def test_start_and_stop_rejections(self, manager, store, fetcher):
        fetcher.pages[ROOT] = "<p>кот</p>"
        fetcher.blocked.add(ROOT)

        response = await manager.stop_indexing()
        assert (response.result, response.error, response.conflict) == (
            False, "Indexing is not running", True
        )

        assert (await manager.start_indexing()).result

        response = await manager.start_indexing()
        assert (response.result, response.error) == (False, "Indexing is already running")
        assert response.conflict

        assert (await manager.stop_indexing()).result

        response = await manager.stop_indexing()
        assert response.error == "Indexing is already stopping"

        response = await manager.start_indexing()
        assert response.error == "Previous indexing is still stopping"

        await manager.wait()

        # Новый запуск после остановки начинается с чистых данных
        assert (await manager.start_indexing()).result
        fetcher.gate.set()
        await manager.wait()

        sites = await store.get_sites()
        assert len(sites) == 1
        assert sites[0].status == IndexingStatus.INDEXED
        assert {page.path for page in store.pages.values()} == {"/"}

    async def test_cache_is_invalidated(
        self, sites, crawler_config, store, fetcher, finder, indexer, locks
    ):
        cache = FakeCache()
        manager = CrawlManager(
            sites, crawler_config, store, fetcher, finder, indexer, locks, cache=cache
        )
        fetcher.pages[ROOT] = "<p>кот</p>"

        await manager.start_indexing()
        await manager.wait()

        assert cache.invalidations >= 2


class TestIndexPage:
    async def test_rejections(self, manager):
        response = await manager.index_page("  ")
        assert (response.result, response.error, response.conflict) == (
            False, "URL is not specified", False
        )

        response = await manager.index_page(None)
        assert response.error == "URL is not specified"

        response = await manager.index_page("https://other.org/a")
        assert response.error == "The page is outside the sites listed in the configuration"

    async def test_reindex_existing_page(self, manager, store, fetcher):
        fetcher.pages[ROOT] = '<a href="/a"></a><p>кот</p>'
        fetcher.pages[SITE_URL + "/a"] = "<p>собаки кота</p>"
        await manager.start_indexing()
        await manager.wait()
        assert {l.lemma: l.frequency for l in store.lemmas.values()} == {"кот": 2, "собака": 1}

        fetcher.pages[SITE_URL + "/a"] = "<p>лошади</p>"
        response = await manager.index_page("HTTPS://EXAMPLE.com/a/")
        assert response.result
        await manager.wait()

        assert {l.lemma: l.frequency for l in store.lemmas.values()} == {"кот": 1, "лошадь": 1}
        site = await store.get_site_by_url(SITE_URL)
        page = await store.get_page(site.id, "/a")
        assert page.code == 200
        assert site.status == IndexingStatus.INDEXED
        await check_index_invariant(store)

    async def test_first_page_creates_site(self, manager, store, fetcher):
        fetcher.pages[SITE_URL + "/a"] = '<a href="/b"></a><p>кота</p>'

        assert (await manager.index_page(SITE_URL + "/a")).result
        await manager.wait()

        site = await store.get_site_by_url(SITE_URL)
        assert site.status == IndexingStatus.INDEXED
        assert {page.path for page in store.pages.values()} == {"/a"}
        assert {l.lemma for l in store.lemmas.values()} == {"кот"}
        # Ссылки страницы не обходятся
        assert fetcher.requested == [SITE_URL + "/a"]

    async def test_page_in_processing_is_skipped(self, manager, store, fetcher):
        site = await store.save_site(Site(url=SITE_URL, name="Example"))
        await store.insert_pages([Page(site_id=site.id, path="/a", code=PROCESSING_CODE)])

        assert (await manager.index_page(SITE_URL + "/a")).result
        await manager.wait()

        assert fetcher.requested == []

    async def test_unexpected_error(self, manager, store, fetcher):
        fetcher.pages[SITE_URL + "/a"] = RuntimeError("boom")

        assert (await manager.index_page(SITE_URL + "/a")).result
        await manager.wait()

        site = await store.get_site_by_url(SITE_URL)
        assert site.status == IndexingStatus.FAILED
        assert site.last_error == "/a: boom"
        assert (await store.get_page(site.id, "/a")).code == 500

    async def test_failed_site_page_can_be_reindexed(self, manager, store, fetcher):
        site = await store.save_site(
            Site(url=SITE_URL, name="Example", status=IndexingStatus.FAILED, last_error="old")
        )
        fetcher.pages[SITE_URL + "/a"] = "<p>кота</p>"

        assert (await manager.index_page(SITE_URL + "/a")).result
        await manager.wait()

        assert (await store.get_page(site.id, "/a")).code == 200
        assert {l.lemma for l in store.lemmas.values()} == {"кот"}
        assert (await store.get_site_by_url(SITE_URL)).status == IndexingStatus.FAILED
