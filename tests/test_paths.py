import pytest

from sitesearch.core.config import SiteConfig
from sitesearch.crawler.paths import normalize_path, page_url, find_site_config

ROOT = "https://example.com"


class TestNormalizePath:
    @pytest.mark.parametrize("url, path", [
        ("https://EXAMPLE.com/a/b/?x=1", "/a/b"),
        ("/a/b/", "/a/b"),
        ("  /News?page=2  ", "/news"),
        ("https://example.com", "/"),
        ("https://example.com/", "/"),
        ("/", "/"),
        ("a/b", "/a/b"),
    ])
    def test_normalizes(self, url, path):
        assert normalize_path(ROOT, url) == path

    def test_rejects_foreign_site(self):
        with pytest.raises(ValueError):
            normalize_path(ROOT, "http://other.org/x")

    def test_query_is_cut_before_prefix_check(self):
        assert normalize_path(ROOT, "/search?u=http://other.org") == "/search"


class TestPageUrl:
    def test_single_slash(self):
        assert page_url(ROOT, "/a") == "https://example.com/a"
        assert page_url(ROOT + "/", "/a") == "https://example.com/a"
        assert page_url(ROOT, "/") == "https://example.com/"


class TestFindSiteConfig:
    SITES = [
        SiteConfig(url="https://example.com", name="Example"),
        SiteConfig(url="https://docs.example.org/", name=""),
    ]

    def test_site_urls_are_normalized(self):
        assert self.SITES[1].url == "https://docs.example.org"
        assert self.SITES[1].name == "https://docs.example.org"

    @pytest.mark.parametrize("url, expected", [
        ("https://example.com", "https://example.com"),
        ("HTTPS://Example.com/a/b", "https://example.com"),
        ("https://docs.example.org/x?y=1", "https://docs.example.org"),
        ("https://example.com.evil.org/x", None),
        ("https://other.org/", None),
    ])
    def test_find(self, url, expected):
        site = find_site_config(self.SITES, url)
        assert (site.url if site else None) == expected
