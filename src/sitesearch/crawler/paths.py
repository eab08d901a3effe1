"""
Пути страниц относительно корня сайта
"""
import re
from typing import Iterable, Optional

from ..core.config import SiteConfig

# Адрес другого сайта: "http://", "ftp://" и т.п. в начале пути
FOREIGN_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*://")


def normalize_path(site_url: str, url: str) -> str:
    """
    Путь страницы в едином виде: без параметров, без слэша на конце,
    в нижнем регистре, начиная с "/"

    Raises:
        ValueError: ссылка ведёт на другой сайт
    """
    url = url.strip()

    # Очистка от параметров
    end = url.find("?")
    if end != -1:
        url = url[:end]

    if url.endswith("/"):
        url = url[:-1]

    url = url.lower()

    root_url = site_url.lower()
    if url.startswith(root_url):
        url = url[len(root_url):]

    if FOREIGN_SCHEME.match(url):
        raise ValueError(f'URL "{url}" must start with "{root_url}" or with "/"')

    if not url.startswith("/"):
        url = "/" + url

    return url


def page_url(site_url: str, path: str) -> str:
    """Полный адрес страницы"""
    return site_url.rstrip("/") + "/" + path.lstrip("/")


def find_site_config(sites: Iterable[SiteConfig], url: str) -> Optional[SiteConfig]:
    """Сайт из настроек, которому принадлежит адрес"""
    url = url.strip().lower()
    for site in sites:
        if url == site.url or url.startswith(site.url + "/") or url.startswith(site.url + "?"):
            return site
    return None
