"""
Скрипт для проверки запущенного сервиса
Запускает индексацию, ждёт её завершения и выполняет поисковые запросы

    python scripts/check_service.py "запрос" ["запрос" ...]
"""
import asyncio
import os
import sys

import httpx


API_URL = os.getenv("API_URL", "http://localhost:8080")

DEMO_QUERIES = ["поиск", "новости"]


async def start_indexing(client: httpx.AsyncClient) -> bool:
    """Запуск индексации"""
    print("\n📦 Запуск индексации...")
    response = await client.get(f"{API_URL}/api/startIndexing")
    result = response.json()

    if result["result"]:
        print("✓ Индексация запущена")
        return True

    print(f"✗ Ошибка: {result['error']}")
    # Индексация уже идёт - можно просто дождаться её
    return response.status_code == 409


async def wait_indexing(client: httpx.AsyncClient, poll_interval: float = 3.0):
    """Ожидание окончания индексации"""
    while True:
        response = await client.get(f"{API_URL}/api/statistics")
        statistics = response.json()["statistics"]
        total = statistics["total"]

        print(f"   Сайтов: {total['sites']} | Страниц: {total['pages']} | Лемм: {total['lemmas']}")
        if not total["indexing"]:
            break

        await asyncio.sleep(poll_interval)

    for item in statistics["detailed"]:
        error = f" ({item['error']})" if item.get("error") else ""
        print(f"   {item['url']}: {item['status']}{error}")


async def search(client: httpx.AsyncClient, query: str):
    """Поисковый запрос"""
    print(f"\n🔍 Поиск: '{query}'")
    response = await client.get(f"{API_URL}/api/search", params={"query": query, "limit": 5})
    result = response.json()

    if not result["result"]:
        print(f"   ✗ Ошибка: {result['error']}")
        return

    print(f"   Найдено: {result['count']} страниц")
    for i, item in enumerate(result["data"], 1):
        print(f"   {i}. {item['site']}{item['uri']} - {item['title']}")
        print(f"      Релевантность: {item['relevance']:.3f}")
        print(f"      {item['snippet'][:200]}")


async def main():
    """Главная функция"""
    print("=" * 60)
    print("🚀 Проверка сервиса поиска по сайтам")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Проверка доступности API
        print("\n🔌 Проверка подключения к API...")
        try:
            response = await client.get(f"{API_URL}/health", timeout=5.0)
        except httpx.HTTPError as e:
            print(f"✗ Ошибка подключения: {e}")
            print("\nУбедитесь, что сервис запущен:")
            print("  python -m sitesearch")
            return

        if response.status_code != 200:
            print("✗ API недоступен")
            return
        print("✓ API доступен")

        if not await start_indexing(client):
            return
        await wait_indexing(client)

        for query in sys.argv[1:] or DEMO_QUERIES:
            await search(client, query)

    print("\n" + "=" * 60)
    print("✓ Проверка завершена")


if __name__ == "__main__":
    asyncio.run(main())
