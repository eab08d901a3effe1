"""
Запуск сервиса: python -m sitesearch
"""
import logging

import uvicorn

from .core.config import config


def main():
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run("sitesearch.api.main:app", host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
