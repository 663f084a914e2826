"""
Initialize database tables
Run this once to create tables
"""

import asyncio

from ..config import Settings
from ..logs import install_logging
from .database import create_engine, init_db


async def _run(settings: Settings) -> None:
    engine = create_engine(settings.database)
    try:
        await init_db(engine)
    finally:
        await engine.dispose()


def main() -> None:
    settings = Settings()
    install_logging(settings.logging)
    asyncio.run(_run(settings))


if __name__ == "__main__":
    main()
