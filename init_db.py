import asyncio
import logging
import sys

from backend.app.core.logging_config import configure_logging
from backend.app.db.base import engine, Base
# Import models so the metadata knows every table
from backend.app.models import User, Wallet, ConnectedWallet, PasswordAttempt  # noqa: F401

logger = logging.getLogger("init_db")


async def init_models(drop: bool = False):
    async with engine.begin() as conn:
        if drop:
            # DEV MODE ONLY: destroys every wallet
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables created")


if __name__ == "__main__":
    configure_logging()
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(init_models(drop="--drop" in sys.argv))
