import asyncio
import logging

from sqlmodel import select

from flowspace.core.config import settings
from flowspace.core.security import get_password_hash
from flowspace.db.session import AsyncSessionLocal, run_migrations
from flowspace.models.user import User, UserRole, UserStatus

logger = logging.getLogger(__name__)


async def init_master() -> None:
    if not (settings.FIRST_MASTER_EMAIL and settings.FIRST_MASTER_PASSWORD):
        return

    async with AsyncSessionLocal() as session:
        result = await session.exec(select(User).where(User.email == settings.FIRST_MASTER_EMAIL))
        if result.one_or_none():
            return

        master = User(
            email=settings.FIRST_MASTER_EMAIL,
            name=settings.FIRST_MASTER_NAME or "Master Admin",
            hashed_password=get_password_hash(settings.FIRST_MASTER_PASSWORD),
            role=UserRole.master,
            status=UserStatus.active,
        )
        session.add(master)
        await session.commit()
        logger.info("Created master account %s", master.email)


async def init() -> None:
    await run_migrations()
    await init_master()


if __name__ == "__main__":  # pragma: no cover
    asyncio.run(init())
