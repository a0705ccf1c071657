"""
Create the tables and the first admin account.

Run once after pointing DATABASE_URL at an empty database:
  ADMIN_EMAIL=admin@bca.edu python -m app.db.seed_admin

The admin signs in with DEFAULT_PASSWORD and is asked to change it. Running again is a no-op.
"""
import asyncio
import logging

from app.auth.services import ensure_admin
from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.session import AsyncSessionLocal, create_tables

logger = logging.getLogger(__name__)


async def main() -> None:
    setup_logging(settings.log_level, settings.log_format)
    await create_tables()
    async with AsyncSessionLocal() as db:
        try:
            created = await ensure_admin(db)
        except Exception:
            await db.rollback()
            logger.exception("Admin seed failed")
            raise
    if created:
        logger.info("Admin %s created; sign in with the default password and change it", settings.admin_email)
    else:
        logger.info("Admin seed done; nothing to do")


if __name__ == "__main__":
    asyncio.run(main())
