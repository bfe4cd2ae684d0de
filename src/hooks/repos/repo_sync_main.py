import asyncio
import sys

from core.containers.app_containers import AppContainer
from hooks.repos.repo_indexes import ensure_org_indexes
from hooks.repos.repo_routing import org_database_name
from core.config.settings import settings
from core.logging.logger import get_logger

logger = get_logger(__name__)


async def main(orgs):
    """
    Organization별 full resync (GitHub live repository list → repos collection)

    Usage:
        python -m hooks.repos.repo_sync_main acme other-org
    """
    if not orgs:
        logger.error("No organization given")
        return

    container = AppContainer()
    mongo = container.mongo_client()
    synchronizer = container.repo_synchronizer()

    await mongo.admin.command("ping")
    logger.info("MongoDB connected")

    for org in orgs:
        await ensure_org_indexes(mongo[org_database_name(org, settings.ORG_DB_PREFIX)])
        try:
            await synchronizer.sync_from_github(org)
        except Exception as e:
            logger.error(f"[{org}] Repository sync failed: {e}", exc_info=True)

    mongo.close()


if __name__ == "__main__":
    try:
        asyncio.run(main(sys.argv[1:]))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutdown complete")
