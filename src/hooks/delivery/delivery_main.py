import asyncio
import signal

from core.containers.app_containers import AppContainer
from hooks.delivery.delivery_indexes import ensure_delivery_indexes
from hooks.delivery.delivery_monitor import monitor_deliveries_periodically, print_delivery_status
from hooks.delivery.delivery_worker import DeliveryWorker
from hooks.onboarding.onboarding_indexes import ensure_organization_indexes
from hooks.repos.repo_indexes import ensure_known_org_indexes
from core.config.settings import settings
from core.logging.logger import get_logger

logger = get_logger(__name__)

# Global worker reference for signal handler
worker_instance = None


async def run_worker(container: AppContainer):
    """Worker 실행"""
    global worker_instance

    worker = DeliveryWorker(
        delivery_queue=container.delivery_queue(),
        reconciler=container.reconciler(),
        worker_id=settings.WORKER_ID,
        scheduler_enabled=settings.SCHEDULER_ENABLED,
    )
    worker_instance = worker
    await worker.run(poll_interval=settings.DELIVERY_POLL_INTERVAL)


async def main():
    """메인 진입점"""
    container = AppContainer()
    mongo = container.mongo_client()
    db = mongo[settings.MONGO_DB_NAME]
    queue = container.delivery_queue()

    logger.info("=" * 60)
    logger.info("Repository Hook Worker Starting")
    logger.info("=" * 60)

    # 인덱스 생성 (repo_id unique 인덱스가 있어야 tombstone 보호가 동작)
    logger.info("🔧 Ensuring indexes...")
    await ensure_delivery_indexes(db)
    await ensure_organization_indexes(db)
    org_count = await ensure_known_org_indexes(mongo, db["organizations"], settings.ORG_DB_PREFIX)
    logger.info(f"Org indexes ready for {org_count} organizations")
    logger.info("Indexes ready")

    # MongoDB 연결 테스트
    await mongo.admin.command("ping")
    logger.info("MongoDB connected")

    # Stale running delivery 복구 (Worker 1만 실행)
    if settings.WORKER_ID == 1:
        await queue.restore_stale_running()
    await print_delivery_status(queue)

    logger.info("=" * 60)
    monitor_task = asyncio.create_task(
        monitor_deliveries_periodically(queue, interval=settings.MONITOR_INTERVAL)
    )
    try:
        await run_worker(container)
    finally:
        monitor_task.cancel()
        mongo.close()


def signal_handler(signum, frame):
    global worker_instance

    logger.info(f"Received signal {signum}. Initiating graceful shutdown")

    if worker_instance:
        worker_instance.shutdown_requested = True


if __name__ == "__main__":
    # Signal 등록
    signal.signal(signal.SIGINT, signal_handler)   # Ctrl+C
    signal.signal(signal.SIGTERM, signal_handler)  # Docker stop

    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutdown complete")
