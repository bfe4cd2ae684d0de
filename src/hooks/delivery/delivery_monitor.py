import asyncio

from core.logging.logger import get_logger


async def print_delivery_status(queue):
    """
    Delivery 상태 요약 출력
    """
    logger = get_logger(__name__)

    status_counts = await queue.status_counts()

    total = sum(status_counts.values())
    pending = status_counts.get("pending", 0)
    running = status_counts.get("running", 0)
    done = status_counts.get("done", 0)
    failed = status_counts.get("failed", 0)

    logger.info("=" * 60)
    logger.info("📊 Hook Delivery Status Summary")
    logger.info("=" * 60)
    logger.info(f"Total:    {total:6d}")
    logger.info(f"Pending:  {pending:6d}  ({pending/total*100:.1f}%)" if total > 0 else "Pending:      0")
    logger.info(f"Running:  {running:6d}  ({running/total*100:.1f}%)" if total > 0 else "Running:      0")
    logger.info(f"Done:     {done:6d}  ({done/total*100:.1f}%)" if total > 0 else "Done:         0")
    logger.info(f"Failed:   {failed:6d}  ({failed/total*100:.1f}%)" if total > 0 else "Failed:       0")
    logger.info("=" * 60)

    # Failed delivery 세부 정보 (최근 5개)
    if failed > 0:
        logger.info("Recent Failed Deliveries:")
        for delivery in await queue.recent_failed(limit=5):
            envelope = delivery.get("delivery") or {}
            logger.error(
                f"  - {envelope.get('org')} | "
                f"{delivery.get('action')} repo {(delivery.get('listObj') or {}).get('repo_id')} | "
                f"Error: {delivery.get('error_message', 'Unknown')}"
            )
        logger.info("=" * 60)

    return status_counts


async def monitor_deliveries_periodically(queue, interval: int = 600):
    """
    주기적으로 delivery 상태 출력

    Args:
        interval: 출력 간격 (초, 기본 10분)
    """
    logger = get_logger(__name__)
    logger.info(f"Delivery monitor started (interval: {interval}s)")

    while True:
        try:
            await asyncio.sleep(interval)
            await print_delivery_status(queue)
        except asyncio.CancelledError:
            logger.info("Delivery monitor stopped")
            break
        except Exception as e:
            logger.error(f"Monitor error: {e}", exc_info=True)
