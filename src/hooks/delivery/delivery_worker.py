import asyncio
from typing import Optional

from core.logging.logger import get_logger
from hooks.errors import InvalidEventError
from hooks.events.event_schema import OrgContext, RepoEvent


class DeliveryWorker:
    """
    hook_deliveries를 하나씩 가져와 reconcile하는 stateless worker.

    성공 시 ack는 reconciler가 처리하고, 실패 시 delivery를 재시도 대상으로 돌려놓는다.
    """

    def __init__(self, delivery_queue, reconciler, worker_id: int, scheduler_enabled: bool = True):
        self.queue = delivery_queue
        self.reconciler = reconciler
        self.worker_id = worker_id
        self.scheduler_enabled = scheduler_enabled
        self.logger = get_logger(__name__)
        self.current_delivery_id = None
        self.shutdown_requested = False

        self.processed_count = 0
        self.failed_count = 0

    async def cleanup(self):
        """
        Shutdown 시 running delivery를 pending으로 복구
        """
        if self.current_delivery_id:
            restored = await self.queue.release(self.current_delivery_id)
            if restored:
                self.logger.info(f"Restored delivery {self.current_delivery_id} to pending on shutdown")

    def _scheduler_enabled_for(self, delivery: dict) -> bool:
        value = delivery.get("scheduler_enabled")
        return self.scheduler_enabled if value is None else bool(value)

    async def process_delivery(self, delivery: dict):
        """
        단일 delivery 처리 (decode → reconcile)
        """
        self.current_delivery_id = delivery["_id"]

        self.logger.info(
            f"[worker-{self.worker_id}] [Delivery {self.current_delivery_id}] "
            f"{delivery.get('action')} (attempt {delivery.get('attempts')}/{delivery.get('max_attempts')})"
        )

        try:
            event = RepoEvent.from_delivery(delivery)
            org = OrgContext.from_delivery(delivery)

            result = await self.reconciler.reconcile(
                event,
                org,
                delivery=delivery,
                scheduler_enabled=self._scheduler_enabled_for(delivery),
            )
            self.processed_count += 1
            self.logger.info(
                f"[worker-{self.worker_id}] [Delivery {self.current_delivery_id}] "
                f"repo {result.repo_id}: {result.outcome.value}"
            )

        except InvalidEventError as e:
            self.failed_count += 1
            await self.queue.reject(delivery, f"Invalid event: {e}")

        except Exception as e:
            self.failed_count += 1
            error_msg = f"Unexpected error: {str(e)}"
            self.logger.error(f"[worker-{self.worker_id}] [Delivery {self.current_delivery_id}] {error_msg}", exc_info=True)
            await self.queue.mark_failed(delivery, error_msg)

        # 취소된 경우에는 남겨둬서 cleanup이 pending으로 복구
        self.current_delivery_id = None

    async def run(self, poll_interval: int = 10, auto_exit: bool = False):
        """
        무한 루프로 delivery 처리 (Docker에서 실행)
        """
        self.logger.info(f"Worker-{self.worker_id} started. Polling for deliveries...")

        consecutive_empty = 0

        try:
            while not self.shutdown_requested:
                delivery: Optional[dict] = await self.queue.acquire()

                if delivery:
                    consecutive_empty = 0
                    await self.process_delivery(delivery)
                    continue

                consecutive_empty += 1
                if auto_exit:
                    active_count = await self.queue.count_active()
                    if active_count == 0:
                        self.logger.info(f"[worker-{self.worker_id}] No active deliveries. Exiting...")
                        break

                if consecutive_empty == 1:
                    self.logger.info(f"[worker-{self.worker_id}] No pending deliveries. Waiting...")
                elif consecutive_empty % 10 == 0:
                    self.logger.info(
                        f"[worker-{self.worker_id}] Still waiting for deliveries... "
                        f"({consecutive_empty} polls, {consecutive_empty * poll_interval}s elapsed)"
                    )

                # Sleep을 1초씩 쪼개서 shutdown 체크
                for _ in range(poll_interval):
                    if self.shutdown_requested:
                        break
                    await asyncio.sleep(1)

        except asyncio.CancelledError:
            self.logger.info("Worker task cancelled, initiating cleanup...")
        except KeyboardInterrupt:
            self.logger.info("KeyboardInterrupt received, initiating cleanup...")
        except Exception as e:
            self.logger.error(
                f"Unexpected error in worker loop: {e}",
                exc_info=True
            )
        finally:
            self.logger.info("Running cleanup before exit...")
            await self.cleanup()
