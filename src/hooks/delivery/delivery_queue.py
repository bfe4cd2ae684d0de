from datetime import datetime, timezone
from typing import Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from core.config.settings import settings
from core.logging.logger import get_logger

DELIVERY_COLLECTION = "hook_deliveries"


class DeliveryQueue:
    """
    Webhook delivery 상태 관리 (pending → running → done / failed).

    Redelivery는 이 queue의 몫: 실패한 delivery는 attempts < max_attempts인 동안
    pending으로 돌아가고, 다음 worker가 다시 가져간다.
    """

    def __init__(self, mongo, db_name: Optional[str] = None):
        self.db = mongo[db_name or settings.MONGO_DB_NAME]
        self.deliveries_col = self.db[DELIVERY_COLLECTION]
        self.logger = get_logger(__name__)

    async def enqueue(self, delivery: dict):
        """
        Delivery 적재. 같은 guid가 이미 있으면 (upstream 재전송) None
        """
        try:
            result = await self.deliveries_col.insert_one(delivery)
        except DuplicateKeyError:
            self.logger.info(f"Delivery {delivery.get('guid')} already queued. Skipped")
            return None

        return result.inserted_id

    async def acquire(self) -> Optional[dict]:
        """
        pending delivery를 atomic하게 가져와 running으로 변경
        """
        now = datetime.now(timezone.utc)
        return await self.deliveries_col.find_one_and_update(
            {
                "status": "pending",
                "$expr": {"$lt": ["$attempts", "$max_attempts"]},
            },
            {
                "$set": {
                    "status": "running",
                    "started_at": now,
                    "updated_at": now,
                },
                "$inc": {"attempts": 1},
            },
            sort=[("created_at", 1)],
            return_document=ReturnDocument.AFTER,
        )

    async def notify_processed(self, delivery: dict):
        """Delivery 처리 완료 (ack)"""
        now = datetime.now(timezone.utc)
        await self.deliveries_col.update_one(
            {"_id": delivery["_id"]},
            {
                "$set": {
                    "status": "done",
                    "completed_at": now,
                    "updated_at": now,
                    "error_message": None,
                }
            },
        )
        self.logger.info(f"[Delivery {delivery['_id']}] ✅ Processed")

    async def mark_failed(self, delivery: dict, error_message: str) -> str:
        """
        Delivery를 failed로 마킹 (재시도 제한 고려)

        Returns:
            변경된 status ("pending" = 재시도 예정, "failed" = 포기)
        """
        delivery_id = delivery["_id"]
        attempts = delivery.get("attempts", 0)
        max_attempts = delivery.get("max_attempts", settings.DELIVERY_MAX_ATTEMPTS)

        if attempts >= max_attempts:
            status = "failed"
            self.logger.error(f"Delivery {delivery_id} permanently failed after {attempts} attempts")
        else:
            status = "pending"  # 재시도 가능
            self.logger.warning(f"Delivery {delivery_id} failed (attempt {attempts}/{max_attempts}), will retry")

        now = datetime.now(timezone.utc)
        await self.deliveries_col.update_one(
            {"_id": delivery_id},
            {
                "$set": {
                    "status": status,
                    "completed_at": now if status == "failed" else None,
                    "updated_at": now,
                    "error_message": error_message,
                }
            },
        )
        return status

    async def reject(self, delivery: dict, error_message: str):
        """재시도해도 의미 없는 delivery (잘못된 payload) → 즉시 failed"""
        now = datetime.now(timezone.utc)
        await self.deliveries_col.update_one(
            {"_id": delivery["_id"]},
            {
                "$set": {
                    "status": "failed",
                    "completed_at": now,
                    "updated_at": now,
                    "error_message": error_message,
                }
            },
        )
        self.logger.error(f"Delivery {delivery['_id']} rejected: {error_message}")

    async def requeue(self, delivery_id) -> bool:
        """특정 delivery를 attempts 초기화 후 다시 pending으로"""
        result = await self.deliveries_col.update_one(
            {"_id": delivery_id, "status": {"$in": ["failed", "done"]}},
            {
                "$set": {
                    "status": "pending",
                    "attempts": 0,
                    "updated_at": datetime.now(timezone.utc),
                    "completed_at": None,
                    "error_message": None,
                }
            },
        )
        if result.modified_count == 0:
            self.logger.info(f"Delivery {delivery_id} not found or still active. Requeue skipped")
            return False

        self.logger.info(f"Delivery {delivery_id} requeued")
        return True

    async def requeue_failed(self) -> int:
        result = await self.deliveries_col.update_many(
            {"status": "failed"},
            {
                "$set": {
                    "status": "pending",
                    "attempts": 0,
                    "updated_at": datetime.now(timezone.utc),
                    "completed_at": None,
                }
            },
        )
        if result.modified_count > 0:
            self.logger.info(f"🔁 Requeued {result.modified_count} failed deliveries")
        return result.modified_count

    async def release(self, delivery_id) -> bool:
        """
        Shutdown 시 running delivery를 pending으로 복구 (attempt 반환)
        """
        result = await self.deliveries_col.update_one(
            {"_id": delivery_id, "status": "running"},
            {
                "$set": {
                    "status": "pending",
                    "updated_at": datetime.now(timezone.utc),
                },
                "$inc": {"attempts": -1},
            },
        )
        return result.modified_count > 0

    async def restore_stale_running(self) -> int:
        """이전 프로세스가 남긴 running delivery 복구"""
        result = await self.deliveries_col.update_many(
            {"status": "running"},
            {"$set": {"status": "pending", "updated_at": datetime.now(timezone.utc)}},
        )
        if result.modified_count > 0:
            self.logger.info(f"🔧 Restored {result.modified_count} stale running deliveries to pending")
        return result.modified_count

    async def count_active(self) -> int:
        return await self.deliveries_col.count_documents({"status": {"$in": ["pending", "running"]}})

    async def status_counts(self) -> Dict[str, int]:
        pipeline = [
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
            {"$sort": {"_id": 1}},
        ]

        status_counts = {}
        async for doc in self.deliveries_col.aggregate(pipeline):
            status_counts[doc["_id"]] = doc["count"]
        return status_counts

    async def recent_failed(self, limit: int = 5) -> List[dict]:
        cursor = self.deliveries_col.find({"status": "failed"}).sort("updated_at", -1).limit(limit)
        return await cursor.to_list(length=limit)
