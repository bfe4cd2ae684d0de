from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pymongo import UpdateOne
from pymongo.errors import DuplicateKeyError

from core.config.settings import settings
from core.logging.logger import get_logger
from hooks.events.event_schema import STORE_OWNED_FIELDS
from hooks.repos.repo_routing import RepoScope, org_database_name, repo_collection_name
from hooks.shared.time_utils import to_utc_datetime


class StoreOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    SKIPPED = "skipped"    # tombstone된 repo에 대한 update (되살리지 않음)
    DELETED = "deleted"
    ABSENT = "absent"      # 삭제 대상 없음 (없거나 이미 tombstone)


# insert 시에만 적용되는 기본값 ($setOnInsert)
REPO_DEFAULTS = {
    "deleted": False,
    "repo_enabled": True,
    "onboard_complete": False,
    "paginate_complete": False,
}

NOT_DELETED = {"$ne": True}

RepoPatch = Dict[str, Any]


class RepoStore:
    """
    Organization별 repository collection 접근 계층.

    모든 write는 repo_id 기준 단일 document 연산이며, document-level atomicity가
    application lock을 대신한다. Bulk sync와 webhook worker가 같은 key에
    동시에 써도 마지막 write가 남는다.
    """

    def __init__(self, mongo, db_prefix: Optional[str] = None):
        self.mongo = mongo
        self.db_prefix = settings.ORG_DB_PREFIX if db_prefix is None else db_prefix
        self.logger = get_logger(__name__)

    def collection(self, scope: RepoScope):
        db = self.mongo[org_database_name(scope.org, self.db_prefix)]
        return db[repo_collection_name(scope.scheduler_enabled)]

    async def find_one(self, scope: RepoScope, repo_id, projection: Optional[dict] = None) -> Optional[dict]:
        return await self.collection(scope).find_one({"repo_id": repo_id}, projection)

    async def upsert_one(
        self,
        scope: RepoScope,
        repo_id,
        patch: RepoPatch,
        set_defaults_on_insert: bool = True,
        recreate: bool = False,
    ) -> StoreOutcome:
        """
        repo_id 기준 upsert.

        - patch에 있는 필드만 $set (없는 필드는 건드리지 않음)
        - 기본값은 insert 시에만 적용
        - created_at: insert 시 그대로, 기존 record는 더 이른 값으로만 보정
          (onboard_complete 이후에는 변경하지 않음)
        - recreate=False: tombstone된 record는 건드리지 않고 SKIPPED
        - recreate=True: tombstone이면 새로 생성된 repo로 초기화 (lifecycle 필드,
          created_at 포함). 활성 record는 일반 upsert와 동일
        """
        col = self.collection(scope)

        fields = {
            key: value
            for key, value in patch.items()
            if key != "repo_id" and key not in STORE_OWNED_FIELDS
        }
        has_created_at = "created_at" in fields
        created_at = fields.pop("created_at", None)

        if recreate and await self._recreate_tombstone(col, repo_id, fields, has_created_at, created_at):
            self.logger.info(f"[{scope.org}] Repository {repo_id} re-created from tombstone")
            return StoreOutcome.UPDATED

        query = {"repo_id": repo_id, "deleted": NOT_DELETED}

        on_insert = {}
        if set_defaults_on_insert:
            on_insert.update({key: value for key, value in REPO_DEFAULTS.items() if key not in fields})
        if has_created_at:
            on_insert["created_at"] = created_at

        update = {}
        if fields:
            update["$set"] = fields
        if on_insert:
            update["$setOnInsert"] = on_insert
        if not update:
            update["$setOnInsert"] = {"repo_id": repo_id}

        try:
            result = await col.update_one(query, update, upsert=True)
        except DuplicateKeyError:
            # recreate 중 동시 delete → delivery 재시도에서 다시 초기화
            if recreate:
                raise
            # 동일 repo_id가 이미 있는데 filter에 안 걸림 → tombstone이거나 동시 insert
            existing = await col.find_one({"repo_id": repo_id}, {"_id": 0, "deleted": 1})
            if existing and existing.get("deleted"):
                self.logger.info(f"[{scope.org}] Repository {repo_id} is deleted. Update skipped")
                return StoreOutcome.SKIPPED
            raise

        if result.upserted_id is not None:
            return StoreOutcome.INSERTED

        if created_at is not None:
            await self._lower_created_at(col, repo_id, created_at)

        return StoreOutcome.UPDATED

    async def _recreate_tombstone(self, col, repo_id, fields: RepoPatch, has_created_at: bool, created_at) -> bool:
        """
        tombstone된 record만 대상으로 기본값 + payload로 덮어씀.
        payload에 created_at이 없으면 이전 값을 지운다.
        """
        revived = {**REPO_DEFAULTS, **fields, "deleted": False, "deleted_at": None}
        update = {"$set": revived}
        if has_created_at:
            revived["created_at"] = created_at
        else:
            update["$unset"] = {"created_at": ""}

        result = await col.update_one({"repo_id": repo_id, "deleted": True}, update, upsert=False)
        return result.matched_count > 0

    @staticmethod
    def _created_at_guard(repo_id, created_at: datetime) -> dict:
        """더 이른 created_at으로만, onboarding 완료 전 활성 record만"""
        return {
            "repo_id": repo_id,
            "deleted": NOT_DELETED,
            "onboard_complete": {"$ne": True},
            "$or": [
                {"created_at": {"$gt": created_at}},
                {"created_at": None},
            ],
        }

    async def _lower_created_at(self, col, repo_id, created_at: datetime):
        result = await col.update_one(
            self._created_at_guard(repo_id, created_at),
            {"$set": {"created_at": created_at}},
        )
        if result.modified_count > 0:
            self.logger.info(f"Repository {repo_id} created_at corrected to {created_at}")

    async def delete_one(self, scope: RepoScope, repo_id) -> StoreOutcome:
        """물리 삭제 대신 tombstone (deleted=True)"""
        result = await self.collection(scope).update_one(
            {"repo_id": repo_id, "deleted": NOT_DELETED},
            {
                "$set": {
                    "deleted": True,
                    "deleted_at": datetime.now(timezone.utc),
                }
            },
        )

        if result.matched_count == 0:
            self.logger.info(f"[{scope.org}] Repository {repo_id} not found or already deleted")
            return StoreOutcome.ABSENT

        return StoreOutcome.DELETED

    async def update_fields(self, scope: RepoScope, repo_id, fields: RepoPatch) -> bool:
        """
        Update-only patch (upsert=False). 대상이 없으면 로그만 남기고 False
        """
        result = await self.collection(scope).update_one(
            {"repo_id": repo_id},
            {"$set": fields},
            upsert=False,
        )

        if result.matched_count == 0:
            self.logger.info(f"[{scope.org}] Repository {repo_id} not found. Skipping update of {sorted(fields)}")
            return False

        return True

    async def set_updated_at(self, scope: RepoScope, repo_id, updated_at) -> bool:
        return await self.update_fields(scope, repo_id, {"updated_at": to_utc_datetime(updated_at)})

    async def is_deleted(self, scope: RepoScope, repo_id) -> Optional[bool]:
        """삭제 여부. record가 없으면 None"""
        repo = await self.find_one(scope, repo_id, {"_id": 0, "deleted": 1})
        if repo is None:
            return None
        return bool(repo.get("deleted", False))

    async def list_repos(self, scope: RepoScope, query: Optional[dict] = None) -> List[dict]:
        cursor = self.collection(scope).find(query or {})
        return await cursor.to_list(length=None)

    async def bulk_upsert(self, scope: RepoScope, items: Iterable[Tuple[Any, RepoPatch]]):
        """
        Live repository 목록의 (repo_id, patch)를 upsert.

        - 목록에 있는 repo는 존재하므로 tombstone 해제 (deleted=False)
        - 기본값과 created_at은 insert 시에만, 기존 record의 created_at은
          upsert_one과 같은 조건으로 더 이른 값일 때만 보정
        """
        operations = []
        for repo_id, patch in items:
            fields = {
                key: value
                for key, value in patch.items()
                if key != "repo_id" and key not in STORE_OWNED_FIELDS
            }
            has_created_at = "created_at" in fields
            created_at = fields.pop("created_at", None)
            fields.update(deleted=False, deleted_at=None)

            on_insert = {key: value for key, value in REPO_DEFAULTS.items() if key not in fields}
            if has_created_at:
                on_insert["created_at"] = created_at

            update = {"$set": {**fields, "repo_id": repo_id}}
            if on_insert:
                update["$setOnInsert"] = on_insert
            operations.append(UpdateOne({"repo_id": repo_id}, update, upsert=True))

            if created_at is not None:
                operations.append(
                    UpdateOne(
                        self._created_at_guard(repo_id, created_at),
                        {"$set": {"created_at": created_at}},
                    )
                )

        return await self._bulk_write(scope, operations)

    async def bulk_patch(self, scope: RepoScope, items: Iterable[Tuple[Any, RepoPatch]]):
        """(repo_id, patch) 목록을 update-only로 적용. 없는 repo는 무시"""
        operations = [
            UpdateOne({"repo_id": repo_id}, {"$set": patch}, upsert=False)
            for repo_id, patch in items
            if patch
        ]
        return await self._bulk_write(scope, operations)

    async def _bulk_write(self, scope: RepoScope, operations: List[UpdateOne]):
        if not operations:
            self.logger.info(f"[{scope.org}] No repository operations to write")
            return None

        result = await self.collection(scope).bulk_write(operations, ordered=False)
        self.logger.info(
            f"[{scope.org}] Bulk write: {result.matched_count} matched, "
            f"{result.modified_count} modified, {result.upserted_count} upserted"
        )
        return result
