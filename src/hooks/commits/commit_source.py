from typing import List, Optional

from core.config.settings import settings
from core.logging.logger import get_logger
from hooks.repos.repo_routing import COMMIT_COLLECTION, org_database_name


class CommitHistorySource:
    """
    Read-only commit history (org별 database의 commits collection).
    """

    def __init__(self, mongo, db_prefix: Optional[str] = None):
        self.mongo = mongo
        self.db_prefix = settings.ORG_DB_PREFIX if db_prefix is None else db_prefix
        self.logger = get_logger(__name__)

    def collection(self, org_name: str):
        return self.mongo[org_database_name(org_name, self.db_prefix)][COMMIT_COLLECTION]

    async def get_commits(self, org_name: str, repo_id, repo_name: Optional[str] = None, limit: int = 1) -> List[dict]:
        """
        repo의 commit 목록 (commit 시간 오름차순, earliest-first)

        Args:
            org_name: organization 이름 (database 선택)
            repo_id: repository id
            repo_name: 로그용
            limit: 가져올 개수 (reconcile은 첫 번째만 사용)
        """
        cursor = (
            self.collection(org_name)
            .find({"repo_id": repo_id}, {"_id": 0, "date": 1, "sha": 1})
            .sort("date", 1)
            .limit(limit)
        )
        commits = await cursor.to_list(length=limit)

        self.logger.debug(f"[{org_name}] {len(commits)} commits loaded for {repo_name or repo_id}")
        return commits

    async def get_earliest_commit(self, org_name: str, repo_id, repo_name: Optional[str] = None) -> Optional[dict]:
        commits = await self.get_commits(org_name, repo_id, repo_name, limit=1)
        return commits[0] if commits else None
