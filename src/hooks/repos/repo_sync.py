import asyncio
from typing import Iterable, List, Optional

from core.logging.logger import get_logger
from hooks.repos.repo_mapper import map_repo_list_item
from hooks.repos.repo_routing import RepoScope

# update_multi_repo가 갱신하는 필드 (list entry 필드 → record 필드).
# created_at은 webhook reconcile만 보정하므로 제외
REFRESH_FIELDS = {
    "name": "repo_name",
    "size": "size",
    "updated_at": "updated_at",
    "language": "language",
}


class RepoSynchronizer:
    """
    Event 경로 밖에서 repository collection 전체를 동기화하는 bulk sync.
    항상 durable collection(repos)을 대상으로 하며, webhook worker와 같은 key에
    동시에 써도 store의 단일 document 연산으로 정합성이 유지된다.
    """

    def __init__(self, repo_store, github_client=None):
        self.repo_store = repo_store
        self.github_client = github_client
        self.logger = get_logger(__name__)

    async def get_repo_list(self, org: str, query: Optional[dict] = None) -> List[dict]:
        self.logger.info(f"[{org}] Get repositories list from DB")
        return await self.repo_store.list_repos(RepoScope(org=org), query)

    async def set_repo_list(self, org: str, repo_list: Iterable[dict]):
        """
        최신 repository 목록으로 upsert하고 onboarding 상태를 초기화
        (entry의 id/name → repo_id/repo_name)
        """
        self.logger.info(f"[{org}] Updating latest repository list to repo collection")

        items = []
        for raw in repo_list:
            entry = dict(raw)
            repo_id = entry.pop("id")
            entry["repo_name"] = entry.pop("name", None)
            entry.update(
                repo_enabled=True,
                onboard_complete=False,
                paginate_complete=False,
            )
            items.append((repo_id, entry))

        return await self.repo_store.bulk_upsert(RepoScope(org=org), items)

    async def update_multi_repo(self, org: str, repo_list: Iterable[dict]):
        """이미 있는 repo만 최신 정보로 갱신 (upsert 없음)"""
        self.logger.info(f"[{org}] Updating latest repo details in repo collection")

        items = []
        for raw in repo_list:
            patch = {field: raw[key] for key, field in REFRESH_FIELDS.items() if key in raw}
            items.append((raw["id"], patch))

        return await self.repo_store.bulk_patch(RepoScope(org=org), items)

    async def update_repo(self, org: str, repo_id, fields: dict) -> bool:
        self.logger.info(f"[{org}] Updating {sorted(fields)} of repository {repo_id}")
        return await self.repo_store.update_fields(RepoScope(org=org), repo_id, fields)

    async def sync_from_github(self, org: str):
        """
        GitHub의 live repository 목록으로 full resync
        """
        if self.github_client is None:
            raise RuntimeError("GitHub client is not configured")

        repos = await asyncio.to_thread(self.github_client.list_org_repositories, org)
        repos = await asyncio.to_thread(list, repos)
        self.logger.info(f"[{org}] Found {len(repos)} repositories on GitHub")

        repo_list = [map_repo_list_item(repo) for repo in repos]
        return await self.set_repo_list(org, repo_list)
