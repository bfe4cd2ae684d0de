from dataclasses import dataclass
from typing import Any, Optional, Tuple

from core.logging.logger import get_logger
from hooks.errors import InvalidEventError
from hooks.events.event_schema import OrgContext, RepoAction, RepoEvent, RepoListItem
from hooks.repos.repo_routing import RepoScope
from hooks.repos.repo_store import StoreOutcome
from hooks.shared.time_utils import is_earlier, to_utc_datetime


@dataclass(frozen=True)
class ReconcileResult:
    action: RepoAction
    repo_id: Any
    outcome: StoreOutcome
    created_at_repaired: bool = False
    onboarding_triggered: bool = False


class RepoReconciler:
    """
    Repository webhook event 1건을 repository store에 반영한다.

    Collaborators:
        repo_store: upsert_one / delete_one (repo_id 기준 단일 document 연산)
        commit_source: get_earliest_commit(org_name, repo_id, repo_name)
        delivery_queue: notify_processed(delivery), best effort
        onboarding: trigger_onboarding(org_id)

    Event 사이에 공유하는 상태가 없으므로 인스턴스 하나를 여러 worker가 동시에 사용한다.
    Store / commit source 에러는 그대로 전파되고, 호출자는 delivery를 ack하지 않는다.
    """

    def __init__(self, repo_store, commit_source, delivery_queue=None, onboarding=None):
        self.repo_store = repo_store
        self.commit_source = commit_source
        self.delivery_queue = delivery_queue
        self.onboarding = onboarding
        self.logger = get_logger(__name__)

    async def reconcile(
        self,
        event: RepoEvent,
        org: OrgContext,
        delivery: Optional[dict] = None,
        scheduler_enabled: bool = True,
    ) -> ReconcileResult:
        self._validate(event, org)

        scope = RepoScope(org=org.org, scheduler_enabled=scheduler_enabled)
        action = event.action
        item = event.item

        self.logger.info(f"[{org.org}] {action.value} repository from hooks: {item.repo_name} ({item.repo_id})")

        if action is RepoAction.DELETED:
            outcome = await self.repo_store.delete_one(scope, item.repo_id)
            await self._notify_processed(delivery)
            return ReconcileResult(action=action, repo_id=item.repo_id, outcome=outcome)

        repaired = False
        if action is not RepoAction.CREATED:
            item, repaired = await self._repair_created_at(org.org, item)

        outcome = await self.repo_store.upsert_one(
            scope,
            item.repo_id,
            item.to_patch(),
            set_defaults_on_insert=True,
            recreate=action is RepoAction.CREATED,
        )
        await self._notify_processed(delivery)

        # onboarding은 실제 insert 여부가 아니라 선언된 action 기준
        triggered = False
        if action is RepoAction.CREATED and self.onboarding is not None:
            triggered = bool(await self.onboarding.trigger_onboarding(org.org_id))

        return ReconcileResult(
            action=action,
            repo_id=item.repo_id,
            outcome=outcome,
            created_at_repaired=repaired,
            onboarding_triggered=triggered,
        )

    def _validate(self, event: RepoEvent, org: OrgContext):
        repo_id = event.item.repo_id
        if repo_id is None or (isinstance(repo_id, str) and not repo_id.strip()):
            raise InvalidEventError("repo_id is required")
        if not org.org:
            raise InvalidEventError("organization is required")

    async def _repair_created_at(self, org_name: str, item: RepoListItem) -> Tuple[RepoListItem, bool]:
        """
        첫 commit이 event의 created_at보다 이르면 created_at을 commit 시간으로 교체.
        Upstream이 실제 첫 활동보다 늦은 생성 시간을 보내는 경우 보정.
        """
        commit = await self.commit_source.get_earliest_commit(org_name, item.repo_id, item.repo_name)
        if not commit or not is_earlier(commit.get("date"), item.created_at):
            return item, False

        commit_date = to_utc_datetime(commit["date"])
        self.logger.info(
            f"[{org_name}] Repository {item.repo_id} created_at {item.created_at} "
            f"-> first commit {commit_date}"
        )
        return item.model_copy(update={"created_at": commit_date}), True

    async def _notify_processed(self, delivery: Optional[dict]):
        if delivery is None or self.delivery_queue is None:
            return

        try:
            await self.delivery_queue.notify_processed(delivery)
        except Exception as e:
            self.logger.error(
                f"Failed to update hook delivery {delivery.get('_id')}: {e}",
                exc_info=True,
            )
