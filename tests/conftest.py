import pytest

from hooks.events.event_schema import STORE_OWNED_FIELDS
from hooks.reconcile.reconciler import RepoReconciler
from hooks.repos.repo_store import REPO_DEFAULTS, StoreOutcome


class FakeRepoStore:
    """In-memory RepoStore: (org, scheduler_enabled) → {repo_id: record}"""

    def __init__(self):
        self.collections = {}
        self.fail_with = None
        self.calls = []

    def records(self, org, scheduler_enabled=True):
        return self.collections.setdefault((org, scheduler_enabled), {})

    async def upsert_one(self, scope, repo_id, patch, set_defaults_on_insert=True, recreate=False):
        self.calls.append(("upsert_one", scope, repo_id))
        if self.fail_with:
            raise self.fail_with

        records = self.records(scope.org, scope.scheduler_enabled)
        fields = {k: v for k, v in patch.items() if k != "repo_id" and k not in STORE_OWNED_FIELDS}
        has_created_at = "created_at" in fields
        created_at = fields.pop("created_at", None)

        existing = records.get(repo_id)
        if existing is not None and existing.get("deleted"):
            if not recreate:
                return StoreOutcome.SKIPPED
            existing.pop("created_at", None)
            existing.update(REPO_DEFAULTS)
            existing.update(fields, deleted=False, deleted_at=None)
            if has_created_at:
                existing["created_at"] = created_at
            return StoreOutcome.UPDATED

        if existing is None:
            record = {"repo_id": repo_id}
            if set_defaults_on_insert:
                record.update(REPO_DEFAULTS)
            record.update(fields)
            if has_created_at:
                record["created_at"] = created_at
            records[repo_id] = record
            return StoreOutcome.INSERTED

        existing.update(fields)
        current = existing.get("created_at")
        if created_at is not None and not existing.get("onboard_complete"):
            if current is None or current > created_at:
                existing["created_at"] = created_at
        return StoreOutcome.UPDATED

    async def delete_one(self, scope, repo_id):
        self.calls.append(("delete_one", scope, repo_id))
        if self.fail_with:
            raise self.fail_with

        record = self.records(scope.org, scope.scheduler_enabled).get(repo_id)
        if record is None or record.get("deleted"):
            return StoreOutcome.ABSENT
        record["deleted"] = True
        return StoreOutcome.DELETED


class FakeCommitSource:
    def __init__(self, commits=None):
        self.commits = commits or {}
        self.fail_with = None
        self.calls = []

    async def get_earliest_commit(self, org_name, repo_id, repo_name=None):
        self.calls.append((org_name, repo_id, repo_name))
        if self.fail_with:
            raise self.fail_with
        commits = self.commits.get(repo_id) or []
        return commits[0] if commits else None


class FakeDeliveryQueue:
    def __init__(self):
        self.processed = []
        self.fail_with = None

    async def notify_processed(self, delivery):
        if self.fail_with:
            raise self.fail_with
        self.processed.append(delivery)


class FakeOnboardingTrigger:
    def __init__(self, found=True):
        self.calls = []
        self.found = found

    async def trigger_onboarding(self, org_id):
        self.calls.append(org_id)
        return self.found


@pytest.fixture
def repo_store():
    return FakeRepoStore()


@pytest.fixture
def commit_source():
    return FakeCommitSource()


@pytest.fixture
def delivery_queue():
    return FakeDeliveryQueue()


@pytest.fixture
def onboarding():
    return FakeOnboardingTrigger()


@pytest.fixture
def reconciler(repo_store, commit_source, delivery_queue, onboarding):
    return RepoReconciler(
        repo_store=repo_store,
        commit_source=commit_source,
        delivery_queue=delivery_queue,
        onboarding=onboarding,
    )
