from unittest.mock import AsyncMock, MagicMock

import pytest

from hooks.onboarding.onboarding_indexes import ensure_organization_indexes
from hooks.onboarding.onboarding_trigger import OrgOnboardingTrigger


def make_trigger(matched=1):
    trigger = OrgOnboardingTrigger(MagicMock(), db_name="repohook")
    trigger.orgs_col = AsyncMock()
    trigger.orgs_col.update_one.return_value = MagicMock(matched_count=matched)
    return trigger


class TestTriggerOnboarding:
    @pytest.mark.asyncio
    async def test_sets_pending_flags(self):
        trigger = make_trigger()

        assert await trigger.trigger_onboarding(7) is True

        call = trigger.orgs_col.update_one.call_args
        query, update = call.args
        assert query == {"org_id": 7}
        assert update["$set"]["paginate_pending"] is True
        assert update["$set"]["onboard_pending"] is True
        assert call.kwargs == {"upsert": False}

    @pytest.mark.asyncio
    async def test_unknown_org(self):
        trigger = make_trigger(matched=0)

        assert await trigger.trigger_onboarding(99) is False


class TestOrganizationIndexes:
    @pytest.mark.asyncio
    async def test_org_id_unique(self):
        col = AsyncMock()
        db = MagicMock()
        db.__getitem__.return_value = col

        await ensure_organization_indexes(db)

        db.__getitem__.assert_called_once_with("organizations")
        col.create_index.assert_awaited_once_with("org_id", unique=True)
