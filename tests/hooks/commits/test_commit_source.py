from unittest.mock import AsyncMock, MagicMock

import pytest

from hooks.commits.commit_source import CommitHistorySource


def make_source(commits):
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=commits)
    col = MagicMock()
    col.find.return_value = cursor

    mongo = MagicMock()
    mongo.__getitem__.return_value.__getitem__.return_value = col
    return CommitHistorySource(mongo, db_prefix="org_"), mongo, col, cursor


class TestCommitHistorySource:
    @pytest.mark.asyncio
    async def test_earliest_commit_first(self):
        source, mongo, col, cursor = make_source([{"date": "2024-01-15", "sha": "abc"}])

        commit = await source.get_earliest_commit("Acme", 42, "svc")

        assert commit == {"date": "2024-01-15", "sha": "abc"}
        mongo.__getitem__.assert_called_with("org_acme")
        mongo.__getitem__.return_value.__getitem__.assert_called_with("commits")
        assert col.find.call_args.args[0] == {"repo_id": 42}
        cursor.sort.assert_called_once_with("date", 1)
        cursor.limit.assert_called_once_with(1)

    @pytest.mark.asyncio
    async def test_no_commits(self):
        source, *_ = make_source([])

        assert await source.get_earliest_commit("acme", 42) is None

    @pytest.mark.asyncio
    async def test_get_commits_limit(self):
        source, _, _, cursor = make_source([{"date": 1}, {"date": 2}])

        commits = await source.get_commits("acme", 42, limit=2)

        assert len(commits) == 2
        cursor.to_list.assert_awaited_once_with(length=2)
