import asyncio
import signal
from unittest.mock import AsyncMock, MagicMock, patch
from bson import ObjectId

import pytest
from pymongo.errors import PyMongoError

from hooks.delivery.delivery_worker import DeliveryWorker
from hooks.events.event_schema import RepoAction
from hooks.reconcile.reconciler import ReconcileResult
from hooks.repos.repo_store import StoreOutcome


def make_delivery(**overrides):
    base = {
        "_id": ObjectId(),
        "action": "created",
        "listObj": {"repo_id": 42, "repo_name": "svc"},
        "delivery": {"org": "acme", "orgId": 7},
        "attempts": 1,
        "max_attempts": 3,
        "status": "running",
    }
    base.update(overrides)
    return base


def make_worker(scheduler_enabled=True):
    reconciler = AsyncMock()
    reconciler.reconcile.return_value = ReconcileResult(
        action=RepoAction.CREATED, repo_id=42, outcome=StoreOutcome.INSERTED
    )
    worker = DeliveryWorker(AsyncMock(), reconciler, worker_id=1, scheduler_enabled=scheduler_enabled)
    return worker


class TestProcessDelivery:
    @pytest.mark.asyncio
    async def test_decodes_and_reconciles(self):
        worker = make_worker()
        delivery = make_delivery()

        await worker.process_delivery(delivery)

        event, org = worker.reconciler.reconcile.call_args.args
        assert event.action is RepoAction.CREATED
        assert event.repo_id == 42
        assert org.org == "acme"
        assert org.org_id == 7
        assert worker.reconciler.reconcile.call_args.kwargs["delivery"] is delivery
        assert worker.processed_count == 1
        assert worker.current_delivery_id is None

    @pytest.mark.asyncio
    async def test_invalid_payload_rejected(self):
        worker = make_worker()

        await worker.process_delivery(make_delivery(listObj={"repo_name": "svc"}))

        worker.reconciler.reconcile.assert_not_called()
        worker.queue.reject.assert_awaited_once()
        worker.queue.mark_failed.assert_not_called()
        assert worker.failed_count == 1

    @pytest.mark.asyncio
    async def test_missing_org_rejected(self):
        worker = make_worker()

        await worker.process_delivery(make_delivery(delivery={"org": "acme"}))

        worker.queue.reject.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_error_marks_failed(self):
        worker = make_worker()
        worker.reconciler.reconcile.side_effect = PyMongoError("connection reset")
        delivery = make_delivery()

        await worker.process_delivery(delivery)

        worker.queue.mark_failed.assert_awaited_once()
        args = worker.queue.mark_failed.call_args.args
        assert args[0] is delivery
        assert "connection reset" in args[1]
        assert worker.current_delivery_id is None


class TestSchedulerFlag:
    @pytest.mark.asyncio
    async def test_worker_default(self):
        worker = make_worker(scheduler_enabled=False)

        await worker.process_delivery(make_delivery())

        assert worker.reconciler.reconcile.call_args.kwargs["scheduler_enabled"] is False

    @pytest.mark.asyncio
    async def test_delivery_overrides_worker(self):
        worker = make_worker(scheduler_enabled=True)

        await worker.process_delivery(make_delivery(scheduler_enabled=False))

        assert worker.reconciler.reconcile.call_args.kwargs["scheduler_enabled"] is False


class TestCleanup:
    @pytest.mark.asyncio
    async def test_releases_current_delivery(self):
        worker = make_worker()
        worker.current_delivery_id = ObjectId()

        await worker.cleanup()

        worker.queue.release.assert_awaited_once_with(worker.current_delivery_id)

    @pytest.mark.asyncio
    async def test_nothing_to_release(self):
        worker = make_worker()

        await worker.cleanup()

        worker.queue.release.assert_not_called()


class TestSignalHandler:
    def test_signal_sets_shutdown(self):
        from hooks.delivery import delivery_main
        mock_worker = MagicMock(shutdown_requested=False)
        delivery_main.worker_instance = mock_worker
        delivery_main.signal_handler(signal.SIGTERM, None)
        assert mock_worker.shutdown_requested is True


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_exits_on_shutdown(self):
        worker = make_worker()
        worker.queue.acquire.return_value = None

        original_sleep = asyncio.sleep

        async def fake_sleep(n):
            worker.shutdown_requested = True
            await original_sleep(0)

        with patch("asyncio.sleep", side_effect=fake_sleep):
            await worker.run(poll_interval=1)

        assert worker.shutdown_requested is True

    @pytest.mark.asyncio
    async def test_auto_exit_when_queue_drained(self):
        worker = make_worker()
        worker.queue.acquire.side_effect = [make_delivery(), None]
        worker.queue.count_active.return_value = 0

        await worker.run(poll_interval=1, auto_exit=True)

        assert worker.processed_count == 1
        worker.queue.release.assert_not_called()
