"""
Tests for the subscription service.
"""

import asyncio
import json
import sqlite3
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import httpx

from subscription_desk.core.models import Publication
from subscription_desk.core.subscribe import (
    NAME_REQUIRED_MESSAGE,
    SELECTION_REQUIRED_MESSAGE,
    SUBSCRIBE_FAILED_MESSAGE,
    SubscribeOutcome,
    SubscribeState,
    SubscriptionService,
)
from subscription_desk.sdk.gateway import RemoteGateway
from subscription_desk.storage.backends import InMemoryStorage
from subscription_desk.storage.ledger import LEDGER_KEY
from subscription_desk.storage.models import PaymentStatus

NOW = datetime(2024, 3, 1, 9, 30, 0, tzinfo=timezone.utc)
DAILY_TIMES = Publication("p1", "Daily Times", "English", 100.0)


def make_service(gateway, ledger, notifier):
    return SubscriptionService(gateway, ledger, notifier, clock=lambda: NOW)


class TestSubscribeSuccess:
    """Test a confirmed subscription."""

    def test_posts_trimmed_name_and_price(self, backend, gateway, ledger, notifier):
        service = make_service(gateway, ledger, notifier)

        outcome = asyncio.run(service.subscribe(DAILY_TIMES, "  Asha  "))

        assert outcome == SubscribeOutcome.COMMITTED
        body = json.loads(backend.calls("subscribe")[0].content)
        assert body == {"customerName": "Asha", "publicationId": "p1", "amount": 100.0}

    def test_appends_one_paid_record(self, gateway, ledger, notifier):
        service = make_service(gateway, ledger, notifier)

        asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        records = ledger.records()
        assert len(records) == 1
        record = records[0]
        assert record.subscription_name == "Daily Times"
        assert record.amount == 100.0
        assert record.status == PaymentStatus.PAID
        assert record.paid_date == NOW
        assert record.due_date == datetime(2024, 3, 31, 9, 30, 0, tzinfo=timezone.utc)
        assert service.last_record == record

    def test_broadcasts_once(self, gateway, ledger, notifier):
        listener = Mock()
        ledger.subscribe(listener)

        asyncio.run(make_service(gateway, ledger, notifier).subscribe(DAILY_TIMES, "Asha"))

        listener.assert_called_once()

    def test_success_notification(self, gateway, ledger, notifier):
        asyncio.run(make_service(gateway, ledger, notifier).subscribe(DAILY_TIMES, "Asha"))

        assert notifier.last.message == "Subscribed to Daily Times successfully!"
        assert notifier.errors() == []

    def test_committed_is_terminal(self, backend, gateway, ledger, notifier):
        """A second confirm after commit does nothing until reset."""
        service = make_service(gateway, ledger, notifier)
        asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        outcome = asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        assert outcome == SubscribeOutcome.REJECTED
        assert service.state == SubscribeState.COMMITTED
        assert len(backend.calls("subscribe")) == 1
        assert len(ledger.records()) == 1

    def test_reset_allows_new_attempt(self, backend, gateway, ledger, notifier):
        service = make_service(gateway, ledger, notifier)
        asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        service.reset()
        evening = Publication("p2", "Evening Post", "Hindi", 80.0)
        outcome = asyncio.run(service.subscribe(evening, "Asha"))

        assert outcome == SubscribeOutcome.COMMITTED
        assert len(ledger.records()) == 2


class TestSubscribeFailure:
    """Test rejected and failed submissions."""

    def test_blank_name_rejected_locally(self, backend, gateway, ledger, notifier):
        service = make_service(gateway, ledger, notifier)

        outcome = asyncio.run(service.subscribe(DAILY_TIMES, "   "))

        assert outcome == SubscribeOutcome.REJECTED
        assert notifier.errors() == [NAME_REQUIRED_MESSAGE]
        assert backend.requests == []
        assert service.state == SubscribeState.IDLE

    def test_no_selection_rejected_locally(self, backend, gateway, ledger, notifier):
        outcome = asyncio.run(make_service(gateway, ledger, notifier).subscribe(None, "Asha"))

        assert outcome == SubscribeOutcome.REJECTED
        assert notifier.errors() == [SELECTION_REQUIRED_MESSAGE]
        assert backend.requests == []

    def test_server_error_leaves_ledger_unchanged(self, backend, gateway, ledger, notifier):
        backend.fail("subscribe", 409, "Already active")
        listener = Mock()
        ledger.subscribe(listener)
        service = make_service(gateway, ledger, notifier)

        outcome = asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        assert outcome == SubscribeOutcome.FAILED
        assert ledger.records() == []
        listener.assert_not_called()
        assert notifier.errors() == ["Already active"]
        assert service.state == SubscribeState.IDLE

    def test_generic_message_without_server_message(self, backend, gateway, ledger, notifier):
        backend.fail("subscribe", 500)

        asyncio.run(make_service(gateway, ledger, notifier).subscribe(DAILY_TIMES, "Asha"))

        assert notifier.errors() == [SUBSCRIBE_FAILED_MESSAGE]

    def test_transport_error(self, ledger, notifier):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        gateway = RemoteGateway(
            base_url="https://api.test/api",
            storage=InMemoryStorage(),
            transport=httpx.MockTransport(handler)
        )

        outcome = asyncio.run(make_service(gateway, ledger, notifier).subscribe(DAILY_TIMES, "Asha"))

        assert outcome == SubscribeOutcome.FAILED
        assert notifier.errors() == [SUBSCRIBE_FAILED_MESSAGE]
        assert ledger.records() == []

    def test_retry_after_failure(self, backend, gateway, ledger, notifier):
        """A failed attempt returns to idle and can be tried again."""
        backend.fail("subscribe", 500)
        service = make_service(gateway, ledger, notifier)
        asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        del backend.failures["subscribe"]
        outcome = asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        assert outcome == SubscribeOutcome.COMMITTED
        assert len(ledger.records()) == 1

    def test_unreadable_stored_entry_does_not_block_commit(self, backend, gateway, storage, ledger, notifier):
        """Entries another view wrote in a different shape stay and do not fail the write."""
        unreadable = {"id": "1", "subscriptionName": "Old", "amount": 5, "status": "overdue"}
        storage.set_item(LEDGER_KEY, json.dumps([unreadable]))

        outcome = asyncio.run(make_service(gateway, ledger, notifier).subscribe(DAILY_TIMES, "Asha"))

        assert outcome == SubscribeOutcome.COMMITTED
        stored = json.loads(storage.get_item(LEDGER_KEY))
        assert len(stored) == 2
        assert stored[0] == unreadable
        assert stored[1]["subscriptionName"] == "Daily Times"
        assert notifier.errors() == []

    def test_ledger_write_failure_reported(self, backend, gateway, ledger, notifier):
        """The server keeps the subscription even when the local write fails."""
        service = make_service(gateway, ledger, notifier)

        with patch.object(ledger, "append", side_effect=sqlite3.OperationalError("disk I/O error")):
            outcome = asyncio.run(service.subscribe(DAILY_TIMES, "Asha"))

        assert outcome == SubscribeOutcome.FAILED
        assert notifier.errors() == [SUBSCRIBE_FAILED_MESSAGE]
        assert len(backend.subscriptions["Asha"]) == 1
        assert service.state == SubscribeState.IDLE


class TestSubscribeConcurrency:
    """Test double submission while a request is in flight."""

    def test_second_submit_while_submitting_is_rejected(self, ledger, notifier):
        async def scenario():
            release = asyncio.Event()
            posts = []

            async def handler(request):
                posts.append(request)
                await release.wait()
                return httpx.Response(201)

            gateway = RemoteGateway(
                base_url="https://api.test/api",
                storage=InMemoryStorage(),
                transport=httpx.MockTransport(handler)
            )
            service = make_service(gateway, ledger, notifier)

            first = asyncio.create_task(service.subscribe(DAILY_TIMES, "Asha"))
            await asyncio.sleep(0)
            assert service.busy
            second = await service.subscribe(DAILY_TIMES, "Asha")

            release.set()
            return await first, second, len(posts)

        first, second, post_count = asyncio.run(scenario())

        assert first == SubscribeOutcome.COMMITTED
        assert second == SubscribeOutcome.REJECTED
        assert post_count == 1
        assert len(ledger.records()) == 1
