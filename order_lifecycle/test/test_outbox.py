"""
Tests for the outbox, the event notifier and the real-time dispatcher.
"""
from decimal import Decimal
from unittest import mock
from uuid import uuid4

import requests
from django.test import TestCase, override_settings

from order_lifecycle.domain.events import OrderStatusUpdated, RefundRequested
from order_lifecycle.infra.dispatcher import OutboxDispatcher
from order_lifecycle.infra.notifier import EventNotifier
from order_lifecycle.infra.outbox import OutboxEvent, OutboxRepository, serialize_event
from order_lifecycle.infra.realtime import RealtimeChannelClient, RealtimeChannelError
from order_lifecycle.infra.retry import backoff_delay, retry_with_backoff


def status_event(status="pending-review"):
    return OrderStatusUpdated(aggregate_id=uuid4(), previous_status="", status=status)


def channel(status_code=200, error=None):
    session = mock.Mock(spec=requests.Session)
    session.headers = {}
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = mock.Mock(status_code=status_code, text="")
    return RealtimeChannelClient(url="http://channel.test/events", timeout=1, session=session), session


class OutboxRepositoryTest(TestCase):
    """Tests for OutboxRepository."""

    def setUp(self):
        self.repo = OutboxRepository()

    def test_add_event_is_idempotent_per_event_id(self):
        event = status_event()
        first = self.repo.add_event(event)
        second = self.repo.add_event(event)

        self.assertEqual(first, second)
        self.assertEqual(OutboxEvent.objects.count(), 1)

    def test_serialized_payload_is_json_safe(self):
        event = RefundRequested(
            aggregate_id=uuid4(),
            refund_id=uuid4(),
            refund_type="partial",
            amount=Decimal("31.85"),
            item_ids=["item-1"],
        )
        data = serialize_event(event)

        self.assertEqual(data["amount"], "31.85")
        self.assertEqual(data["refund_id"], str(event.refund_id))
        self.assertEqual(data["version"], "1.0")
        self.assertEqual(data["event_type"], "refund_requested")

    def test_unprocessed_events_skip_exhausted_rows(self):
        fresh = self.repo.add_event(status_event())
        exhausted = self.repo.add_event(status_event())
        OutboxEvent.objects.filter(id=exhausted).update(retry_count=5)

        pending = self.repo.get_unprocessed_events(max_retries=5)

        self.assertEqual([e.id for e in pending], [fresh])


class EventNotifierTest(TestCase):
    """Tests for EventNotifier."""

    def test_publish_waits_for_commit(self):
        notifier = EventNotifier()
        with self.captureOnCommitCallbacks() as callbacks:
            notifier.publish(status_event())
            self.assertFalse(OutboxEvent.objects.exists())

        self.assertEqual(len(callbacks), 1)
        callbacks[0]()
        self.assertEqual(OutboxEvent.objects.count(), 1)

    def test_publish_failure_is_logged_not_raised(self):
        outbox = mock.Mock(spec=OutboxRepository)
        outbox.add_event.side_effect = RuntimeError("outbox unavailable")
        notifier = EventNotifier(outbox)

        with self.assertLogs("order_lifecycle.infra.notifier", level="ERROR") as logs:
            with self.captureOnCommitCallbacks(execute=True):
                notifier.publish(status_event())

        self.assertIn("event_publish_failed", logs.output[0])


class OutboxDispatcherTest(TestCase):
    """Tests for OutboxDispatcher."""

    def setUp(self):
        self.repo = OutboxRepository()
        self.sleeps = []

    def dispatcher(self, client, max_retries=5):
        return OutboxDispatcher(self.repo, client, max_retries=max_retries, sleep=self.sleeps.append)

    def test_delivered_events_are_marked_processed(self):
        client, session = channel()
        event = status_event("picture-reply-pending")
        self.repo.add_event(event)

        delivered = self.dispatcher(client).process_outbox_events()

        self.assertEqual(delivered, 1)
        row = OutboxEvent.objects.get(event_id=event.event_id)
        self.assertTrue(row.processed)
        self.assertIsNotNone(row.processed_at)
        body = session.post.call_args.kwargs["json"]
        self.assertEqual(body["event"], "order_status_updated")
        self.assertEqual(body["data"]["event_id"], str(event.event_id))

    def test_failed_delivery_is_retried_then_counted(self):
        client, session = channel(status_code=503)
        self.repo.add_event(status_event())

        with self.assertLogs("order_lifecycle.infra.dispatcher", level="ERROR"):
            delivered = self.dispatcher(client).process_outbox_events()

        self.assertEqual(delivered, 0)
        self.assertEqual(session.post.call_count, 3)
        self.assertEqual(len(self.sleeps), 2)
        row = OutboxEvent.objects.get()
        self.assertFalse(row.processed)
        self.assertEqual(row.retry_count, 1)
        self.assertIn("503", row.last_error)

    def test_connection_errors_are_channel_errors(self):
        client, _ = channel(error=requests.ConnectionError("refused"))
        with self.assertRaises(RealtimeChannelError):
            client.send("order_status_updated", {})

    def test_rows_past_max_retries_are_not_sent(self):
        client, session = channel()
        outbox_id = self.repo.add_event(status_event())
        OutboxEvent.objects.filter(id=outbox_id).update(retry_count=2)

        delivered = self.dispatcher(client, max_retries=2).process_outbox_events()

        self.assertEqual(delivered, 0)
        session.post.assert_not_called()

    @override_settings(REALTIME_CHANNEL_URL="")
    def test_disabled_channel_drains_without_sending(self):
        session = mock.Mock(spec=requests.Session)
        session.headers = {}
        client = RealtimeChannelClient(session=session)
        self.repo.add_event(status_event())

        self.assertFalse(client.enabled)
        self.assertEqual(self.dispatcher(client).process_outbox_events(), 1)
        session.post.assert_not_called()


class RetryWithBackoffTest(TestCase):
    """Tests for retry_with_backoff."""

    def test_succeeds_after_transient_failures(self):
        sleeps = []
        calls = []

        @retry_with_backoff(max_retries=3, initial_delay=1, jitter=False, exceptions=(KeyError,),
                            sleep=sleeps.append)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise KeyError("missing")
            return "ok"

        self.assertEqual(flaky(), "ok")
        self.assertEqual(sleeps, [1, 2])

    def test_last_failure_propagates(self):
        @retry_with_backoff(max_retries=1, initial_delay=0, jitter=False, sleep=lambda _: None)
        def broken():
            raise ValueError("nope")

        with self.assertRaises(ValueError):
            broken()

    def test_other_exceptions_are_not_retried(self):
        calls = []

        @retry_with_backoff(max_retries=3, exceptions=(KeyError,), sleep=lambda _: None)
        def broken():
            calls.append(1)
            raise ValueError("nope")

        with self.assertRaises(ValueError):
            broken()
        self.assertEqual(len(calls), 1)

    def test_delay_is_capped(self):
        self.assertEqual(backoff_delay(10, 1.0, 5.0, jitter=False), 5.0)
        self.assertLessEqual(backoff_delay(1, 1.0, 60.0), 2.5)
