"""
Tests for the in-process ChangeNotifier.
"""
import queue
import threading

import pytest

from app.services.metrics.change_notifier import ChangeNotifier, METRICS_REFRESHED_TOPIC


@pytest.fixture
def notifier():
    return ChangeNotifier()


class TestChangeNotifier:

    def test_subscriber_receives_payload(self, notifier):
        sub = notifier.subscribe(METRICS_REFRESHED_TOPIC)

        delivered = notifier.publish(METRICS_REFRESHED_TOPIC, {"calculated_by": "admin"})

        assert delivered == 1
        assert sub.get(timeout=1) == {"calculated_by": "admin"}

    def test_other_topics_not_delivered(self, notifier):
        sub = notifier.subscribe("cases:created")

        notifier.publish(METRICS_REFRESHED_TOPIC, {"x": 1})

        assert sub.drain() == []

    def test_publish_without_subscribers(self, notifier):
        assert notifier.publish(METRICS_REFRESHED_TOPIC, None) == 0

    def test_every_subscriber_gets_a_copy(self, notifier):
        subs = [notifier.subscribe(METRICS_REFRESHED_TOPIC) for _ in range(3)]

        notifier.publish(METRICS_REFRESHED_TOPIC, "refreshed")

        assert [s.drain() for s in subs] == [["refreshed"]] * 3

    def test_listener_called_and_failures_isolated(self, notifier):
        received = []

        def broken(payload):
            raise RuntimeError("boom")

        notifier.add_listener(METRICS_REFRESHED_TOPIC, broken)
        notifier.add_listener(METRICS_REFRESHED_TOPIC, received.append)
        sub = notifier.subscribe(METRICS_REFRESHED_TOPIC)

        delivered = notifier.publish(METRICS_REFRESHED_TOPIC, 7)

        assert received == [7]
        assert sub.drain() == [7]
        assert delivered == 2

    def test_remove_listener(self, notifier):
        received = []
        notifier.add_listener(METRICS_REFRESHED_TOPIC, received.append)
        notifier.remove_listener(METRICS_REFRESHED_TOPIC, received.append)

        notifier.publish(METRICS_REFRESHED_TOPIC, 1)

        assert received == []

    def test_closed_subscription_stops_receiving(self, notifier):
        sub = notifier.subscribe(METRICS_REFRESHED_TOPIC)
        notifier.publish(METRICS_REFRESHED_TOPIC, "first")
        sub.close()

        notifier.publish(METRICS_REFRESHED_TOPIC, "second")

        assert list(sub) == ["first"]

    def test_get_times_out(self, notifier):
        sub = notifier.subscribe(METRICS_REFRESHED_TOPIC)

        with pytest.raises(queue.Empty):
            sub.get(timeout=0.01)

    def test_stream_consumed_from_another_thread(self, notifier):
        sub = notifier.subscribe(METRICS_REFRESHED_TOPIC)
        seen = []
        consumer = threading.Thread(target=lambda: seen.extend(sub))
        consumer.start()

        for i in range(5):
            notifier.publish(METRICS_REFRESHED_TOPIC, i)
        sub.close()
        consumer.join(timeout=2)

        assert seen == [0, 1, 2, 3, 4]
