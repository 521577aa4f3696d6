# tests/unit/services/test_notification_service.py
from app.services.notification_service import StockNotificationFeed


class MonotonicStub:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_feed_records_changes(bus):
    feed = StockNotificationFeed(bus, clock=MonotonicStub())

    bus.publish("P1", 3)
    bus.publish("P2", 0)

    assert [(n.product_id, n.new_quantity) for n in feed.active()] == [("P1", 3), ("P2", 0)]


def test_newer_change_replaces_older_for_same_product(bus):
    feed = StockNotificationFeed(bus, clock=MonotonicStub())

    bus.publish("P1", 3)
    bus.publish("P2", 5)
    bus.publish("P1", 2)

    assert [(n.product_id, n.new_quantity) for n in feed.active()] == [("P2", 5), ("P1", 2)]


def test_notifications_expire(bus):
    clock = MonotonicStub()
    feed = StockNotificationFeed(bus, ttl_seconds=5, clock=clock)

    bus.publish("P1", 3)
    clock.now += 4.9
    assert len(feed.active()) == 1

    clock.now += 0.2
    assert feed.active() == []


def test_dismiss(bus):
    feed = StockNotificationFeed(bus, clock=MonotonicStub())
    bus.publish("P1", 3)

    assert feed.dismiss("P1")
    assert not feed.dismiss("P1")
    assert feed.active() == []


def test_close_unsubscribes(bus):
    feed = StockNotificationFeed(bus, clock=MonotonicStub())

    feed.close()
    bus.publish("P1", 3)

    assert bus.subscriber_count == 0
    assert feed.active() == []
