"""
Tests for the durable offline order queue.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from pos_api.models import MenuItem, Order
from pos_api.services.domain.offline_queue import ConnectivityProbe, OfflineQueue
from pos_api.services.domain.order_state_machine import OrderStateMachine
from shared.config.constants import OrderStatus, QueueStatus
from shared.utils.exceptions import ValidationError
from tests.conftest import cart_line, order_payload


class FakeProbe:
    def __init__(self, online: bool = True):
        self.online = online

    def is_online(self, db) -> bool:
        return self.online


@pytest.fixture
def probe():
    return FakeProbe(online=False)


@pytest.fixture
def offline_queue(local_store, probe):
    return OfflineQueue(local_store, probe=probe)


def _order_count(db) -> int:
    return db.scalar(select(func.count()).select_from(Order))


class TestEnqueue:
    """Capture while offline."""

    def test_offline_orders_are_queued(self, db_session, offline_queue, seed_menu):
        payload = order_payload(cart_line(seed_menu["curry"]))

        result = offline_queue.enqueue_or_upload(payload, db_session)

        assert result.queued is True
        assert offline_queue.pending_count() == 1
        assert _order_count(db_session) == 0

    def test_online_orders_are_saved_directly(self, db_session, offline_queue, probe, seed_menu):
        probe.online = True
        payload = order_payload(cart_line(seed_menu["curry"]))

        result = offline_queue.enqueue_or_upload(payload, db_session)

        assert result.queued is False
        assert offline_queue.pending_count() == 0
        assert _order_count(db_session) == 1

    def test_connection_drop_mid_save_queues(self, db_session, local_store, seed_menu):
        machine = MagicMock()
        machine.save_order.side_effect = OperationalError("INSERT", {}, Exception("server closed"))
        queue = OfflineQueue(local_store, probe=FakeProbe(True), state_machine_factory=lambda db: machine)

        result = queue.enqueue_or_upload(order_payload(cart_line(seed_menu["curry"])), db_session)

        assert result.queued is True
        assert queue.pending_count() == 1

    def test_integrity_errors_propagate(self, db_session, local_store, seed_menu):
        machine = MagicMock()
        machine.save_order.side_effect = IntegrityError("INSERT", {}, Exception("duplicate"))
        queue = OfflineQueue(local_store, probe=FakeProbe(True), state_machine_factory=lambda db: machine)

        with pytest.raises(IntegrityError):
            queue.enqueue_or_upload(order_payload(cart_line(seed_menu["curry"])), db_session)

        assert queue.pending_count() == 0

    @pytest.mark.parametrize("status", [OrderStatus.VOIDED, OrderStatus.REFUNDED])
    def test_override_statuses_rejected(self, db_session, offline_queue, seed_menu, status):
        with pytest.raises(ValidationError):
            offline_queue.enqueue_or_upload(
                order_payload(cart_line(seed_menu["curry"]), status=status), db_session
            )

        assert offline_queue.pending_count() == 0


class TestSync:
    """FIFO replay once connectivity returns."""

    def test_sync_uploads_then_nothing_left(self, db_session, offline_queue, probe, seed_menu):
        offline_queue.enqueue_or_upload(order_payload(cart_line(seed_menu["curry"])), db_session)
        offline_queue.enqueue_or_upload(order_payload(cart_line(seed_menu["lager"])), db_session)

        probe.online = True
        assert offline_queue.sync(db_session) == 2
        assert offline_queue.sync(db_session) == 0
        assert _order_count(db_session) == 2
        assert offline_queue.pending_count() == 0

    def test_sync_while_offline_does_nothing(self, db_session, offline_queue, seed_menu):
        offline_queue.enqueue(order_payload(cart_line(seed_menu["curry"])))

        assert offline_queue.sync(db_session) == 0
        assert offline_queue.pending_count() == 1

    def test_completed_orders_deplete_once_on_replay(self, db_session, offline_queue, probe, seed_menu, seed_inventory):
        payload = order_payload(cart_line(seed_menu["curry"], quantity=2), status=OrderStatus.COMPLETED)
        offline_queue.enqueue(payload)
        # Same order captured twice (terminal retried before the first ack)
        offline_queue.enqueue(payload)

        probe.online = True
        assert offline_queue.sync(db_session) == 2

        assert _order_count(db_session) == 1
        assert OrderStateMachine(db_session).get_order(payload.id).status == OrderStatus.COMPLETED
        assert seed_inventory["chicken"].quantity == pytest.approx(9.0)

    def test_failure_stops_drain_and_keeps_order(self, db_session, offline_queue, probe, seed_menu):
        broken = MenuItem(name="Ghost Curry", category=seed_menu["curry"].category, price_cents=900)
        broken.recipe = [{"inventory_item_id": 9999, "quantity": 1}]
        db_session.add(broken)
        db_session.commit()
        good = order_payload(cart_line(seed_menu["curry"]))
        bad = order_payload(cart_line(broken), status=OrderStatus.COMPLETED)
        later = order_payload(cart_line(seed_menu["lager"]))
        offline_queue.enqueue(good)
        offline_queue.enqueue(bad)
        offline_queue.enqueue(later)

        probe.online = True
        synced = offline_queue.sync(db_session)

        assert synced == 1
        pending = offline_queue.pending()
        assert [entry.order_id for entry in pending] == [bad.id, later.id]
        assert pending[0].attempts == 1
        assert pending[0].last_error
        assert pending[1].attempts == 0

    def test_repeatedly_rejected_entry_is_set_aside(self, db_session, local_store, probe, seed_menu):
        broken = MenuItem(name="Ghost Curry", category=seed_menu["curry"].category, price_cents=900)
        broken.recipe = [{"inventory_item_id": 9999, "quantity": 1}]
        db_session.add(broken)
        db_session.commit()
        queue = OfflineQueue(local_store, probe=probe, max_attempts=2)
        bad = order_payload(cart_line(broken), status=OrderStatus.COMPLETED)
        later = order_payload(cart_line(seed_menu["lager"]))
        queue.enqueue(bad)
        queue.enqueue(later)
        probe.online = True

        assert queue.sync(db_session) == 0
        assert [entry.order_id for entry in queue.pending()] == [bad.id, later.id]

        assert queue.sync(db_session) == 1
        failed = queue.failed()
        assert [entry.order_id for entry in failed] == [bad.id]
        assert failed[0].status == QueueStatus.FAILED
        assert failed[0].attempts == 2
        assert queue.pending_count() == 0
        assert db_session.get(Order, later.id) is not None

    def test_lost_connection_never_sets_entry_aside(self, db_session, local_store, seed_menu):
        machine = MagicMock()
        machine.save_order.side_effect = OperationalError("INSERT", {}, Exception("server closed"))
        queue = OfflineQueue(
            local_store,
            probe=FakeProbe(True),
            state_machine_factory=lambda db: machine,
            max_attempts=1,
        )
        queue.enqueue(order_payload(cart_line(seed_menu["curry"])))

        queue.sync(db_session)
        queue.sync(db_session)

        pending = queue.pending()
        assert len(pending) == 1
        assert pending[0].attempts == 2
        assert queue.failed() == []

    def test_sync_result(self, db_session, offline_queue, probe, seed_menu):
        offline_queue.enqueue(order_payload(cart_line(seed_menu["curry"])))
        probe.online = True

        result = offline_queue.sync_result(db_session)

        assert (result.synced, result.pending) == (1, 0)


class TestConnectivityProbe:
    def test_reachable_store_is_online(self, db_session):
        assert ConnectivityProbe().is_online(db_session) is True

    def test_unreachable_store_is_offline(self):
        db = MagicMock()
        db.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

        assert ConnectivityProbe().is_online(db) is False
        db.rollback.assert_called_once()
