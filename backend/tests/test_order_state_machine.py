"""
Tests for order status transitions, manager overrides and the idempotent save path.
"""

import pytest
from sqlalchemy import func, select, update

from pos_api.models import InventoryMovement, Order, OutboxEvent
from pos_api.services.domain.order_state_machine import OrderStateMachine
from pos_api.services.domain.payment_ledger import PaymentLedger
from shared.config.constants import MovementKind, OrderStatus, TableStatus
from shared.infrastructure.events import ORDER_CREATED, ORDER_VOIDED
from shared.utils.exceptions import (
    AlreadyCompletedError,
    ConflictError,
    InvalidManagerPinError,
    InvalidTransitionError,
    ValidationError,
)
from shared.utils.schemas import PaymentInput
from tests.conftest import MANAGER_PIN, SERVER_PIN, cart_line, order_payload


@pytest.fixture
def machine(db_session):
    return OrderStateMachine(db_session)


@pytest.fixture
def pending_order(machine, seed_menu):
    return machine.create_pending_order(order_payload(cart_line(seed_menu["curry"], quantity=2)))


def _count_events(db, event_type: str, order_id: str) -> int:
    return db.scalar(
        select(func.count())
        .select_from(OutboxEvent)
        .where(OutboxEvent.event_type == event_type, OutboxEvent.aggregate_id == order_id)
    )


class TestForwardTransitions:
    """pending -> preparing -> ready -> completed"""

    def test_kitchen_progress(self, machine, pending_order):
        assert machine.start_preparing(pending_order.id).status == OrderStatus.PREPARING
        assert machine.mark_ready(pending_order.id).status == OrderStatus.READY

        machine.complete(pending_order.id, "cash")
        order = machine.get_order(pending_order.id)
        assert order.status == OrderStatus.COMPLETED
        assert order.version == 4

    def test_backwards_transition_rejected(self, machine, pending_order):
        machine.mark_ready(pending_order.id)

        with pytest.raises(InvalidTransitionError):
            machine.start_preparing(pending_order.id)

        assert machine.get_order(pending_order.id).status == OrderStatus.READY

    def test_terminal_orders_reject_transitions(self, machine, pending_order):
        machine.cancel(pending_order.id)

        with pytest.raises(AlreadyCompletedError):
            machine.mark_ready(pending_order.id)

    def test_concurrent_status_change_is_conflict(self, db_session, machine, pending_order):
        order = machine.get_order(pending_order.id)
        # Another writer moves the row underneath the loaded instance
        db_session.execute(
            update(Order)
            .where(Order.id == order.id)
            .values(status=OrderStatus.PREPARING)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(ConflictError):
            machine._compare_and_set(order, OrderStatus.READY)

    def test_create_is_idempotent(self, db_session, machine, seed_menu):
        payload = order_payload(cart_line(seed_menu["curry"]))

        first = machine.create_pending_order(payload)
        second = machine.create_pending_order(payload)

        assert first.id == second.id
        assert db_session.scalar(select(func.count()).select_from(Order)) == 1
        assert _count_events(db_session, ORDER_CREATED, payload.id) == 1

    def test_append_items_recalculates_totals(self, machine, pending_order, seed_menu):
        before = pending_order.subtotal_cents

        order = machine.append_items(pending_order.id, [cart_line(seed_menu["lager"])])

        assert len(order.items) == 2
        assert order.subtotal_cents == before + 400

    def test_append_to_non_pending_order_rejected(self, machine, pending_order, seed_menu):
        machine.start_preparing(pending_order.id)

        with pytest.raises(ConflictError):
            machine.append_items(pending_order.id, [cart_line(seed_menu["lager"])])


class TestManagerOverrides:
    """Void and refund need a manager PIN."""

    def test_void_with_manager_pin(self, db_session, machine, pending_order, seed_manager):
        order = machine.void_order(pending_order.id, MANAGER_PIN, "wrong table")

        assert order.status == OrderStatus.VOIDED
        assert _count_events(db_session, ORDER_VOIDED, pending_order.id) == 1

    def test_invalid_pin_leaves_state_unchanged(self, db_session, machine, seed_menu, seed_inventory, seed_manager):
        order = machine.create_pending_order(order_payload(cart_line(seed_menu["curry"], quantity=2)))
        PaymentLedger(db_session).pay_in_full(order.id, "card")
        chicken_after_sale = seed_inventory["chicken"].quantity

        with pytest.raises(InvalidManagerPinError) as exc_info:
            machine.refund_order(order.id, "9999")

        assert exc_info.value.status_code == 403
        assert machine.get_order(order.id).status == OrderStatus.COMPLETED
        db_session.refresh(seed_inventory["chicken"])
        assert seed_inventory["chicken"].quantity == pytest.approx(chicken_after_sale)

    def test_non_manager_pin_rejected(self, machine, pending_order, seed_manager, seed_server):
        with pytest.raises(InvalidManagerPinError):
            machine.void_order(pending_order.id, SERVER_PIN)

        assert machine.get_order(pending_order.id).status == OrderStatus.PENDING

    def test_double_void_is_conflict(self, machine, pending_order, seed_manager):
        machine.void_order(pending_order.id, MANAGER_PIN)

        with pytest.raises(AlreadyCompletedError):
            machine.void_order(pending_order.id, MANAGER_PIN)

    def test_void_completed_order_rejected(self, db_session, machine, pending_order, seed_manager):
        PaymentLedger(db_session).pay_in_full(pending_order.id, "cash")

        with pytest.raises(ConflictError):
            machine.void_order(pending_order.id, MANAGER_PIN)

    def test_refund_restores_stock(self, db_session, machine, pending_order, seed_inventory, seed_manager):
        PaymentLedger(db_session).pay_in_full(pending_order.id, "cash")
        assert seed_inventory["chicken"].quantity == pytest.approx(9.0)

        order = machine.refund_order(pending_order.id, MANAGER_PIN, "cold food")

        assert order.status == OrderStatus.REFUNDED
        assert order.was_depleted is False
        db_session.refresh(seed_inventory["chicken"])
        assert seed_inventory["chicken"].quantity == pytest.approx(10.0)

    def test_refund_of_pending_order_rejected(self, machine, pending_order, seed_manager):
        with pytest.raises(InvalidTransitionError):
            machine.refund_order(pending_order.id, MANAGER_PIN)


class TestTableRelease:
    """Cancel/void free a table with no other open order."""

    def test_cancel_releases_table(self, db_session, machine, seed_menu, seed_table):
        order = machine.create_pending_order(
            order_payload(cart_line(seed_menu["curry"]), table_id=seed_table.id)
        )

        machine.cancel(order.id, "customer left")

        db_session.refresh(seed_table)
        assert seed_table.status == TableStatus.AVAILABLE
        assert seed_table.seated_at is None

    def test_table_kept_while_other_order_open(self, db_session, machine, seed_menu, seed_table):
        first = machine.create_pending_order(
            order_payload(cart_line(seed_menu["curry"]), table_id=seed_table.id)
        )
        machine.create_pending_order(order_payload(cart_line(seed_menu["lager"]), table_id=seed_table.id))

        machine.cancel(first.id)

        db_session.refresh(seed_table)
        assert seed_table.status == TableStatus.OCCUPIED


class TestSaveOrder:
    """Idempotent save used by checkout and offline replay."""

    def test_completed_replay_depletes_once(self, db_session, machine, seed_menu, seed_inventory):
        payload = order_payload(
            cart_line(seed_menu["curry"], quantity=2),
            status=OrderStatus.COMPLETED,
            payment_method="cash",
            payments=[PaymentInput(amount_cents=2640, method="cash")],
        )

        machine.save_order(payload)
        machine.save_order(payload)

        order = machine.get_order(payload.id)
        assert order.status == OrderStatus.COMPLETED
        assert len(order.payments) == 1
        assert seed_inventory["chicken"].quantity == pytest.approx(9.0)
        depletions = db_session.scalar(
            select(func.count())
            .select_from(InventoryMovement)
            .where(InventoryMovement.order_id == payload.id, InventoryMovement.kind == MovementKind.DEPLETION)
        )
        assert depletions == 1

    def test_pending_then_completed_replay(self, machine, seed_menu, seed_inventory):
        payload = order_payload(cart_line(seed_menu["curry"]))
        machine.save_order(payload)

        machine.save_order(payload.model_copy(update={"status": OrderStatus.COMPLETED}))

        assert machine.get_order(payload.id).status == OrderStatus.COMPLETED
        assert seed_inventory["chicken"].quantity == pytest.approx(9.5)

    def test_stale_replay_does_not_move_backwards(self, machine, seed_menu):
        payload = order_payload(cart_line(seed_menu["curry"]))
        machine.save_order(payload.model_copy(update={"status": OrderStatus.READY}))

        machine.save_order(payload.model_copy(update={"status": OrderStatus.PREPARING}))

        assert machine.get_order(payload.id).status == OrderStatus.READY

    def test_replay_of_cancelled_order_after_completion_ignored(self, machine, seed_menu):
        payload = order_payload(cart_line(seed_menu["curry"]), status=OrderStatus.COMPLETED)
        machine.save_order(payload)

        machine.save_order(payload.model_copy(update={"status": OrderStatus.CANCELLED}))

        assert machine.get_order(payload.id).status == OrderStatus.COMPLETED

    @pytest.mark.parametrize("status", [OrderStatus.VOIDED, OrderStatus.REFUNDED])
    def test_override_statuses_rejected(self, machine, seed_menu, status):
        with pytest.raises(ValidationError):
            machine.save_order(order_payload(cart_line(seed_menu["curry"]), status=status))
