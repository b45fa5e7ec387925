"""
Tests for terminal carts, table parking and kitchen sends.
"""

import pytest

from pos_api.services.domain.order_state_machine import OrderStateMachine
from pos_api.services.domain.payment_ledger import PaymentLedger
from pos_api.services.domain.table_session import (
    NOTHING_TO_SEND,
    TableSessionManager,
    TerminalRegistry,
)
from shared.config.constants import OrderStatus, TableStatus
from shared.utils.exceptions import ConflictError, NotFoundError, TableNotFoundError, ValidationError


@pytest.fixture
def manager(db_session, terminal):
    return TableSessionManager(db_session, terminal)


class TestCart:
    """Line-level cart operations."""

    def test_same_dish_twice_is_two_lines(self, manager, seed_menu):
        first = manager.add_menu_item(seed_menu["curry"].id)
        second = manager.add_menu_item(seed_menu["curry"].id)

        assert first.cart_id != second.cart_id
        assert len(manager.session.active_cart) == 2

    def test_update_quantity_and_remove(self, manager, seed_menu):
        line = manager.add_menu_item(seed_menu["curry"].id)

        manager.session.update_quantity(line.cart_id, 3)
        assert manager.session.active_cart[0].quantity == 3

        manager.session.update_quantity(line.cart_id, 0)
        assert manager.session.active_cart == []

    def test_unknown_line(self, manager):
        with pytest.raises(NotFoundError):
            manager.session.update_quantity("nope", 2)

    def test_unavailable_item_cannot_be_added(self, db_session, manager, seed_menu):
        seed_menu["lager"].is_available = False
        db_session.commit()

        with pytest.raises(ConflictError):
            manager.add_menu_item(seed_menu["lager"].id)

    def test_unknown_menu_item(self, manager, seed_menu):
        with pytest.raises(NotFoundError):
            manager.add_menu_item(9999)

    def test_cart_totals(self, manager, seed_menu):
        manager.add_menu_item(seed_menu["curry"].id, quantity=2)

        totals = manager.session.cart_totals()

        assert totals.subtotal_cents == 2400


class TestParking:
    """Holding carts per table."""

    def test_park_then_select_other_table_is_empty(self, manager, seed_menu, seed_tables):
        table_a, table_b = seed_tables
        manager.select_table(table_a.id)
        manager.add_menu_item(seed_menu["curry"].id)
        manager.add_menu_item(seed_menu["lager"].id)
        parked_ids = [item.cart_id for item in manager.session.active_cart]

        manager.park_order()
        cart_b = manager.select_table(table_b.id)

        assert cart_b == []
        assert manager.session.active_table_id == table_b.id

        restored = manager.select_table(table_a.id)
        assert [item.cart_id for item in restored] == parked_ids

    def test_switching_without_parking_clears_cart(self, manager, seed_menu, seed_tables):
        table_a, table_b = seed_tables
        manager.select_table(table_a.id)
        manager.add_menu_item(seed_menu["curry"].id)

        assert manager.select_table(table_b.id) == []

    def test_restored_cart_is_a_copy(self, manager, seed_menu, seed_tables):
        table_a, _ = seed_tables
        manager.select_table(table_a.id)
        manager.add_menu_item(seed_menu["curry"].id)
        manager.park_order()

        manager.select_table(table_a.id)
        manager.session.active_cart[0].quantity = 5

        assert manager.session.held_orders[table_a.id].items[0].quantity == 1

    def test_park_empty_cart_rejected(self, manager, seed_tables):
        manager.select_table(seed_tables[0].id)

        with pytest.raises(ValidationError):
            manager.park_order()

    def test_park_without_table_rejected(self, manager, seed_menu):
        manager.add_menu_item(seed_menu["curry"].id)

        with pytest.raises(ValidationError):
            manager.park_order()

    def test_select_unknown_table(self, manager, db_session):
        with pytest.raises(TableNotFoundError):
            manager.select_table(404)


class TestSendToKitchen:
    """Kitchen sends create and extend the table's order."""

    def test_first_send_creates_pending_order(self, db_session, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["curry"].id)
        manager.add_menu_item(seed_menu["lager"].id)

        result = manager.send_to_kitchen()

        assert sorted(job.department for job in result.jobs) == ["BAR", "KITCHEN"]
        assert {job.table_label for job in result.jobs} == {"T1"}
        order = OrderStateMachine(db_session).get_order(result.order_id)
        assert order.status == OrderStatus.PENDING
        assert len(order.items) == 2
        db_session.refresh(seed_table)
        assert seed_table.status == TableStatus.OCCUPIED
        assert manager.session.active_table_id is None
        assert manager.session.active_cart == []
        assert len(manager.session.print_queue) == 2

    def test_resending_sends_nothing(self, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["curry"].id)
        manager.send_to_kitchen()

        restored = manager.select_table(seed_table.id)
        assert all(item.sent_to_kitchen for item in restored)
        result = manager.send_to_kitchen()

        assert result.jobs == []
        assert result.notice == NOTHING_TO_SEND
        assert len(manager.session.print_queue) == 1

    def test_additional_send_appends_to_same_order(self, db_session, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["curry"].id)
        first = manager.send_to_kitchen()

        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["lager"].id)
        second = manager.send_to_kitchen()

        assert second.order_id == first.order_id
        assert [job.department for job in second.jobs] == ["BAR"]
        assert [i.name for i in second.jobs[0].items] == ["Lager"]
        order = OrderStateMachine(db_session).get_order(first.order_id)
        assert [line.name for line in order.items] == ["Butter Chicken", "Lager"]

    def test_other_terminal_finds_open_tab(self, db_session, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["curry"].id)
        first = manager.send_to_kitchen()

        other = TableSessionManager(db_session, TerminalRegistry().get("till-2"))
        other.select_table(seed_table.id)
        other.add_menu_item(seed_menu["lager"].id)
        second = other.send_to_kitchen()

        assert second.order_id == first.order_id

    def test_sent_lines_are_read_only(self, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        line = manager.add_menu_item(seed_menu["curry"].id)
        manager.send_to_kitchen()
        manager.select_table(seed_table.id)

        with pytest.raises(ConflictError):
            manager.session.update_quantity(line.cart_id, 2)

    def test_send_without_table_rejected(self, manager, seed_menu):
        manager.add_menu_item(seed_menu["curry"].id)

        with pytest.raises(ValidationError):
            manager.send_to_kitchen()


class TestWalkInCheckout:
    def test_checkout_creates_takeaway_order(self, db_session, manager, seed_menu):
        manager.add_menu_item(seed_menu["curry"].id)

        order_id, jobs = manager.checkout(customer_name="Ana")

        order = OrderStateMachine(db_session).get_order(order_id)
        assert order.order_type == "takeaway"
        assert order.table_id is None
        assert [job.department for job in jobs] == ["KITCHEN"]
        assert manager.session.active_cart == []

    def test_checkout_with_active_table_rejected(self, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["curry"].id)

        with pytest.raises(ValidationError):
            manager.checkout()

    def test_checkout_empty_cart_rejected(self, manager):
        with pytest.raises(ValidationError):
            manager.checkout()


class TestTableLifecycle:
    """occupied -> billed, then cleaning -> available after payment."""

    def test_bill_pay_clean(self, db_session, manager, seed_menu, seed_table):
        manager.select_table(seed_table.id)
        manager.add_menu_item(seed_menu["curry"].id)
        result = manager.send_to_kitchen()

        assert manager.request_bill(seed_table.id).status == TableStatus.BILLED
        PaymentLedger(db_session).pay_in_full(result.order_id, "card")
        db_session.refresh(seed_table)
        assert seed_table.status == TableStatus.CLEANING

        table = manager.mark_table_clean(seed_table.id)

        assert table.status == TableStatus.AVAILABLE
        assert seed_table.id not in manager.session.held_orders
        assert seed_table.id not in manager.session.open_orders

    def test_bill_requires_occupied_table(self, manager, seed_table):
        with pytest.raises(ConflictError):
            manager.request_bill(seed_table.id)

    def test_clean_requires_cleaning_status(self, manager, seed_table):
        with pytest.raises(ConflictError):
            manager.mark_table_clean(seed_table.id)

    def test_registry_forgets_table_on_all_terminals(self, db_session, seed_menu, seed_table):
        registry = TerminalRegistry()
        for terminal_id in ("till-1", "till-2"):
            mgr = TableSessionManager(db_session, registry.get(terminal_id))
            mgr.select_table(seed_table.id)
            mgr.add_menu_item(seed_menu["curry"].id)
            mgr.park_order()

        registry.forget_table(seed_table.id)

        assert registry.get("till-1").held_orders == {}
        assert registry.get("till-2").held_orders == {}
