"""
Tests for inventory depletion and reversal.
"""

import pytest
from hypothesis import HealthCheck, given, settings as hypothesis_settings, strategies as st
from sqlalchemy import select

from pos_api.models import InventoryMovement
from pos_api.services.domain.inventory_ledger import InventoryLedger
from pos_api.services.domain.order_state_machine import OrderStateMachine
from shared.config.constants import MovementKind
from shared.utils.exceptions import ConflictError
from tests.conftest import cart_line, order_payload


def _pending_order(db, *lines):
    return OrderStateMachine(db).create_pending_order(order_payload(*lines))


class TestDeplete:
    """Recipe and name-match depletion."""

    def test_recipe_depletes_each_ingredient(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=4))

        alerts = InventoryLedger(db_session).deplete(order)
        db_session.commit()

        assert alerts == []
        assert seed_inventory["chicken"].quantity == pytest.approx(8.0)
        assert order.was_depleted is True

    def test_name_match_depletes_by_line_quantity(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["lager"], quantity=2))

        InventoryLedger(db_session).deplete(order)
        db_session.commit()

        assert seed_inventory["lager"].quantity == pytest.approx(3.0)

    def test_low_stock_alert_at_threshold(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=16))

        alerts = InventoryLedger(db_session).deplete(order)

        assert alerts == ["LOW STOCK: Chicken (2.0 kg left)"]
        assert seed_menu["curry"].is_available is True

    def test_running_out_86s_recipe_items(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=20))

        alerts = InventoryLedger(db_session).deplete(order)
        db_session.commit()

        assert "86'd: Chicken" in alerts
        assert seed_menu["curry"].is_available is False

    def test_running_out_86s_name_matched_item(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["lager"], quantity=5))

        alerts = InventoryLedger(db_session).deplete(order)
        db_session.commit()

        assert "86'd: Lager" in alerts
        assert seed_menu["lager"].is_available is False

    def test_overselling_goes_negative(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["lager"], quantity=7))

        InventoryLedger(db_session).deplete(order)

        assert seed_inventory["lager"].quantity == pytest.approx(-2.0)

    def test_unmatched_line_is_skipped(self, db_session, seed_inventory):
        from shared.utils.schemas import CartItem

        order = _pending_order(
            db_session, CartItem(name="Tap Water", category="Drinks", unit_price_cents=0)
        )

        assert InventoryLedger(db_session).deplete(order) == []
        assert seed_inventory["chicken"].quantity == pytest.approx(10.0)
        assert seed_inventory["lager"].quantity == pytest.approx(5.0)

    def test_double_depletion_is_a_conflict(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"]))
        ledger = InventoryLedger(db_session)
        ledger.deplete(order)

        with pytest.raises(ConflictError):
            ledger.deplete(order)

        assert seed_inventory["chicken"].quantity == pytest.approx(9.5)


class TestReverse:
    """Reversal replays recorded movements."""

    def test_reverse_restores_quantities(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(
            db_session,
            cart_line(seed_menu["curry"], quantity=3),
            cart_line(seed_menu["lager"], quantity=2),
        )
        ledger = InventoryLedger(db_session)
        ledger.deplete(order)

        restored = ledger.reverse(order)
        db_session.commit()

        assert restored == 2
        assert seed_inventory["chicken"].quantity == pytest.approx(10.0)
        assert seed_inventory["lager"].quantity == pytest.approx(5.0)
        assert order.was_depleted is False

    def test_reverse_of_undepleted_order_is_noop(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=3))

        assert InventoryLedger(db_session).reverse(order) == 0
        assert seed_inventory["chicken"].quantity == pytest.approx(10.0)

    def test_reverse_uses_recorded_deltas_after_recipe_change(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=2))
        ledger = InventoryLedger(db_session)
        ledger.deplete(order)

        seed_menu["curry"].recipe = [
            {"inventory_item_id": seed_inventory["chicken"].id, "quantity": 2.0}
        ]
        ledger.reverse(order)

        assert seed_inventory["chicken"].quantity == pytest.approx(10.0)

    def test_movements_are_recorded(self, db_session, seed_menu, seed_inventory):
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=2))
        ledger = InventoryLedger(db_session)
        ledger.deplete(order)
        ledger.reverse(order)

        movements = db_session.scalars(
            select(InventoryMovement)
            .where(InventoryMovement.order_id == order.id)
            .order_by(InventoryMovement.id)
        ).all()

        assert [(m.kind, m.delta) for m in movements] == [
            (MovementKind.DEPLETION, pytest.approx(-1.0)),
            (MovementKind.REVERSAL, pytest.approx(1.0)),
        ]

    @hypothesis_settings(
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(curries=st.integers(min_value=1, max_value=40), lagers=st.integers(min_value=1, max_value=10))
    def test_deplete_then_reverse_is_identity(self, db_session, seed_menu, seed_inventory, curries, lagers):
        chicken = seed_inventory["chicken"].quantity
        lager = seed_inventory["lager"].quantity
        order = _pending_order(
            db_session,
            cart_line(seed_menu["curry"], quantity=curries),
            cart_line(seed_menu["lager"], quantity=lagers),
        )
        ledger = InventoryLedger(db_session)

        ledger.deplete(order)
        ledger.reverse(order)
        db_session.commit()

        assert seed_inventory["chicken"].quantity == pytest.approx(chicken)
        assert seed_inventory["lager"].quantity == pytest.approx(lager)


class TestQuantityPrecision:
    """Small recipe quantities and fine-grained stock levels."""

    def _use_recipe_quantity(self, db, menu_item, inventory_item, quantity):
        menu_item.recipe = [{"inventory_item_id": inventory_item.id, "quantity": quantity}]
        menu_item.is_available = True
        db.commit()

    def test_sub_thousandth_recipe_quantity_is_depleted(self, db_session, seed_menu, seed_inventory):
        chicken = seed_inventory["chicken"]
        self._use_recipe_quantity(db_session, seed_menu["curry"], chicken, 0.0004)
        order = _pending_order(db_session, cart_line(seed_menu["curry"]))

        InventoryLedger(db_session).deplete(order)
        db_session.commit()

        assert chicken.quantity == 9.9996
        movement = db_session.scalar(select(InventoryMovement).where(InventoryMovement.order_id == order.id))
        assert movement.delta == -0.0004

    def test_fine_grained_stock_is_restored_exactly(self, db_session, seed_menu, seed_inventory):
        chicken = seed_inventory["chicken"]
        chicken.quantity = 1.23456
        self._use_recipe_quantity(db_session, seed_menu["curry"], chicken, 1.0)
        order = _pending_order(db_session, cart_line(seed_menu["curry"]))
        ledger = InventoryLedger(db_session)

        ledger.deplete(order)
        db_session.commit()
        assert chicken.quantity == 0.23456

        ledger.reverse(order)
        db_session.commit()
        assert chicken.quantity == 1.23456

    @hypothesis_settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(
        stock=st.decimals(min_value=0, max_value=1000, places=5, allow_nan=False, allow_infinity=False),
        per_unit=st.decimals(min_value="0.0001", max_value=5, places=4, allow_nan=False, allow_infinity=False),
        quantity=st.integers(min_value=1, max_value=20),
    )
    def test_reverse_restores_any_stock_level(self, db_session, seed_menu, seed_inventory, stock, per_unit, quantity):
        chicken = seed_inventory["chicken"]
        chicken.quantity = float(stock)
        self._use_recipe_quantity(db_session, seed_menu["curry"], chicken, float(per_unit))
        order = _pending_order(db_session, cart_line(seed_menu["curry"], quantity=quantity))
        ledger = InventoryLedger(db_session)

        ledger.deplete(order)
        db_session.commit()
        assert chicken.quantity == float(stock - per_unit * quantity)

        ledger.reverse(order)
        db_session.commit()
        assert chicken.quantity == float(stock)


class TestLowStockListing:
    def test_list_low_stock(self, db_session, seed_inventory):
        seed_inventory["lager"].quantity = 1.0
        db_session.commit()

        low = InventoryLedger(db_session).list_low_stock()

        assert [item.name for item in low] == ["Lager"]
