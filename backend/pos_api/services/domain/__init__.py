"""
Domain services.

- billing: totals and food/drink revenue split
- ticket_router: kitchen/bar ticket routing
- inventory_ledger: stock depletion, reversal and alerts
- manager_auth: manager PIN checks for voids and refunds
- order_locks: per-order locks within one process
- order_state_machine: order lifecycle transitions
- payment_ledger: payments and settlement
- table_session: terminal carts, parked orders and table status
- offline_queue: durable queue for orders captured offline
- shift_service: clock in and server checkout

Modules are imported directly (the repositories depend on billing).
"""
