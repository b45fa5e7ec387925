"""
Service layer.

- domain/: order lifecycle, payments, inventory, terminal sessions, shifts
- events/: transactional outbox and its processor
- integrations/: third-party sales sync
"""
