"""
Redis Channel Naming.
"""

from __future__ import annotations

CHANNEL_ORDERS = "pos:orders"
CHANNEL_INVENTORY = "pos:inventory"
CHANNEL_TABLES = "pos:tables"
