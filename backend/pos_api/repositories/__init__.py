"""
Repositories: data access with eager loading.
"""

from .order import OrderFilters, OrderRepository

__all__ = ["OrderFilters", "OrderRepository"]
