"""
Third-party integrations.
"""

from .sales_sync import SalesSyncClient, SalesSyncResult, get_sales_sync_client

__all__ = ["SalesSyncClient", "SalesSyncResult", "get_sales_sync_client"]
