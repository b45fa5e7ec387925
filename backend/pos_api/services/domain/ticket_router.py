"""
Ticket routing.

Partitions unsent cart lines into kitchen and bar tickets. Pure: no
printing, no persistence, no state.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone

from shared.config.constants import Department
from shared.utils.schemas import CartItem, TicketJob
from pos_api.services.domain.billing import is_bar_category


def department_for(item: CartItem) -> str:
    return Department.BAR if is_bar_category(item.category) else Department.KITCHEN


def route_tickets(
    items: Sequence[CartItem],
    order_id: str,
    *,
    table_label: str | None = None,
    timestamp: datetime | None = None,
) -> list[TicketJob]:
    """
    Build zero, one or two ticket jobs (kitchen first, then bar).

    Items keep their cart order inside each job. Every job shares the
    order id and timestamp.
    """
    timestamp = timestamp or datetime.now(timezone.utc)

    kitchen: list[CartItem] = []
    bar: list[CartItem] = []
    for item in items:
        (bar if department_for(item) == Department.BAR else kitchen).append(item)

    jobs = []
    for department, subset in ((Department.KITCHEN, kitchen), (Department.BAR, bar)):
        if subset:
            jobs.append(
                TicketJob(
                    order_id=order_id,
                    department=department,
                    items=list(subset),
                    timestamp=timestamp,
                    table_label=table_label,
                )
            )
    return jobs
