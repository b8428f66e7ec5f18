# app/services/stats_service.py
from collections.abc import Iterable

from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderRead
from app.schemas.stats import OrderStats


def compute_order_stats(orders: Iterable[OrderRead]) -> OrderStats:
    """
    Derive dashboard figures from an order set. Nothing is stored.
    """
    pending = verified = completed = revenue = 0
    for order in orders:
        if order.status in ("pending", "paid"):
            pending += 1
        elif order.status == "verified":
            verified += 1
            revenue += order.total_amount
        elif order.status == "completed":
            completed += 1
            revenue += order.total_amount
    return OrderStats(
        pending=pending,
        verified=verified,
        completed=completed,
        total_revenue=revenue,
    )


class StatsService:
    """
    Aggregated admin dashboard statistics.
    """

    def __init__(self, repo: OrderRepository):
        self.repo = repo

    def get_order_stats(self) -> OrderStats:
        return compute_order_stats(self.repo.list_orders())
