# app/routers/admin_stats.py
from fastapi import APIRouter, Depends

from app.core.auth import require_admin
from app.core.deps import get_stats_service
from app.schemas.stats import OrderStats
from app.services.stats_service import StatsService

router = APIRouter(prefix="/admin/stats", tags=["Admin Stats"])


@router.get(
    "",
    response_model=OrderStats,
    dependencies=[Depends(require_admin)],
)
def get_order_stats(service: StatsService = Depends(get_stats_service)):
    """
    Aggregated order statistics for the admin dashboard.

      - pending: orders in pending or paid
      - verified / completed: counts
      - total_revenue: sum over verified + completed orders

    Recomputed from the order set on every call.
    """
    return service.get_order_stats()
