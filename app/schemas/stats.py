# app/schemas/stats.py
from pydantic import ConfigDict
from sqlmodel import SQLModel


class OrderStats(SQLModel):
    """
    Aggregates shown on the admin dashboard.

      - pending: orders waiting on the customer or on review (pending + paid)
      - total_revenue: sum of total_amount over verified + completed orders
    """

    model_config = ConfigDict(extra="forbid")

    pending: int
    verified: int
    completed: int
    total_revenue: int
