from saldo.charts.templates import (
    monthly_trend_chart,
    spending_by_category_chart,
)

__all__ = [
    "monthly_trend_chart",
    "spending_by_category_chart",
]
