from __future__ import annotations

import tempfile
from decimal import Decimal
from typing import Any

import numpy as np
import plotly.graph_objects as go

from saldo.categories import Category, category_label
from saldo.currency import currency_symbol

PALETTE = ["#2E7D5B", "#4C72B0", "#C44E52", "#8172B3", "#CCB974", "#64B5CD", "#E5AE38", "#6D904F", "#8B8B8B"]
INCOME_COLOR = "#2E7D5B"
EXPENSE_COLOR = "#C44E52"
TREND_COLOR = "#4C72B0"

WIDTH, HEIGHT, SCALE = 800, 500, 2

# donut up to this many categories, horizontal bars beyond
MAX_DONUT_SLICES = 6


def _short_amount(value: float, cur: str) -> str:
    return f"{currency_symbol(cur)} {value:,.0f}"


def _figure(title: str, *traces) -> go.Figure:
    fig = go.Figure(data=list(traces))
    fig.update_layout(
        template="plotly_white",
        title=dict(text=title, x=0.5),
        width=WIDTH,
        height=HEIGHT,
        margin=dict(l=60, r=30, t=60, b=50),
    )
    return fig


def _to_png(fig: go.Figure) -> str:
    with tempfile.NamedTemporaryFile(prefix="saldo-", suffix=".png", delete=False) as tmp:
        path = tmp.name
    fig.write_image(path, scale=SCALE)
    return path


def category_series(by_category: dict[Category, Decimal]) -> tuple[list[str], list[float]]:
    """Labels and float totals, largest first. Floats are only used for plotting."""
    rows = sorted(by_category.items(), key=lambda item: item[1], reverse=True)
    return [category_label(c) for c, _ in rows], [float(v) for _, v in rows]


async def spending_by_category_chart(by_category: dict[Category, Decimal], cur: str = "BRL") -> str | None:
    if not by_category:
        return None

    labels, totals = category_series(by_category)
    colors = PALETTE[: len(labels)]

    if len(labels) > MAX_DONUT_SLICES:
        fig = _figure(
            "Spending by category",
            go.Bar(
                x=totals,
                y=labels,
                orientation="h",
                marker_color=colors,
                text=[_short_amount(v, cur) for v in totals],
                textposition="outside",
            ),
        )
        fig.update_yaxes(autorange="reversed")
        return _to_png(fig)

    fig = _figure(
        "Spending by category",
        go.Pie(labels=labels, values=totals, marker=dict(colors=colors), hole=0.4, sort=False),
    )
    fig.update_layout(showlegend=False)
    fig.add_annotation(text=_short_amount(sum(totals), cur), x=0.5, y=0.5, showarrow=False, font=dict(size=18))
    return _to_png(fig)


def expense_trend(totals: list[float]) -> list[float] | None:
    """Least-squares line through the monthly expense totals; needs three points."""
    if len(totals) < 3:
        return None
    x = np.arange(len(totals))
    slope, intercept = np.polyfit(x, totals, 1)
    return (slope * x + intercept).tolist()


async def monthly_trend_chart(data: list[dict[str, Any]], cur: str = "BRL") -> str | None:
    if not data or not any(row["count"] for row in data):
        return None

    months = [row["month"] for row in data]
    expenses = [float(row["expenses"]) for row in data]
    traces = [
        go.Bar(x=months, y=[float(row["income"]) for row in data], name="Income", marker_color=INCOME_COLOR),
        go.Bar(x=months, y=expenses, name="Expenses", marker_color=EXPENSE_COLOR),
    ]
    trend = expense_trend(expenses)
    if trend is not None:
        traces.append(
            go.Scatter(x=months, y=trend, mode="lines", name="Expense trend", line=dict(color=TREND_COLOR, dash="dash"))
        )

    fig = _figure("Income vs expenses", *traces)
    fig.update_layout(barmode="group", yaxis_title=cur)
    return _to_png(fig)
