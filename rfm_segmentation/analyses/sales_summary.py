"""Exploratory sales aggregates.

Answers the questions usually asked before segmenting a customer base:
- Which product line, country, city or deal size brings the most revenue?
- Which year had the most sales?
- What was the best month for sales in a given year?
- Who are the highest-spending customers?
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Sequence

from rfm_segmentation.foundation.rfm import CustomerAggregate
from rfm_segmentation.foundation.transactions import SalesTransaction

UNKNOWN_GROUP = "Unknown"

MONETARY_PRECISION = Decimal("0.01")

_GROUP_KEYS: dict[str, Callable[[SalesTransaction], str | None]] = {
    "product_line": lambda txn: txn.product_line,
    "country": lambda txn: txn.country,
    "city": lambda txn: txn.city,
    "deal_size": lambda txn: txn.deal_size,
    "year": lambda txn: str(txn.order_date.year),
}

SALES_DIMENSIONS = tuple(_GROUP_KEYS)


@dataclass(frozen=True)
class SalesBreakdown:
    """Revenue and order volume for one group of transactions.

    Attributes
    ----------
    group:
        Group value, e.g. "Classic Cars" or "2004"
    revenue:
        Sum of line amounts in the group
    order_count:
        Distinct orders in the group
    line_count:
        Transaction lines in the group
    """

    group: str
    revenue: Decimal
    order_count: int
    line_count: int

    def __post_init__(self) -> None:
        if self.revenue < 0:
            raise ValueError(f"Revenue cannot be negative: {self.revenue} (group={self.group})")
        if self.order_count > self.line_count:
            raise ValueError(
                f"Order count ({self.order_count}) cannot exceed line count ({self.line_count}) (group={self.group})"
            )


def _breakdown(
    transactions: Sequence[SalesTransaction],
    key: Callable[[SalesTransaction], str | None],
) -> list[SalesBreakdown]:
    revenue: dict[str, Decimal] = defaultdict(Decimal)
    orders: dict[str, set[str]] = defaultdict(set)
    lines: dict[str, int] = defaultdict(int)

    for txn in transactions:
        group = key(txn) or UNKNOWN_GROUP
        revenue[group] += txn.amount
        orders[group].add(txn.order_id)
        lines[group] += 1

    breakdown = [
        SalesBreakdown(
            group=group,
            revenue=total.quantize(MONETARY_PRECISION, rounding=ROUND_HALF_UP),
            order_count=len(orders[group]),
            line_count=lines[group],
        )
        for group, total in revenue.items()
    ]
    breakdown.sort(key=lambda row: (-row.revenue, row.group))
    return breakdown


def summarize_sales(
    transactions: Sequence[SalesTransaction], by: str = "product_line"
) -> list[SalesBreakdown]:
    """Group revenue by a descriptive dimension, highest revenue first.

    Parameters
    ----------
    transactions:
        Sales lines to summarize
    by:
        One of ``product_line``, ``country``, ``city``, ``deal_size`` or
        ``year``. Lines with no value for the dimension are grouped under
        "Unknown".

    Raises
    ------
    ValueError
        If ``by`` is not a supported dimension.

    Examples
    --------
    >>> from datetime import date
    >>> txns = [
    ...     SalesTransaction("O1", "C1", Decimal("10"), date(2003, 1, 1), product_line="Ships"),
    ...     SalesTransaction("O2", "C2", Decimal("30"), date(2004, 1, 1), product_line="Planes"),
    ... ]
    >>> [row.group for row in summarize_sales(txns, by="year")]
    ['2004', '2003']
    """
    if by not in _GROUP_KEYS:
        raise ValueError(
            f"Unsupported sales dimension {by!r}; expected one of {list(SALES_DIMENSIONS)}"
        )
    return _breakdown(transactions, _GROUP_KEYS[by])


def monthly_sales(
    transactions: Sequence[SalesTransaction], year: int
) -> list[SalesBreakdown]:
    """Revenue per month of ``year``, best month first.

    Groups are the month number as a string ("1".."12"); months with no
    sales are omitted.
    """
    in_year = [txn for txn in transactions if txn.order_date.year == year]
    return _breakdown(in_year, lambda txn: str(txn.order_date.month))


def top_customers(
    aggregates: Sequence[CustomerAggregate], limit: int = 10
) -> list[CustomerAggregate]:
    """Return the ``limit`` highest-spending customers.

    Customers with equal spend are ordered by customer_id.
    """
    if limit < 0:
        raise ValueError(f"limit cannot be negative: {limit}")
    ranked = sorted(aggregates, key=lambda a: (-a.total_spend, a.customer_id))
    return ranked[:limit]
