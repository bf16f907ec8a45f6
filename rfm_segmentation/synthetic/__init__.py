"""Synthetic sales data generation.

Produces realistic-but-fake sales lines to exercise the RFM segmentation
pipeline without access to a real sales extract.
"""

from .generator import (
    LOCATIONS,
    PRODUCT_LINES,
    SalesScenario,
    deal_size_for,
    generate_sales_transactions,
    transactions_to_records,
)

__all__ = [
    "LOCATIONS",
    "PRODUCT_LINES",
    "SalesScenario",
    "deal_size_for",
    "generate_sales_transactions",
    "transactions_to_records",
]
