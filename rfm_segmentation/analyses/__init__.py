"""Exploratory analyses over sales transactions."""

from .sales_summary import (
    SALES_DIMENSIONS,
    SalesBreakdown,
    monthly_sales,
    summarize_sales,
    top_customers,
)

__all__ = [
    "SALES_DIMENSIONS",
    "SalesBreakdown",
    "monthly_sales",
    "summarize_sales",
    "top_customers",
]
