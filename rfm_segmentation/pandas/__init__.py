"""Pandas DataFrame adapters for RFM segmentation components."""

from .rfm import (
    dataframe_to_transactions,
    rfm_to_dataframe,
    segments_to_dataframe,
    segment_summary_to_dataframe,
    segment_customers_df,
)

__all__ = [
    "dataframe_to_transactions",
    "rfm_to_dataframe",
    "segments_to_dataframe",
    "segment_summary_to_dataframe",
    "segment_customers_df",
]
