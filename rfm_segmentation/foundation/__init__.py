"""Foundational building blocks for RFM segmentation.

This package exposes the sales transaction record, per-customer RFM
aggregation and quartile scoring, the rule-based segment table, and the
pipeline that runs them end to end.
"""

from .pipeline import RFMConfig, RFMSegmentationResult, segment_customers
from .rfm import (
    CustomerAggregate,
    RFMScore,
    calculate_rfm,
    calculate_rfm_scores,
    ntile,
)
from .segments import (
    DEFAULT_SEGMENT,
    DEFAULT_SEGMENT_RULES,
    CustomerSegment,
    SegmentCount,
    SegmentRule,
    assign_segments,
    classify_rfm_score,
    summarize_segments,
    validate_rfm_score,
)
from .transactions import (
    DEFAULT_DATE_FORMATS,
    SalesTransaction,
    build_transactions,
    parse_order_date,
)

__all__ = [
    "CustomerAggregate",
    "CustomerSegment",
    "DEFAULT_DATE_FORMATS",
    "DEFAULT_SEGMENT",
    "DEFAULT_SEGMENT_RULES",
    "RFMConfig",
    "RFMScore",
    "RFMSegmentationResult",
    "SalesTransaction",
    "SegmentCount",
    "SegmentRule",
    "assign_segments",
    "build_transactions",
    "calculate_rfm",
    "calculate_rfm_scores",
    "classify_rfm_score",
    "ntile",
    "parse_order_date",
    "segment_customers",
    "summarize_segments",
    "validate_rfm_score",
]
