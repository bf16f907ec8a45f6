"""End-to-end RFM segmentation: aggregate, score, classify, summarize."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from rfm_segmentation.foundation.rfm import calculate_rfm, calculate_rfm_scores
from rfm_segmentation.foundation.segments import (
    DEFAULT_SEGMENT,
    DEFAULT_SEGMENT_RULES,
    CustomerSegment,
    SegmentCount,
    SegmentRule,
    assign_segments,
    summarize_segments,
)
from rfm_segmentation.foundation.transactions import (
    DEFAULT_DATE_FORMATS,
    SalesTransaction,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RFMConfig:
    """Configuration for an RFM segmentation run.

    Attributes
    ----------
    date_formats:
        Explicit ``strptime`` formats tried in order when parsing order dates
    segment_rules:
        Ordered segment rules; the first rule containing a triplet wins
    default_segment:
        Label for triplets no rule claims
    parallel:
        Enable multiprocessing during aggregation for large inputs
    parallel_threshold:
        Customer count at which aggregation switches to multiprocessing
    n_workers:
        Worker processes for parallel aggregation (None = CPU count)
    """

    date_formats: tuple[str, ...] = DEFAULT_DATE_FORMATS
    segment_rules: tuple[SegmentRule, ...] = DEFAULT_SEGMENT_RULES
    default_segment: str = DEFAULT_SEGMENT
    parallel: bool = True
    parallel_threshold: int = 10_000_000
    n_workers: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.date_formats:
            raise ValueError("At least one date format is required")
        if not self.segment_rules:
            raise ValueError("At least one segment rule is required")
        if not self.default_segment:
            raise ValueError("Default segment label cannot be empty")
        if self.parallel_threshold <= 0:
            raise ValueError(
                f"parallel_threshold must be positive: {self.parallel_threshold}"
            )
        if self.n_workers is not None and self.n_workers <= 0:
            raise ValueError(f"n_workers must be positive: {self.n_workers}")


@dataclass(frozen=True)
class RFMSegmentationResult:
    """Output of a segmentation run.

    Attributes
    ----------
    reference_date:
        Latest order date in the input, or None for empty input
    customers:
        One row per customer, sorted by customer_id
    summary:
        Customer count per segment, largest first
    """

    reference_date: Optional[date]
    customers: list[CustomerSegment]
    summary: list[SegmentCount]


def segment_customers(
    transactions: Sequence[SalesTransaction],
    config: Optional[RFMConfig] = None,
) -> RFMSegmentationResult:
    """Run the full RFM segmentation over a transaction set.

    The run is a pure function of its inputs: every call builds a fresh
    result and identical inputs always give identical output. An empty
    transaction set produces an empty result, not an error.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> txns = [SalesTransaction("O1", "C1", Decimal("10"), date(2004, 5, 1))]
    >>> result = segment_customers(txns)
    >>> result.customers[0].rfm_score, result.customers[0].segment
    ('111', 'Lost/Churned Customer')
    """
    config = config or RFMConfig()

    aggregates = calculate_rfm(
        transactions,
        parallel=config.parallel,
        parallel_threshold=config.parallel_threshold,
        n_workers=config.n_workers,
    )
    scores = calculate_rfm_scores(aggregates)
    customers = assign_segments(
        aggregates,
        scores,
        rules=config.segment_rules,
        default=config.default_segment,
    )
    summary = summarize_segments(customers)

    reference_date = aggregates[0].reference_date if aggregates else None
    if summary:
        logger.info(
            f"Segmented {len(customers)} customers into {len(summary)} segments; "
            f"largest is {summary[0].segment!r} ({summary[0].customer_count})"
        )
    else:
        logger.info("No transactions to segment")

    return RFMSegmentationResult(
        reference_date=reference_date, customers=customers, summary=summary
    )
