"""Rule-based RFM segmentation.

A customer's RFM triplet (e.g. "433") is matched against an ordered table of
rules. The first rule whose triplet set contains the score wins; scores that
no rule claims fall to a default label. The rule table is plain data so it
can be audited or replaced without touching the matching logic.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from rfm_segmentation.foundation.rfm import (
    VALID_SCORE_DIGITS,
    CustomerAggregate,
    RFMScore,
)

logger = logging.getLogger(__name__)

PERCENTAGE_PRECISION = Decimal("0.01")

DEFAULT_SEGMENT = "Cannot Be Defined"


def validate_rfm_score(rfm_score: str) -> str:
    """Return ``rfm_score`` if it is a well-formed triplet, else raise.

    A triplet is exactly three characters, each a quartile score 1-4.

    Raises
    ------
    ValueError
        For anything else, e.g. "999", "41" or 433 passed as an int.
    """
    if (
        not isinstance(rfm_score, str)
        or len(rfm_score) != 3
        or any(digit not in VALID_SCORE_DIGITS for digit in rfm_score)
    ):
        raise ValueError(
            f"Invalid RFM score {rfm_score!r}: expected three digits each between 1 and 4"
        )
    return rfm_score


@dataclass(frozen=True)
class SegmentRule:
    """A segment label and the RFM triplets that map to it."""

    label: str
    scores: frozenset[str]

    def __post_init__(self) -> None:
        if not self.label:
            raise ValueError("Segment rule label cannot be empty")
        if not self.scores:
            raise ValueError(f"Segment rule {self.label!r} has no scores")
        for score in self.scores:
            validate_rfm_score(score)

    def matches(self, rfm_score: str) -> bool:
        return rfm_score in self.scores


def _rule(label: str, *scores: str) -> SegmentRule:
    return SegmentRule(label=label, scores=frozenset(scores))


# Priority order matters: first match wins.
DEFAULT_SEGMENT_RULES: tuple[SegmentRule, ...] = (
    _rule(
        "Lost/Churned Customer",
        "111", "112", "121", "122", "123", "132", "211", "212", "114", "141",
    ),
    _rule(
        "Slipping Away, Cannot Lose",
        "133", "134", "143", "244", "334", "343", "344", "144",
    ),
    _rule("New Customers", "311", "411", "331"),
    _rule("Potential Churners", "222", "231", "221", "223", "233", "322"),
    _rule("Active", "323", "333", "321", "341", "422", "332", "432"),
    _rule("Loyal", "433", "434", "443", "444"),
)


def classify_rfm_score(
    rfm_score: str,
    rules: Sequence[SegmentRule] = DEFAULT_SEGMENT_RULES,
    default: str = DEFAULT_SEGMENT,
) -> str:
    """Map an RFM triplet to a segment label.

    Examples
    --------
    >>> classify_rfm_score("433")
    'Loyal'
    >>> classify_rfm_score("413")
    'Cannot Be Defined'
    """
    validate_rfm_score(rfm_score)
    for rule in rules:
        if rule.matches(rfm_score):
            return rule.label
    return default


@dataclass(frozen=True)
class CustomerSegment:
    """Final per-customer RFM row: aggregates, scores and segment label."""

    customer_id: str
    recency_days: int
    frequency: int
    monetary: int
    r_score: int
    f_score: int
    m_score: int
    rfm_score: str
    segment: str


def assign_segments(
    aggregates: Sequence[CustomerAggregate],
    scores: Sequence[RFMScore],
    rules: Sequence[SegmentRule] = DEFAULT_SEGMENT_RULES,
    default: str = DEFAULT_SEGMENT,
) -> list[CustomerSegment]:
    """Join aggregates with scores and label each customer.

    Raises
    ------
    ValueError
        If the two inputs do not cover the same customers.
    """
    scores_by_customer = {score.customer_id: score for score in scores}
    aggregate_ids = {aggregate.customer_id for aggregate in aggregates}
    if aggregate_ids != set(scores_by_customer) or len(aggregate_ids) != len(
        aggregates
    ):
        raise ValueError(
            "Aggregates and scores must cover the same customers exactly once"
        )

    segments: list[CustomerSegment] = []
    for aggregate in aggregates:
        score = scores_by_customer[aggregate.customer_id]
        segments.append(
            CustomerSegment(
                customer_id=aggregate.customer_id,
                recency_days=aggregate.recency_days,
                frequency=aggregate.frequency,
                monetary=aggregate.monetary,
                r_score=score.r_score,
                f_score=score.f_score,
                m_score=score.m_score,
                rfm_score=score.rfm_score,
                segment=classify_rfm_score(score.rfm_score, rules, default),
            )
        )

    segments.sort(key=lambda s: s.customer_id)
    return segments


@dataclass(frozen=True)
class SegmentCount:
    """Number and share of customers in one segment."""

    segment: str
    customer_count: int
    customer_pct: Decimal

    def __post_init__(self) -> None:
        if self.customer_count < 0:
            raise ValueError(
                f"Customer count cannot be negative: {self.customer_count} (segment={self.segment})"
            )
        if not 0 <= self.customer_pct <= 100:
            raise ValueError(
                f"Customer percentage must be 0-100: {self.customer_pct} (segment={self.segment})"
            )


def summarize_segments(segments: Sequence[CustomerSegment]) -> list[SegmentCount]:
    """Count customers per segment, largest segment first.

    Segments with equal counts are ordered by label so the report is
    deterministic.
    """
    if not segments:
        return []

    counts = Counter(segment.segment for segment in segments)
    total = len(segments)
    summary = [
        SegmentCount(
            segment=label,
            customer_count=count,
            customer_pct=(Decimal(count) * 100 / Decimal(total)).quantize(
                PERCENTAGE_PRECISION, rounding=ROUND_HALF_UP
            ),
        )
        for label, count in counts.items()
    ]
    summary.sort(key=lambda row: (-row.customer_count, row.segment))
    logger.debug(f"Summarized {total} customers into {len(summary)} segments")
    return summary
