"""RFM (Recency-Frequency-Monetary) aggregation and quartile scoring.

RFM analysis segments customers based on three dimensions:
- Recency: How many days before the latest sale in the dataset did the
  customer last order?
- Frequency: How many distinct orders did they place?
- Monetary: How much did they spend in total?

Scores are ordinal quartiles (NTILE(4) semantics): customers are sorted on a
dimension and split into four buckets by position, not by value thresholds.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Sequence

import numpy as np
import pandas as pd  # Used for the per-dimension sort/rank in scoring

from rfm_segmentation.foundation.transactions import SalesTransaction

logger = logging.getLogger(__name__)

# Number of score buckets per dimension (quartiles)
RFM_BINS = 4

VALID_SCORE_DIGITS = frozenset(str(score) for score in range(1, RFM_BINS + 1))


@dataclass(frozen=True)
class CustomerAggregate:
    """RFM aggregates for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    recency_days:
        Days between the customer's last order and ``reference_date``
    frequency:
        Number of distinct orders
    monetary:
        Total spend rounded half-up to a whole number
    total_spend:
        Exact sum of line amounts, before any rounding
    last_order_date:
        Date of the customer's most recent order
    reference_date:
        Latest order date across the whole dataset
    """

    customer_id: str
    recency_days: int
    frequency: int
    monetary: int
    total_spend: Decimal
    last_order_date: date
    reference_date: date

    def __post_init__(self) -> None:
        """Validate RFM aggregates."""
        if self.recency_days < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.recency_days} (customer_id={self.customer_id})"
            )
        if self.frequency <= 0:
            raise ValueError(
                f"Frequency must be positive: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.monetary < 0:
            raise ValueError(
                f"Monetary value cannot be negative: {self.monetary} (customer_id={self.customer_id})"
            )
        expected_recency = (self.reference_date - self.last_order_date).days
        if self.recency_days != expected_recency:
            raise ValueError(
                f"Recency ({self.recency_days}) != reference_date - last_order_date "
                f"({expected_recency}) (customer_id={self.customer_id})"
            )
        expected_monetary = _round_to_whole(self.total_spend)
        if self.monetary != expected_monetary:
            raise ValueError(
                f"Monetary ({self.monetary}) != rounded total_spend ({expected_monetary}) (customer_id={self.customer_id})"
            )


def _round_to_whole(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _aggregate_customers(
    customer_data_chunk: dict[str, dict], reference_date: date
) -> list[CustomerAggregate]:
    """Build aggregates for a chunk of customers.

    Called directly for serial runs and by multiprocessing workers for
    parallel runs; each chunk is independent of the others.
    """
    aggregates: list[CustomerAggregate] = []

    for customer_id, data in customer_data_chunk.items():
        aggregates.append(
            CustomerAggregate(
                customer_id=customer_id,
                recency_days=(reference_date - data["last_order_date"]).days,
                frequency=len(data["order_ids"]),
                monetary=_round_to_whole(data["total_spend"]),
                total_spend=data["total_spend"],
                last_order_date=data["last_order_date"],
                reference_date=reference_date,
            )
        )

    return aggregates


def calculate_rfm(
    transactions: Sequence[SalesTransaction],
    parallel: bool = True,
    parallel_threshold: int = 10_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerAggregate]:
    """Aggregate transactions into per-customer RFM values.

    Recency is measured against the latest order date in the *whole*
    dataset, so the customer(s) holding the most recent order always have
    recency 0. Monetary is the rounded sum of all line amounts; frequency
    counts distinct order identifiers, so multi-line orders count once.

    **Parallel Processing**: Customers are independent once grouped, so for
    very large inputs (>10M customers by default) the per-customer step runs
    in a multiprocessing pool. Output is identical to serial processing.

    Parameters
    ----------
    transactions:
        Validated sales lines, in any order
    parallel:
        Enable parallel processing (default: True). Only used above
        ``parallel_threshold`` customers.
    parallel_threshold:
        Number of customers above which to enable parallel processing
    n_workers:
        Number of worker processes. If None, uses CPU count.

    Returns
    -------
    list[CustomerAggregate]
        One aggregate per customer, sorted by customer_id. Empty input
        returns an empty list.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> txns = [
    ...     SalesTransaction("O1", "C1", Decimal("100.40"), date(2003, 1, 6)),
    ...     SalesTransaction("O1", "C1", Decimal("50.20"), date(2003, 1, 6)),
    ...     SalesTransaction("O2", "C2", Decimal("75.00"), date(2003, 1, 16)),
    ... ]
    >>> rfm = calculate_rfm(txns)
    >>> rfm[0].frequency, rfm[0].monetary, rfm[0].recency_days
    (1, 151, 10)
    >>> rfm[1].recency_days
    0
    """
    if not transactions:
        return []

    reference_date = max(txn.order_date for txn in transactions)

    customer_data: dict[str, dict] = {}
    for txn in transactions:
        data = customer_data.setdefault(
            txn.customer_id,
            {
                "last_order_date": txn.order_date,
                "order_ids": set(),
                "total_spend": Decimal("0"),
            },
        )
        if txn.order_date > data["last_order_date"]:
            data["last_order_date"] = txn.order_date
        data["order_ids"].add(txn.order_id)
        data["total_spend"] += txn.amount

    num_customers = len(customer_data)
    use_parallel = parallel and num_customers >= parallel_threshold
    logger.info(
        f"Aggregating {len(transactions)} transactions into {num_customers} customers "
        f"(reference_date={reference_date.isoformat()}, parallel={use_parallel})"
    )

    if use_parallel:
        if n_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, n_workers)

        customer_items = list(customer_data.items())
        chunk_size = max(1, num_customers // workers)
        chunks = []
        for i in range(0, num_customers, chunk_size):
            chunk_dict = dict(customer_items[i : i + chunk_size])
            chunks.append((chunk_dict, reference_date))

        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.starmap(_aggregate_customers, chunks)

        aggregates: list[CustomerAggregate] = []
        for chunk_result in chunk_results:
            aggregates.extend(chunk_result)
    else:
        aggregates = _aggregate_customers(customer_data, reference_date)

    aggregates.sort(key=lambda a: a.customer_id)
    return aggregates


@dataclass(frozen=True)
class RFMScore:
    """RFM quartile scores (1-4) for a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    r_score:
        Recency score (1-4, where 4 = most recent)
    f_score:
        Frequency score (1-4, where 4 = most orders)
    m_score:
        Monetary score (1-4, where 4 = highest spend)
    rfm_score:
        Concatenated triplet in (r, f, m) order, e.g. "433"
    """

    customer_id: str
    r_score: int
    f_score: int
    m_score: int
    rfm_score: str

    def __post_init__(self) -> None:
        """Validate RFM scores."""
        for score_name, score_value in [
            ("r_score", self.r_score),
            ("f_score", self.f_score),
            ("m_score", self.m_score),
        ]:
            if not 1 <= score_value <= RFM_BINS:
                raise ValueError(
                    f"{score_name} must be between 1 and {RFM_BINS}: {score_value} (customer_id={self.customer_id})"
                )
        expected_rfm = f"{self.r_score}{self.f_score}{self.m_score}"
        if self.rfm_score != expected_rfm:
            raise ValueError(
                f"rfm_score ({self.rfm_score}) does not match r/f/m scores ({expected_rfm}) (customer_id={self.customer_id})"
            )


def ntile(n_rows: int, bins: int = RFM_BINS) -> np.ndarray:
    """Return NTILE bucket numbers (1-based) for ``n_rows`` ordered rows.

    Matches SQL ``NTILE``: with ``q, r = divmod(n_rows, bins)`` the first
    ``r`` buckets hold ``q + 1`` rows and the remaining buckets hold ``q``.
    With fewer rows than bins, only buckets ``1..n_rows`` are used.

    >>> ntile(6).tolist()
    [1, 1, 2, 2, 3, 4]
    """
    if bins <= 0:
        raise ValueError(f"bins must be positive: {bins}")
    positions = np.arange(n_rows)
    q, r = divmod(n_rows, bins)
    large_rows = r * (q + 1)
    buckets = np.where(
        positions < large_rows,
        positions // (q + 1),
        r + (positions - large_rows) // max(q, 1),
    )
    return (buckets + 1).astype(int)


def _score_dimension(df: pd.DataFrame, column: str, ascending: bool) -> pd.Series:
    """Bucket customers on one dimension by ordinal position.

    Ties on ``column`` are broken by customer_id ascending, so within a tie
    the later customer_id lands in the higher (or equal) bucket.
    """
    ordered = df.sort_values(
        [column, "customer_id"], ascending=[ascending, True], kind="mergesort"
    )
    return pd.Series(ntile(len(ordered)), index=ordered.index)


def calculate_rfm_scores(
    aggregates: Sequence[CustomerAggregate],
) -> list[RFMScore]:
    """Score customers into quartiles (1-4) on each RFM dimension.

    Each dimension is ranked independently over all customers:

    - Recency is sorted descending, so the most recent customers land in
      bucket 4.
    - Frequency and monetary are sorted ascending, so the largest values
      land in bucket 4.

    In every dimension 4 is the most desirable score. Bucket sizes differ by
    at most one (``ceil(N/4)`` or ``floor(N/4)``).

    **Tie-break**: customers sharing a value are ordered by customer_id
    ascending before bucketing. The SQL ``NTILE`` this mirrors leaves tie
    order unspecified; fixing it keeps runs reproducible.

    Returns
    -------
    list[RFMScore]
        One score per customer, sorted by customer_id. Empty input returns
        an empty list.

    Examples
    --------
    >>> from datetime import date
    >>> from decimal import Decimal
    >>> ref = date(2003, 12, 31)
    >>> aggs = [
    ...     CustomerAggregate("C1", 0, 5, 900, Decimal("900"), ref, ref),
    ...     CustomerAggregate("C2", 30, 1, 100, Decimal("100"), date(2003, 12, 1), ref),
    ... ]
    >>> [s.rfm_score for s in calculate_rfm_scores(aggs)]
    ['222', '111']
    """
    if not aggregates:
        return []

    df = pd.DataFrame(
        {
            "customer_id": [a.customer_id for a in aggregates],
            "recency_days": [a.recency_days for a in aggregates],
            "frequency": [a.frequency for a in aggregates],
            "monetary": [a.monetary for a in aggregates],
        }
    )

    df["r_score"] = _score_dimension(df, "recency_days", ascending=False)
    df["f_score"] = _score_dimension(df, "frequency", ascending=True)
    df["m_score"] = _score_dimension(df, "monetary", ascending=True)

    df["rfm_score"] = (
        df["r_score"].astype(str)
        + df["f_score"].astype(str)
        + df["m_score"].astype(str)
    )

    scores = [
        RFMScore(
            customer_id=str(record["customer_id"]),
            r_score=int(record["r_score"]),
            f_score=int(record["f_score"]),
            m_score=int(record["m_score"]),
            rfm_score=str(record["rfm_score"]),
        )
        for record in df.to_dict("records")
    ]

    scores.sort(key=lambda s: s.customer_id)
    logger.debug(f"Scored {len(scores)} customers into {RFM_BINS} buckets per dimension")
    return scores
