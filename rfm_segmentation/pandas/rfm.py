"""Pandas DataFrame adapters for RFM segmentation."""

from typing import List, Optional, Sequence, Tuple

import pandas as pd  # type: ignore

from rfm_segmentation.foundation.pipeline import RFMConfig, segment_customers
from rfm_segmentation.foundation.rfm import CustomerAggregate
from rfm_segmentation.foundation.segments import CustomerSegment, SegmentCount
from rfm_segmentation.foundation.transactions import (
    DEFAULT_DATE_FORMATS,
    SalesTransaction,
    build_transactions,
)
from ._utils import decimal_to_float

RFM_COLUMNS = [
    "customer_id",
    "recency_days",
    "frequency",
    "monetary",
    "total_spend",
    "last_order_date",
    "reference_date",
]

SEGMENT_COLUMNS = [
    "customer_id",
    "recency_days",
    "frequency",
    "monetary",
    "r_score",
    "f_score",
    "m_score",
    "rfm_score",
    "segment",
]

SUMMARY_COLUMNS = ["segment", "customer_count", "customer_pct"]


def dataframe_to_transactions(
    sales_df: pd.DataFrame,
    order_id_col: str = "order_id",
    customer_id_col: str = "customer_id",
    amount_col: str = "amount",
    order_date_col: str = "order_date",
    product_line_col: str = "product_line",
    country_col: str = "country",
    city_col: str = "city",
    deal_size_col: str = "deal_size",
    date_formats: Sequence[str] = DEFAULT_DATE_FORMATS,
) -> List[SalesTransaction]:
    """Convert a sales DataFrame to validated transactions.

    Args:
        sales_df: DataFrame with one row per sales line
        *_col: Column name mappings for flexibility. Descriptive columns
            (product line, country, city, deal size) are optional and
            skipped when absent.
        date_formats: Explicit strptime formats for string order dates

    Returns:
        List of SalesTransaction objects in row order

    Raises:
        ValueError: If required columns are missing, contain nulls, or a
            row has an unparseable date or negative amount

    Example:
        >>> sales_df = pd.read_csv('sales.csv', dtype=str)
        >>> transactions = dataframe_to_transactions(
        ...     sales_df,
        ...     order_id_col='ORDERNUMBER',
        ...     customer_id_col='CUSTOMERNAME',
        ...     amount_col='SALES',
        ...     order_date_col='ORDERDATE',
        ... )
    """
    required_mapping = {
        "order_id": order_id_col,
        "customer_id": customer_id_col,
        "amount": amount_col,
        "order_date": order_date_col,
    }
    optional_mapping = {
        "product_line": product_line_col,
        "country": country_col,
        "city": city_col,
        "deal_size": deal_size_col,
    }

    missing_cols = set(required_mapping.values()) - set(sales_df.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if sales_df.empty:
        return []

    # Validate for null/NaN values
    required_cols = list(required_mapping.values())
    null_cols = sales_df[required_cols].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            "Every sales line needs an order, customer, amount and date."
        )

    mapping = dict(required_mapping)
    mapping.update(
        {
            field: column
            for field, column in optional_mapping.items()
            if column in sales_df.columns
        }
    )

    records = (
        {field: record[column] for field, column in mapping.items()}
        for record in sales_df.to_dict("records")
    )
    return build_transactions(records, date_formats=date_formats)


def rfm_to_dataframe(aggregates: Sequence[CustomerAggregate]) -> pd.DataFrame:
    """Convert customer aggregates to a DataFrame sorted by customer_id."""
    if not aggregates:
        return pd.DataFrame(columns=RFM_COLUMNS)

    rows = [
        {
            "customer_id": a.customer_id,
            "recency_days": a.recency_days,
            "frequency": a.frequency,
            "monetary": a.monetary,
            "total_spend": decimal_to_float(a.total_spend),
            "last_order_date": a.last_order_date,
            "reference_date": a.reference_date,
        }
        for a in aggregates
    ]

    df = pd.DataFrame(rows, columns=RFM_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def segments_to_dataframe(segments: Sequence[CustomerSegment]) -> pd.DataFrame:
    """Convert per-customer segment rows to a DataFrame.

    Returns:
        DataFrame with columns: customer_id, recency_days, frequency,
        monetary, r_score, f_score, m_score, rfm_score, segment; sorted by
        customer_id. ``rfm_score`` stays a string so "111" is not read back
        as the integer 111.
    """
    if not segments:
        return pd.DataFrame(columns=SEGMENT_COLUMNS)

    rows = [
        {
            "customer_id": s.customer_id,
            "recency_days": s.recency_days,
            "frequency": s.frequency,
            "monetary": s.monetary,
            "r_score": s.r_score,
            "f_score": s.f_score,
            "m_score": s.m_score,
            "rfm_score": s.rfm_score,
            "segment": s.segment,
        }
        for s in segments
    ]

    df = pd.DataFrame(rows, columns=SEGMENT_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)


def segment_summary_to_dataframe(summary: Sequence[SegmentCount]) -> pd.DataFrame:
    """Convert segment counts to a DataFrame, preserving count-descending order."""
    if not summary:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    rows = [
        {
            "segment": row.segment,
            "customer_count": row.customer_count,
            "customer_pct": decimal_to_float(row.customer_pct),
        }
        for row in summary
    ]
    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)


def segment_customers_df(
    sales_df: pd.DataFrame,
    order_id_col: str = "order_id",
    customer_id_col: str = "customer_id",
    amount_col: str = "amount",
    order_date_col: str = "order_date",
    config: Optional[RFMConfig] = None,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Segment customers straight from a sales DataFrame.

    Convenience function that combines conversion and segmentation.

    Args:
        sales_df: DataFrame with one row per sales line
        *_col: Column name mappings for flexibility
        config: Segmentation settings (date formats, rules, parallelism)

    Returns:
        Tuple of (customers_df, summary_df)

    Example:
        >>> customers_df, summary_df = segment_customers_df(sales_df)
        >>> loyal = customers_df[customers_df['segment'] == 'Loyal']
    """
    config = config or RFMConfig()

    transactions = dataframe_to_transactions(
        sales_df,
        order_id_col=order_id_col,
        customer_id_col=customer_id_col,
        amount_col=amount_col,
        order_date_col=order_date_col,
        date_formats=config.date_formats,
    )

    result = segment_customers(transactions, config)

    return (
        segments_to_dataframe(result.customers),
        segment_summary_to_dataframe(result.summary),
    )
