"""Command line entry points for RFM segmentation."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

from rfm_segmentation.analyses.sales_summary import (
    SALES_DIMENSIONS,
    monthly_sales,
    summarize_sales,
)
from rfm_segmentation.foundation.pipeline import RFMConfig, segment_customers
from rfm_segmentation.foundation.transactions import (
    DEFAULT_DATE_FORMATS,
    SalesTransaction,
)
from rfm_segmentation.pandas.rfm import (
    dataframe_to_transactions,
    segment_summary_to_dataframe,
    segments_to_dataframe,
)

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 100 * 1024 * 1024  # 100 MiB cap to avoid accidental OOM


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=getattr(logging, level),
    )


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="Path to CSV file with sales lines")
    parser.add_argument("--order-id-col", default="order_id")
    parser.add_argument("--customer-id-col", default="customer_id")
    parser.add_argument("--amount-col", default="amount")
    parser.add_argument("--order-date-col", default="order_date")
    parser.add_argument("--product-line-col", default="product_line")
    parser.add_argument("--country-col", default="country")
    parser.add_argument("--city-col", default="city")
    parser.add_argument("--deal-size-col", default="deal_size")
    parser.add_argument(
        "--date-format",
        dest="date_formats",
        action="append",
        help=(
            "strptime format for order dates; repeat to try several in order "
            f"(default: {' then '.join(DEFAULT_DATE_FORMATS)})"
        ),
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )


def _load_transactions(
    args: argparse.Namespace, date_formats: tuple[str, ...]
) -> list[SalesTransaction]:
    resolved = args.input.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    # Read every column as text so identifiers and dates are never coerced.
    sales_df = pd.read_csv(resolved, dtype=str)
    logger.info(f"Loaded {len(sales_df)} rows from {resolved}")
    return dataframe_to_transactions(
        sales_df,
        order_id_col=args.order_id_col,
        customer_id_col=args.customer_id_col,
        amount_col=args.amount_col,
        order_date_col=args.order_date_col,
        product_line_col=args.product_line_col,
        country_col=args.country_col,
        city_col=args.city_col,
        deal_size_col=args.deal_size_col,
        date_formats=date_formats,
    )


def segment_customers_cli(argv: list[str] | None = None) -> int:
    """Segment customers by RFM score and export the results to CSV.

    Writes one row per customer (recency, frequency, monetary, quartile
    scores, triplet and segment) and a summary of customers per segment,
    largest segment first. Without ``--summary-output`` the summary is
    printed to stdout.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for invalid input)
    """
    parser = argparse.ArgumentParser(
        description="Segment customers by RFM quartile scores"
    )
    _add_input_arguments(parser)
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path for the per-customer CSV",
    )
    parser.add_argument(
        "--summary-output",
        type=Path,
        help="Optional path for the segment summary CSV",
    )
    parser.add_argument(
        "--no-parallel",
        action="store_true",
        help="Always aggregate customers in a single process",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    config = RFMConfig(
        date_formats=tuple(args.date_formats or DEFAULT_DATE_FORMATS),
        parallel=not args.no_parallel,
    )

    try:
        transactions = _load_transactions(args, config.date_formats)
    except (ValueError, TypeError) as exc:
        logger.error(f"Invalid input: {exc}")
        return 1

    if not transactions:
        logger.warning("No transactions found in input file")

    result = segment_customers(transactions, config)
    customers_df = segments_to_dataframe(result.customers)
    summary_df = segment_summary_to_dataframe(result.summary)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        customers_df.to_csv(args.output, index=False)
        logger.info(f"Customer segments exported to {args.output}")

    if args.summary_output:
        args.summary_output.parent.mkdir(parents=True, exist_ok=True)
        summary_df.to_csv(args.summary_output, index=False)
        logger.info(f"Segment summary exported to {args.summary_output}")
    else:  # stdout fallback enables piping in shell usage.
        print(summary_df.to_string(index=False))

    return 0


def sales_summary_cli(argv: list[str] | None = None) -> int:
    """Print revenue broken down by a sales dimension, or by month of a year."""
    parser = argparse.ArgumentParser(description="Summarize sales revenue")
    _add_input_arguments(parser)
    parser.add_argument(
        "--by",
        choices=SALES_DIMENSIONS,
        default="product_line",
        help="Dimension to group revenue by (default: product_line)",
    )
    parser.add_argument(
        "--year",
        type=int,
        help="Break down this year's revenue by month instead",
    )

    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    date_formats = tuple(args.date_formats or DEFAULT_DATE_FORMATS)
    try:
        transactions = _load_transactions(args, date_formats)
    except (ValueError, TypeError) as exc:
        logger.error(f"Invalid input: {exc}")
        return 1

    if args.year is not None:
        breakdown = monthly_sales(transactions, args.year)
        group_name = "month"
    else:
        breakdown = summarize_sales(transactions, by=args.by)
        group_name = args.by

    summary_df = pd.DataFrame(
        [
            {
                group_name: row.group,
                "revenue": float(row.revenue),
                "order_count": row.order_count,
                "line_count": row.line_count,
            }
            for row in breakdown
        ],
        columns=[group_name, "revenue", "order_count", "line_count"],
    )
    print(summary_df.to_string(index=False))
    return 0


def main() -> None:
    raise SystemExit(segment_customers_cli())


def sales_summary_main() -> None:
    raise SystemExit(sales_summary_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
