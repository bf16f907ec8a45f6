#!/usr/bin/env python
"""
Generate a synthetic sales extract for trying out the RFM CLI.

This script writes a CSV of sales lines (order, customer, amount, DD/MM/YYYY
order date, product line, country, city, deal size) that can be fed straight
to ``rfm-segment`` or ``rfm-sales-summary``.

Usage:
    python generate_synthetic_test_data.py

Output:
    synthetic_sales.csv - Sales lines for 92 customers
"""

from datetime import date
from pathlib import Path

import pandas as pd

from rfm_segmentation.synthetic import (
    SalesScenario,
    generate_sales_transactions,
    transactions_to_records,
)


def main():
    """Generate synthetic sales lines and save to CSV."""
    print("Generating synthetic sales data...")

    transactions = generate_sales_transactions(
        92,
        start=date(2003, 1, 6),
        end=date(2005, 5, 31),
        scenario=SalesScenario(seed=42),  # Fixed seed for reproducibility
    )

    output_file = Path("synthetic_sales.csv")
    pd.DataFrame(transactions_to_records(transactions)).to_csv(output_file, index=False)

    print(f"Generated {len(transactions)} sales lines")
    print(f"✓ Saved to {output_file.absolute()}")
    print("\nTry it with:")
    print(f"  rfm-segment {output_file} --output customer_segments.csv")
    print(f"  rfm-sales-summary {output_file} --by product_line")


if __name__ == "__main__":
    main()
