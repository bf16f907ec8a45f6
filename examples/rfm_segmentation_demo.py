"""RFM segmentation demo with synthetic sales data.

This example walks through the segmentation pipeline step by step:
1. Generate synthetic sales lines
2. Explore revenue by product line and year
3. Aggregate customers into recency/frequency/monetary values
4. Score each dimension into quartiles
5. Classify score triplets into named segments
"""

from datetime import date

from rfm_segmentation.analyses import monthly_sales, summarize_sales, top_customers
from rfm_segmentation.foundation import (
    assign_segments,
    calculate_rfm,
    calculate_rfm_scores,
    summarize_segments,
)
from rfm_segmentation.synthetic import SalesScenario, generate_sales_transactions


def main():
    """Demonstrate the RFM segmentation pipeline."""
    print("=" * 80)
    print("RFM Segmentation Demo with Synthetic Sales Data")
    print("=" * 80)

    # Step 1: Generate synthetic data
    print("\n📊 Step 1: Generating synthetic sales data...")
    transactions = generate_sales_transactions(
        92, date(2003, 1, 6), date(2005, 5, 31), scenario=SalesScenario(seed=42)
    )
    print(f"✓ Generated {len(transactions):,} sales lines")

    # Step 2: Explore sales
    print("\n📈 Step 2: Exploring sales...")
    for row in summarize_sales(transactions, by="product_line")[:3]:
        print(f"  {row.group:<20} ${row.revenue:>12,.2f}  ({row.order_count} orders)")
    for row in summarize_sales(transactions, by="year"):
        print(f"  {row.group:<20} ${row.revenue:>12,.2f}")
    best_month = monthly_sales(transactions, 2004)[0]
    print(f"  Best month of 2004: {best_month.group} (${best_month.revenue:,.2f})")

    # Step 3: Aggregate
    print("\n🧮 Step 3: Aggregating customers...")
    aggregates = calculate_rfm(transactions)
    print(f"✓ {len(aggregates)} customers, latest sale {aggregates[0].reference_date}")
    for aggregate in top_customers(aggregates, limit=3):
        print(f"  {aggregate.customer_id}: ${aggregate.monetary:,}")

    # Step 4: Score
    print("\n🎯 Step 4: Scoring quartiles...")
    scores = calculate_rfm_scores(aggregates)
    print(f"✓ Example: {scores[0].customer_id} scored {scores[0].rfm_score}")

    # Step 5: Segment
    print("\n🏷️  Step 5: Segmenting customers...")
    segments = assign_segments(aggregates, scores)
    for row in summarize_segments(segments):
        print(f"  {row.segment:<30} {row.customer_count:>4}  ({row.customer_pct}%)")


if __name__ == "__main__":
    main()
