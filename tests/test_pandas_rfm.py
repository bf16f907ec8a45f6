"""Tests for RFM pandas adapters."""

import pytest
from datetime import date, timedelta
from decimal import Decimal
import pandas as pd

from rfm_segmentation.foundation.rfm import CustomerAggregate
from rfm_segmentation.foundation.segments import CustomerSegment, SegmentCount
from rfm_segmentation.foundation.pipeline import RFMConfig
from rfm_segmentation.pandas import (
    dataframe_to_transactions,
    rfm_to_dataframe,
    segments_to_dataframe,
    segment_summary_to_dataframe,
    segment_customers_df,
)


@pytest.fixture
def sales_df():
    """Sales lines using the column names of the classic-models extract."""
    return pd.DataFrame(
        {
            "ORDERNUMBER": ["10107", "10107", "10121", "10134", "10145"],
            "CUSTOMERNAME": [
                "Land of Toys Inc.",
                "Land of Toys Inc.",
                "Reims Collectables",
                "Lyon Souveniers",
                "Toys4GrownUps.com",
            ],
            "SALES": ["2871.00", "2765.90", "3884.34", "3746.70", "5205.27"],
            "ORDERDATE": ["24/02/2003", "24/02/2003", "07/05/03", "01/07/2003", "25/08/2003"],
            "PRODUCTLINE": ["Motorcycles", "Motorcycles", "Classic Cars", "Ships", None],
            "COUNTRY": ["USA", "USA", "France", "France", "USA"],
        }
    )


def _column_args():
    return dict(
        order_id_col="ORDERNUMBER",
        customer_id_col="CUSTOMERNAME",
        amount_col="SALES",
        order_date_col="ORDERDATE",
        product_line_col="PRODUCTLINE",
        country_col="COUNTRY",
    )


class TestDataFrameToTransactions:
    """Test dataframe_to_transactions conversion."""

    def test_custom_column_names(self, sales_df):
        txns = dataframe_to_transactions(sales_df, **_column_args())

        assert len(txns) == 5
        assert txns[0].order_id == "10107"
        assert txns[0].customer_id == "Land of Toys Inc."
        assert txns[0].amount == Decimal("2871.00")
        assert txns[0].order_date == date(2003, 2, 24)
        assert txns[0].product_line == "Motorcycles"
        assert txns[0].country == "USA"
        assert txns[2].order_date == date(2003, 5, 7)
        assert txns[4].product_line is None

    def test_optional_columns_may_be_absent(self, sales_df):
        txns = dataframe_to_transactions(
            sales_df.drop(columns=["PRODUCTLINE", "COUNTRY"]), **_column_args()
        )
        assert all(t.product_line is None and t.country is None for t in txns)

    def test_missing_required_columns_raise_error(self, sales_df):
        with pytest.raises(ValueError, match="missing required columns"):
            dataframe_to_transactions(sales_df.drop(columns=["SALES"]), **_column_args())

    def test_null_customer_raises_error(self, sales_df):
        sales_df.loc[2, "CUSTOMERNAME"] = None
        with pytest.raises(ValueError, match="Null/NaN values found in columns: \\['CUSTOMERNAME'\\]"):
            dataframe_to_transactions(sales_df, **_column_args())

    def test_malformed_date_raises_error(self, sales_df):
        sales_df.loc[3, "ORDERDATE"] = "2003-07-01"
        with pytest.raises(ValueError, match="index 3: Unparseable order date"):
            dataframe_to_transactions(sales_df, **_column_args())

    def test_empty_dataframe_returns_empty_list(self):
        empty = pd.DataFrame(columns=["order_id", "customer_id", "amount", "order_date"])
        assert dataframe_to_transactions(empty) == []

    def test_numeric_columns_accepted(self):
        df = pd.DataFrame(
            {
                "order_id": [1, 2],
                "customer_id": ["A", "B"],
                "amount": [10.5, 20.0],
                "order_date": ["01/01/2004", "02/01/2004"],
            }
        )
        txns = dataframe_to_transactions(df)
        assert [t.order_id for t in txns] == ["1", "2"]
        assert [t.amount for t in txns] == [Decimal("10.5"), Decimal("20.0")]


class TestRFMToDataFrame:
    def test_empty_input_returns_empty_dataframe(self):
        df = rfm_to_dataframe([])
        assert df.empty
        assert list(df.columns) == [
            "customer_id",
            "recency_days",
            "frequency",
            "monetary",
            "total_spend",
            "last_order_date",
            "reference_date",
        ]

    def test_values_and_sorting(self):
        reference = date(2005, 5, 31)
        aggregates = [
            CustomerAggregate(
                cid, days, 1, 10, Decimal("10.25"), reference - timedelta(days=days), reference
            )
            for cid, days in [("B", 3), ("A", 0)]
        ]
        df = rfm_to_dataframe(aggregates)
        assert df["customer_id"].tolist() == ["A", "B"]
        assert df.iloc[1]["recency_days"] == 3
        assert df.iloc[0]["total_spend"] == 10.25


class TestSegmentsToDataFrame:
    def test_empty_input_returns_empty_dataframe(self):
        df = segments_to_dataframe([])
        assert df.empty
        assert list(df.columns) == [
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

    def test_rfm_score_stays_string(self):
        rows = [
            CustomerSegment("B", 0, 1, 10, 1, 1, 1, "111", "Lost/Churned Customer"),
            CustomerSegment("A", 0, 9, 90, 4, 3, 3, "433", "Loyal"),
        ]
        df = segments_to_dataframe(rows)
        assert df["customer_id"].tolist() == ["A", "B"]
        assert df["rfm_score"].tolist() == ["433", "111"]
        assert df.iloc[0]["segment"] == "Loyal"


class TestSegmentSummaryToDataFrame:
    def test_order_preserved(self):
        summary = [
            SegmentCount("Loyal", 3, Decimal("60.00")),
            SegmentCount("Active", 2, Decimal("40.00")),
        ]
        df = segment_summary_to_dataframe(summary)
        assert df["segment"].tolist() == ["Loyal", "Active"]
        assert df["customer_count"].tolist() == [3, 2]
        assert df["customer_pct"].tolist() == [60.0, 40.0]

    def test_empty_input(self):
        df = segment_summary_to_dataframe([])
        assert list(df.columns) == ["segment", "customer_count", "customer_pct"]


class TestSegmentCustomersDF:
    def test_end_to_end(self, sales_df):
        customers_df, summary_df = segment_customers_df(
            sales_df,
            order_id_col="ORDERNUMBER",
            customer_id_col="CUSTOMERNAME",
            amount_col="SALES",
            order_date_col="ORDERDATE",
        )

        assert len(customers_df) == 4
        toys = customers_df.set_index("customer_id").loc["Land of Toys Inc."]
        assert toys["frequency"] == 1
        assert toys["monetary"] == 5637  # 2871.00 + 2765.90 rounded
        assert toys["recency_days"] == (date(2003, 8, 25) - date(2003, 2, 24)).days
        assert summary_df["customer_count"].sum() == 4
        assert summary_df["customer_count"].is_monotonic_decreasing

    def test_float_amounts_round_from_exact_total(self):
        df = pd.DataFrame(
            {
                "order_id": ["1", "2"],
                "customer_id": ["A", "B"],
                "amount": [0.4951, 3.0],
                "order_date": ["01/01/2004", "02/01/2004"],
            }
        )
        customers_df, _ = segment_customers_df(df)
        monetary = customers_df.set_index("customer_id")["monetary"]
        assert monetary["A"] == 0
        assert monetary["B"] == 3

    def test_config_date_formats_used(self):
        df = pd.DataFrame(
            {
                "order_id": ["1"],
                "customer_id": ["A"],
                "amount": ["5"],
                "order_date": ["2004-01-31"],
            }
        )
        customers_df, _ = segment_customers_df(
            df, config=RFMConfig(date_formats=("%Y-%m-%d",))
        )
        assert customers_df.iloc[0]["recency_days"] == 0
