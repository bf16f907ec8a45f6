"""Integration tests for CLI batch commands.

Tests the complete workflow from a sales CSV through the CLI commands to the
exported customer segment and segment summary files.
"""

from datetime import date

import pandas as pd
import pytest

from rfm_segmentation.cli import sales_summary_cli, segment_customers_cli
from rfm_segmentation.synthetic import (
    SalesScenario,
    generate_sales_transactions,
    transactions_to_records,
)


@pytest.fixture
def sample_sales_csv(tmp_path):
    """Write 92 synthetic customers' sales lines to CSV with DD/MM/YYYY dates."""
    transactions = generate_sales_transactions(
        92,
        date(2003, 1, 6),
        date(2005, 5, 31),
        scenario=SalesScenario(seed=17),
    )
    path = tmp_path / "sales.csv"
    pd.DataFrame(transactions_to_records(transactions)).to_csv(path, index=False)
    return path


class TestSegmentCustomersCLI:
    """Test segment_customers_cli end to end."""

    def test_writes_customer_and_summary_files(self, sample_sales_csv, tmp_path):
        customers_path = tmp_path / "out" / "customers.csv"
        summary_path = tmp_path / "out" / "summary.csv"

        exit_code = segment_customers_cli(
            [
                str(sample_sales_csv),
                "--output",
                str(customers_path),
                "--summary-output",
                str(summary_path),
                "--no-parallel",
            ]
        )

        assert exit_code == 0
        customers = pd.read_csv(customers_path, dtype={"rfm_score": str})
        summary = pd.read_csv(summary_path)

        assert len(customers) == 92
        assert list(customers.columns) == [
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
        assert customers["rfm_score"].str.fullmatch("[1-4]{3}").all()
        assert (customers["recency_days"] >= 0).all()
        assert customers["recency_days"].min() == 0
        assert summary["customer_count"].sum() == 92
        assert summary["customer_count"].is_monotonic_decreasing
        assert set(summary["segment"]) == set(customers["segment"])

    def test_summary_printed_without_summary_output(self, sample_sales_csv, capsys):
        exit_code = segment_customers_cli([str(sample_sales_csv)])

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "segment" in out
        assert "customer_count" in out

    def test_malformed_date_fails_run(self, tmp_path, caplog):
        path = tmp_path / "bad.csv"
        pd.DataFrame(
            {
                "order_id": ["1", "2"],
                "customer_id": ["A", "B"],
                "amount": ["10", "20"],
                "order_date": ["01/01/2004", "2004-01-02"],
            }
        ).to_csv(path, index=False)

        exit_code = segment_customers_cli([str(path)])

        assert exit_code == 1
        assert "Unparseable order date" in caplog.text

    def test_missing_customer_fails_run(self, tmp_path, caplog):
        path = tmp_path / "missing.csv"
        path.write_text(
            "order_id,customer_id,amount,order_date\n"
            "1,A,10,01/01/2004\n"
            "2,,20,02/01/2004\n"
        )

        assert segment_customers_cli([str(path)]) == 1
        assert "customer_id" in caplog.text

    def test_custom_columns_and_date_format(self, tmp_path):
        path = tmp_path / "extract.csv"
        path.write_text(
            "ORDERNUMBER,CUSTOMERNAME,SALES,ORDERDATE\n"
            "10107,Land of Toys Inc.,2871.00,2003-02-24\n"
            "10121,Reims Collectables,3884.34,2003-05-07\n"
        )
        output = tmp_path / "customers.csv"

        exit_code = segment_customers_cli(
            [
                str(path),
                "--order-id-col",
                "ORDERNUMBER",
                "--customer-id-col",
                "CUSTOMERNAME",
                "--amount-col",
                "SALES",
                "--order-date-col",
                "ORDERDATE",
                "--date-format",
                "%Y-%m-%d",
                "--output",
                str(output),
            ]
        )

        assert exit_code == 0
        customers = pd.read_csv(output).set_index("customer_id")
        assert customers.loc["Reims Collectables", "recency_days"] == 0
        assert customers.loc["Land of Toys Inc.", "recency_days"] == 72


class TestSalesSummaryCLI:
    def test_by_product_line(self, sample_sales_csv, capsys):
        assert sales_summary_cli([str(sample_sales_csv), "--by", "product_line"]) == 0
        out = capsys.readouterr().out
        assert "product_line" in out
        assert "revenue" in out

    def test_monthly_breakdown(self, sample_sales_csv, capsys):
        assert sales_summary_cli([str(sample_sales_csv), "--year", "2004"]) == 0
        assert "month" in capsys.readouterr().out

    def test_invalid_input_fails(self, tmp_path):
        path = tmp_path / "bad.csv"
        path.write_text("order_id,customer_id,amount,order_date\n1,A,ten,01/01/2004\n")
        assert sales_summary_cli([str(path)]) == 1
