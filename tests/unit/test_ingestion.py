"""Unit tests for data ingestion module"""

import pytest
import pandas as pd
from datetime import datetime
from decimal import Decimal
from pyspark.sql import functions as F
from src.pipeline.ingestion import (
    DataIngestion, MissingColumnsError, UnsupportedFileError, coerce_types
)
from conftest import RAW_COLUMNS, SAMPLE_ROWS

class TestDataIngestion:
    """Test data ingestion functionality"""

    @pytest.fixture
    def ingestion(self):
        return DataIngestion()

    def test_find_data_files(self, ingestion, tmp_path):
        """Only supported extensions are discovered"""
        (tmp_path / "data1.csv").touch()
        (tmp_path / "data.csv.gz").touch()
        (tmp_path / "online_retail.xlsx").touch()
        (tmp_path / "not_data.txt").touch()

        files = ingestion._find_data_files(tmp_path)

        assert sorted(f.name for f in files) == ["data.csv.gz", "data1.csv", "online_retail.xlsx"]

    def test_select_main_file(self, ingestion, tmp_path):
        """Name priority first, then the largest file"""
        files = [tmp_path / "random.csv", tmp_path / "online_retail.xlsx", tmp_path / "data.csv"]
        for f in files:
            f.write_text("test")

        assert ingestion._select_main_file(files).name == "online_retail.xlsx"

        small, large = tmp_path / "a.csv", tmp_path / "b.csv"
        small.write_text("x")
        large.write_text("x" * 100)

        assert ingestion._select_main_file([small, large]).name == "b.csv"

    def test_read_csv(self, ingestion, sample_csv):
        """CSV columns are coerced to the transaction types"""
        df = ingestion.read_data(sample_csv)

        assert df.count() == len(SAMPLE_ROWS)
        assert df.columns == RAW_COLUMNS

        types = dict(df.dtypes)
        assert types["Quantity"] == "int"
        assert types["InvoiceDate"] == "timestamp"
        assert types["UnitPrice"].startswith("decimal")
        assert types["CustomerID"] == "string"

        row = df.filter(F.col("InvoiceNo") == "536365") \
            .select("Quantity", "UnitPrice",
                    F.date_format("InvoiceDate", "yyyy-MM-dd HH:mm").alias("ts")) \
            .collect()[0]
        assert row["Quantity"] == 6
        assert row["UnitPrice"] == Decimal("2.55")
        assert row["ts"] == "2010-12-01 08:26"

    def test_read_directory(self, ingestion, sample_csv):
        """A directory resolves to its main data file"""
        (sample_csv.parent / "notes.txt").write_text("ignore me")

        df = ingestion.read_data(sample_csv.parent)

        assert df.count() == len(SAMPLE_ROWS)

    def test_empty_customer_id_is_null(self, ingestion, sample_csv):
        df = ingestion.read_data(sample_csv)

        assert df.filter(F.col("CustomerID").isNull()).count() == 2

    def test_read_excel(self, ingestion, tmp_path):
        """Workbooks store ids as floats and dates as datetimes"""
        path = tmp_path / "online_retail.xlsx"
        pd.DataFrame({
            "InvoiceNo": [536365, "C536379"],
            "StockCode": ["85123A", 22633],
            "Description": ["WHITE HANGING HEART T-LIGHT HOLDER", "HAND WARMER UNION JACK"],
            "Quantity": [6, -1],
            "InvoiceDate": [datetime(2010, 12, 1, 8, 26), datetime(2010, 12, 1, 9, 41)],
            "UnitPrice": [2.55, 1.85],
            "CustomerID": [17850.0, None],
            "Country": ["United Kingdom", "United Kingdom"],
        }).to_excel(path, index=False, engine="openpyxl")

        df = ingestion.read_data(path)
        rows = df.select(
            "InvoiceNo", "StockCode", "Quantity", "UnitPrice", "CustomerID",
            F.date_format("InvoiceDate", "yyyy-MM-dd HH:mm").alias("ts")
        ).orderBy("InvoiceNo").collect()

        assert rows[0]["InvoiceNo"] == "536365"
        assert rows[0]["CustomerID"] == "17850"
        assert rows[0]["UnitPrice"] == Decimal("2.55")
        assert rows[0]["ts"] == "2010-12-01 08:26"
        assert rows[1]["InvoiceNo"] == "C536379"
        assert rows[1]["StockCode"] == "22633"
        assert rows[1]["Quantity"] == -1
        assert rows[1]["CustomerID"] is None

    def test_missing_columns(self, ingestion, tmp_path):
        """Files without a required column are rejected"""
        path = tmp_path / "online_retail.csv"
        pd.DataFrame([("536365", "85123A", "6")],
                     columns=["InvoiceNo", "StockCode", "Quantity"]).to_csv(path, index=False)

        with pytest.raises(MissingColumnsError) as exc_info:
            ingestion.read_data(path)

        assert "unit_price" in str(exc_info.value)
        assert "customer_id" in str(exc_info.value)

    def test_missing_file(self, ingestion, tmp_path):
        with pytest.raises(FileNotFoundError):
            ingestion.read_data(tmp_path / "nope.csv")

    def test_empty_directory(self, ingestion, tmp_path):
        with pytest.raises(FileNotFoundError):
            ingestion.read_data(tmp_path)

    def test_unsupported_file(self, ingestion, tmp_path):
        path = tmp_path / "online_retail.json"
        path.write_text("{}")

        with pytest.raises(UnsupportedFileError):
            ingestion.read_data(path)

    def test_missing_columns_by_canonical_name(self, ingestion, raw_data):
        """Source or canonical headers both satisfy the required set"""
        from src.pipeline.transformations import DataTransformer

        assert ingestion.missing_columns(raw_data) == []
        assert ingestion.missing_columns(DataTransformer().standardize_columns(raw_data)) == []
        assert ingestion.missing_columns(raw_data.drop("Country")) == ["country"]


class TestCoerceTypes:
    """Test type coercion of raw string columns"""

    def test_malformed_values_become_null(self, spark):
        df = spark.createDataFrame(
            [("abc", "not a date", "n/a", " 12346.0 ")],
            ["Quantity", "InvoiceDate", "UnitPrice", "Customer ID"]
        )

        row = coerce_types(df).collect()[0]

        assert row["Quantity"] is None
        assert row["InvoiceDate"] is None
        assert row["UnitPrice"] is None
        assert row["Customer ID"] == "12346"

    def test_iso_timestamps(self, spark):
        df = spark.createDataFrame([("2010-12-01 08:26:00",)], ["InvoiceDate"])

        row = coerce_types(df).select(
            F.date_format("InvoiceDate", "yyyy-MM-dd HH:mm").alias("ts")
        ).collect()[0]

        assert row["ts"] == "2010-12-01 08:26"

    def test_quantity_must_be_whole(self, spark):
        """Whole-number floats are accepted, fractional quantities become null"""
        df = spark.createDataFrame([("6.0",), ("2.7",), ("-1",)], ["Quantity"])

        values = [r["Quantity"] for r in coerce_types(df).collect()]

        assert values == [6, None, -1]
