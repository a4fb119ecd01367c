"""Test configuration and fixtures"""

import pytest
from pyspark.sql import SparkSession
from pyspark.sql.types import StructType, StructField, StringType
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

RAW_COLUMNS = [
    "InvoiceNo", "StockCode", "Description", "Quantity",
    "InvoiceDate", "UnitPrice", "CustomerID", "Country"
]

# Ten source rows: six survive cleaning.
# Clean revenue 233.98 over 6 invoices and 3 customers.
SAMPLE_ROWS = [
    ("536365", "85123A", "WHITE HANGING HEART T-LIGHT HOLDER", "6", "12/1/2010 8:26", "2.55", "17850", "United Kingdom"),
    ("C536379", "D", "Discount", "-1", "12/1/2010 9:41", "27.50", "14527", "United Kingdom"),
    ("536366", "22633", "HAND WARMER UNION JACK", "6", "12/1/2010 8:28", "1.85", "17850", "United Kingdom"),
    ("536367", "84879", "ASSORTED COLOUR BIRD ORNAMENT", "32", "12/1/2010 8:34", "1.69", "13047", "United Kingdom"),
    ("536370", "22728", "ALARM CLOCK BAKELIKE PINK", "24", "12/1/2010 8:45", "3.75", "12583", "France"),
    ("536414", "22139", None, "56", "12/1/2010 11:52", "0", "", "United Kingdom"),
    ("536544", "21773", "DECORATIVE ROSE BATHROOM BOTTLE", "1", "12/1/2010 14:32", "2.51", None, "United Kingdom"),
    ("540001", "22728", "ALARM CLOCK BAKELIKE PINK", "12", "1/4/2011 10:00", "3.75", "12583", "France"),
    ("540002", "85123A", "WHITE HANGING HEART T-LIGHT HOLDER", "-2", "1/5/2011 11:00", "2.55", "17850", "United Kingdom"),
    ("540003", "22633", "HAND WARMER UNION JACK", "10", "1/9/2011 12:00", "1.85", "17850", "United Kingdom"),
]

# Create a single Spark session for all tests
_spark = None

def get_spark():
    """Get or create Spark session"""
    global _spark
    if _spark is None:
        _spark = SparkSession.builder \
            .appName("test") \
            .master("local[2]") \
            .config("spark.sql.shuffle.partitions", "2") \
            .config("spark.driver.memory", "2g") \
            .config("spark.sql.adaptive.enabled", "false") \
            .config("spark.ui.enabled", "false") \
            .config("spark.sql.session.timeZone", "UTC") \
            .config("spark.sql.legacy.timeParserPolicy", "CORRECTED") \
            .config("spark.sql.ansi.enabled", "false") \
            .getOrCreate()
    return _spark

@pytest.fixture(scope="session")
def spark():
    """Create Spark session for tests"""
    yield get_spark()

@pytest.fixture(autouse=True)
def shared_session(spark):
    """Components asking SparkManager for a session get the test session"""
    from src.utils.spark_manager import SparkManager
    SparkManager._instance = spark
    yield spark
    SparkManager._instance = None

@pytest.fixture
def make_raw_df(spark):
    """Build a typed raw frame from string tuples, the way a CSV file loads"""
    from src.pipeline.ingestion import coerce_types

    schema = StructType([StructField(c, StringType(), True) for c in RAW_COLUMNS])

    def _make(rows):
        return coerce_types(spark.createDataFrame(list(rows), schema))

    return _make

@pytest.fixture
def raw_data(make_raw_df):
    """Sample transactions including cancelled and invalid rows"""
    return make_raw_df(SAMPLE_ROWS)

@pytest.fixture
def enriched_data(raw_data):
    """Sample transactions after standardize, clean and enrich"""
    from src.pipeline.transformations import DataTransformer
    return DataTransformer().transform(raw_data)

@pytest.fixture
def sample_csv(tmp_path):
    """Sample transactions written as a CSV file"""
    import pandas as pd

    path = tmp_path / "raw" / "online_retail.csv"
    path.parent.mkdir(parents=True)
    pd.DataFrame(SAMPLE_ROWS, columns=RAW_COLUMNS).to_csv(path, index=False)
    return path

# Set up pytest to use our spark session
def pytest_configure(config):
    """Configure pytest with spark session"""
    get_spark()

def pytest_unconfigure(config):
    """Clean up spark session"""
    global _spark
    if _spark:
        _spark.stop()
        _spark = None
