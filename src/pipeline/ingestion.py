"""Data ingestion module for retail transaction files"""

from pathlib import Path
from typing import Optional, List
import time

import pandas as pd
from pyspark.sql import DataFrame
from pyspark.sql import functions as F
from pyspark.sql.types import StructType, StructField, StringType, TimestampType, DateType
from src.utils.spark_manager import SparkManager
from src.utils.logger import logger
from src.utils.config import settings
from src.pipeline.schemas import RetailSchema, PRICE_TYPE

TIMESTAMP_FORMATS = [
    "M/d/yyyy H:mm",
    "yyyy-MM-dd HH:mm:ss",
    "yyyy-MM-dd HH:mm",
    "yyyy-MM-dd",
]

SUPPORTED_PATTERNS = ["*.xlsx", "*.csv", "*.csv.gz"]


class MissingColumnsError(Exception):
    """Raised when a source file lacks one of the required transaction columns."""


class UnsupportedFileError(Exception):
    """Raised when the input file has an extension the loader cannot read."""


def coerce_types(df: DataFrame) -> DataFrame:
    """Cast source columns to the transaction types, keeping source names.

    Columns are recognised by their normalized name so that both
    ``CustomerID`` and ``Customer ID`` end up as nullable strings.
    """
    schema_types = {field.name: field.dataType for field in df.schema.fields}
    columns = []

    for name in df.columns:
        canonical = RetailSchema.standardized_name(name)
        c = F.col(f"`{name}`")

        if canonical == "quantity":
            # Workbooks may hand over "6.0"; fractional quantities become null
            number = c.cast("double")
            expr = F.when(number == F.floor(number), number.cast("int"))
        elif canonical == "unit_price":
            expr = c.cast(PRICE_TYPE)
        elif canonical == "invoice_date":
            if isinstance(schema_types[name], TimestampType):
                expr = c
            elif isinstance(schema_types[name], DateType):
                expr = c.cast("timestamp")
            else:
                expr = F.coalesce(*[F.to_timestamp(c.cast("string"), fmt)
                                    for fmt in TIMESTAMP_FORMATS])
        elif canonical == "customer_id":
            # Spreadsheets store ids as floats: 17850.0 -> "17850"
            trimmed = F.regexp_replace(F.trim(c.cast("string")), r"\.0+$", "")
            expr = F.when(trimmed == "", None).otherwise(trimmed)
        else:
            expr = c.cast("string")

        columns.append(expr.alias(name))

    return df.select(*columns)


class DataIngestion:
    """Handle loading of transaction files into Spark"""

    def __init__(self):
        self.spark = SparkManager.get_session()
        self.schema = RetailSchema()

    def read_data(self, filepath: Optional[Path] = None) -> DataFrame:
        """Read a transaction file (or the main file of a directory)"""
        start_time = time.time()

        if filepath is None:
            filepath = settings.data_path_raw

        filepath = Path(filepath)

        if filepath.is_dir():
            candidates = self._find_data_files(filepath)
            if not candidates:
                raise FileNotFoundError(f"No data files found in {filepath}")
            main_file = self._select_main_file(candidates)
        elif filepath.exists():
            main_file = filepath
        else:
            raise FileNotFoundError(f"Input file not found: {filepath}")

        logger.info(f"Reading main file: {main_file.name}")

        df = self._read_file(main_file)
        df = coerce_types(df)

        missing = self.missing_columns(df)
        if missing:
            raise MissingColumnsError(
                f"{main_file.name} is missing required columns: {', '.join(missing)}"
            )

        self._log_statistics(df, start_time)
        return df

    def _find_data_files(self, directory: Path) -> List[Path]:
        """Find all readable data files in directory"""
        files = []
        for pattern in SUPPORTED_PATTERNS:
            files.extend(directory.glob(pattern))

        # Spark writes CSV output as a directory named *.csv
        files = sorted(set(files))

        logger.info(f"Found {len(files)} data files:")
        for file in files:
            size_mb = self._size_of(file) / (1024 * 1024)
            logger.info(f"  - {file.name} ({size_mb:.1f} MB)")

        return files

    def _select_main_file(self, files: List[Path]) -> Path:
        """Select the main data file by name, falling back to the largest"""
        priority_patterns = [
            "online_retail",
            "online retail",
            "retail",
            "ecommerce_data",
            "data.csv",
            "transactions",
            "sales"
        ]

        for pattern in priority_patterns:
            for file in files:
                if pattern in file.name.lower():
                    return file

        return max(files, key=self._size_of)

    @staticmethod
    def _size_of(path: Path) -> int:
        if path.is_dir():
            return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())
        return path.stat().st_size

    def _read_file(self, filepath: Path) -> DataFrame:
        """Dispatch on file extension"""
        name = filepath.name.lower()

        if name.endswith(".xlsx"):
            return self._read_excel(filepath)
        if name.endswith(".csv") or name.endswith(".csv.gz"):
            return self._read_csv(filepath)

        raise UnsupportedFileError(f"Unsupported file type: {filepath.name}")

    def _read_csv(self, filepath: Path) -> DataFrame:
        """Read CSV with every column as string"""
        read_options = {
            "header": "true",
            "inferSchema": "false",
            "mode": "PERMISSIVE",
            "multiLine": "false",
            "encoding": "UTF-8",
            "quote": '"',
            "escape": '"',
            "nullValue": "",
        }

        reader = self.spark.read
        for key, value in read_options.items():
            reader = reader.option(key, value)

        return reader.csv(str(filepath))

    def _read_excel(self, filepath: Path) -> DataFrame:
        """Read the first sheet of a workbook through pandas"""
        pdf = pd.read_excel(filepath, sheet_name=0, engine="openpyxl")

        # Mixed int/str object columns (InvoiceNo, StockCode) cannot be
        # inferred by Spark, hand everything over as strings
        pdf = pdf.astype(object).where(pdf.notna(), None)
        for column in pdf.columns:
            pdf[column] = pdf[column].map(lambda v: v if v is None else str(v))

        schema = StructType([StructField(str(c), StringType(), True) for c in pdf.columns])
        pdf.columns = [str(c) for c in pdf.columns]

        if pdf.empty:
            return self.spark.createDataFrame([], schema)
        return self.spark.createDataFrame(pdf, schema=schema)

    def missing_columns(self, df: DataFrame) -> List[str]:
        """Required columns absent from ``df`` (by canonical name)"""
        present = set(RetailSchema.standardized_columns(df.columns).values())
        return [c for c in RetailSchema.REQUIRED_COLUMNS if c not in present]

    def _log_statistics(self, df: DataFrame, start_time: float):
        """Log load statistics"""
        row_count = df.count()
        duration = time.time() - start_time

        logger.info(f"Data ingestion completed in {duration:.1f}s")
        logger.info(f"Loaded {row_count:,} rows with {len(df.columns)} columns")

        if settings.debug:
            logger.debug("Sample data:")
            df.show(5, truncate=False)
