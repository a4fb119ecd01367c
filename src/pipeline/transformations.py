"""Cleaning and enrichment of retail transactions"""

from itertools import chain
from typing import Dict
import time

from pyspark.sql import DataFrame
from pyspark.sql import functions as F
from pyspark.sql.functions import col
from src.utils.logger import logger
from src.utils.config import analytics_config
from src.pipeline.schemas import RetailSchema, MONTH_NAMES, DAY_NAMES


def _label_map(labels):
    """Spark map literal 1..n -> label"""
    return F.create_map(*chain.from_iterable(
        (F.lit(i), F.lit(label)) for i, label in enumerate(labels, start=1)
    ))


class DataTransformer:
    """Normalize, filter and enrich transaction rows"""

    def __init__(self):
        self.config = analytics_config

    def standardize_columns(self, df: DataFrame) -> DataFrame:
        """Rename source headers to snake_case canonical names"""
        logger.info("Standardizing column names")

        mapping = RetailSchema.standardized_columns(df.columns)
        return df.select(*[col(f"`{old}`").alias(new) for old, new in mapping.items()])

    def _is_cancellation(self):
        return col("invoice_no").startswith(self.config.cancellation_prefix)

    def _valid_row_condition(self):
        return (
            col("invoice_no").isNotNull() &
            ~self._is_cancellation() &
            (col("quantity") > 0) &
            (col("unit_price") > 0) &
            col("customer_id").isNotNull() &
            col("invoice_date").isNotNull()
        )

    def clean_data(self, df: DataFrame) -> DataFrame:
        """Drop cancellations, non-positive quantity/price, anonymous and undated rows.

        Exclusions are filtering rules, not errors: nothing here raises
        on bad data. Surviving rows are returned untouched.
        """
        start_time = time.time()
        logger.info("Cleaning data")

        initial_count = df.count()
        cleaned = df.filter(self._valid_row_condition())
        final_count = cleaned.count()

        duration = time.time() - start_time
        retained = (final_count / initial_count) * 100 if initial_count else 0.0
        logger.info(f"Cleaned data in {duration:.1f}s: {initial_count:,} -> {final_count:,} rows "
                    f"({retained:.1f}% retained)")

        return cleaned

    def exclusion_summary(self, df: DataFrame) -> Dict[str, int]:
        """Count rows hit by each exclusion rule (a row may hit several)"""
        flag = lambda cond: F.sum(F.when(cond, 1).otherwise(0))

        row = df.agg(
            F.count(F.lit(1)).alias("total_rows"),
            flag(col("invoice_no").isNull() | self._is_cancellation()).alias("cancelled"),
            flag(col("quantity").isNull() | (col("quantity") <= 0)).alias("non_positive_quantity"),
            flag(col("unit_price").isNull() | (col("unit_price") <= 0)).alias("non_positive_price"),
            flag(col("customer_id").isNull()).alias("missing_customer_id"),
            flag(col("invoice_date").isNull()).alias("missing_invoice_date"),
            flag(self._valid_row_condition()).alias("retained"),
        ).collect()[0]

        summary = {key: int(value or 0) for key, value in row.asDict().items()}

        for reason in ["cancelled", "non_positive_quantity", "non_positive_price",
                       "missing_customer_id", "missing_invoice_date"]:
            if summary[reason]:
                logger.info(f"  - {reason}: {summary[reason]:,} rows")

        return summary

    def enrich_data(self, df: DataFrame) -> DataFrame:
        """Add line totals and calendar fields; one output row per input row"""
        logger.info("Adding derived columns")

        # Spark dayofweek is 1=Sunday..7=Saturday; shift to 1=Monday..7=Sunday
        weekday = ((F.dayofweek("invoice_date") + 5) % 7) + 1

        df = df.withColumn("line_total", col("quantity") * col("unit_price")) \
               .withColumn("invoice_date", F.to_date("invoice_date"))

        df = df.withColumn("year_month", F.date_format("invoice_date", "yyyy-MM")) \
               .withColumn("month_name", _label_map(MONTH_NAMES)[F.month("invoice_date")]) \
               .withColumn("day_of_week_index", weekday) \
               .withColumn("day_of_week_name", _label_map(DAY_NAMES)[col("day_of_week_index")])

        return df

    def transform(self, df: DataFrame) -> DataFrame:
        """Standardize, clean and enrich in one call"""
        standardized = self.standardize_columns(df)
        cleaned = self.clean_data(standardized)
        return self.enrich_data(cleaned)
