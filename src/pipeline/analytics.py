"""Summary aggregates over enriched transactions"""

from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Dict, Any, Optional
import time

import pandas as pd
from pyspark.sql import DataFrame
from pyspark.sql import functions as F
from src.utils.logger import logger
from src.utils.config import analytics_config


@dataclass(frozen=True)
class TotalsSummary:
    """Headline figures for the whole dataset"""
    total_revenue: Decimal
    total_orders: int
    total_customers: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AnalyticsResults:
    """Every summary table produced by one pipeline run"""
    totals: TotalsSummary
    top_products: DataFrame
    monthly_sales: DataFrame
    top_countries: DataFrame
    rfm: DataFrame
    top_customers: DataFrame
    sales_by_day_of_week: DataFrame

    def tables(self) -> Dict[str, DataFrame]:
        """Tabular summaries keyed by output name"""
        return {
            "top_products": self.top_products,
            "monthly_sales": self.monthly_sales,
            "top_countries": self.top_countries,
            "rfm": self.rfm,
            "top_customers": self.top_customers,
            "sales_by_day_of_week": self.sales_by_day_of_week,
        }

    def collect(self) -> Dict[str, pd.DataFrame]:
        """Materialize every table on the driver; money columns stay Decimal"""
        return {name: df.toPandas() for name, df in self.tables().items()}


def _revenue_sum(column: str = "line_total"):
    # sum() over zero rows is null, report zero instead
    return F.coalesce(F.sum(column), F.lit(0).cast("decimal(38,4)"))


class AnalyticsEngine:
    """Calculate the report aggregates"""

    def __init__(self, top_n: Optional[int] = None):
        self.config = analytics_config
        self.top_n = self.config.top_n if top_n is None else top_n
        if self.top_n < 1:
            raise ValueError(f"top_n must be a positive integer, got {self.top_n}")

    def calculate_totals(self, df: DataFrame) -> TotalsSummary:
        """Total revenue, distinct orders and distinct customers"""
        logger.info("Calculating totals")

        row = df.agg(
            _revenue_sum().alias("total_revenue"),
            F.countDistinct("invoice_no").alias("total_orders"),
            F.countDistinct("customer_id").alias("total_customers")
        ).collect()[0]

        return TotalsSummary(
            total_revenue=Decimal(row["total_revenue"] or 0),
            total_orders=int(row["total_orders"] or 0),
            total_customers=int(row["total_customers"] or 0)
        )

    def calculate_top_products(self, df: DataFrame) -> DataFrame:
        """Top products by revenue, ties broken by stock code"""
        start_time = time.time()
        logger.info("Calculating top products")

        top_products = df.groupBy("stock_code", "description") \
            .agg(
                F.sum("line_total").alias("total_revenue"),
                F.sum("quantity").alias("total_quantity")
            ) \
            .orderBy(F.desc("total_revenue"), F.asc("stock_code"), F.asc_nulls_first("description")) \
            .limit(self.top_n)

        logger.info(f"Top products calculated in {time.time() - start_time:.1f}s")
        return top_products

    def calculate_monthly_trend(self, df: DataFrame) -> DataFrame:
        """Revenue per calendar month, oldest first, every month kept"""
        logger.info("Calculating monthly sales trend")

        return df.groupBy("year_month", "month_name") \
            .agg(F.sum("line_total").alias("total_revenue")) \
            .orderBy(F.asc("year_month"))

    def calculate_top_countries(self, df: DataFrame) -> DataFrame:
        """Top countries by revenue, ties broken by country name"""
        logger.info("Calculating top countries")

        return df.groupBy("country") \
            .agg(F.sum("line_total").alias("total_revenue")) \
            .orderBy(F.desc("total_revenue"), F.asc("country")) \
            .limit(self.top_n)

    def calculate_rfm(self, df: DataFrame) -> DataFrame:
        """Recency/frequency/monetary for every customer.

        ``recency_days`` is the span between a customer's first and last
        purchase date, not the time since the last purchase. The full table
        is returned; use :meth:`top_customers` for the ranked view.
        """
        start_time = time.time()
        logger.info("Calculating RFM metrics")

        rfm = df.groupBy("customer_id") \
            .agg(
                F.datediff(F.max("invoice_date"), F.min("invoice_date")).alias("recency_days"),
                F.countDistinct("invoice_no").alias("frequency"),
                F.sum("line_total").alias("monetary")
            ) \
            .orderBy(F.desc("monetary"), F.asc("customer_id"))

        logger.info(f"RFM metrics calculated in {time.time() - start_time:.1f}s")
        return rfm

    def top_customers(self, rfm: DataFrame) -> DataFrame:
        """Ranked head of the RFM table"""
        return rfm.orderBy(F.desc("monetary"), F.asc("customer_id")).limit(self.top_n)

    def calculate_sales_by_day_of_week(self, df: DataFrame) -> DataFrame:
        """Revenue per weekday, Monday first"""
        logger.info("Calculating sales by day of week")

        return df.groupBy("day_of_week_index", "day_of_week_name") \
            .agg(F.sum("line_total").alias("total_revenue")) \
            .orderBy(F.asc("day_of_week_index"))

    def run_all(self, df: DataFrame) -> AnalyticsResults:
        """Compute every summary over the same enriched frame"""
        rfm = self.calculate_rfm(df)

        results = AnalyticsResults(
            totals=self.calculate_totals(df),
            top_products=self.calculate_top_products(df),
            monthly_sales=self.calculate_monthly_trend(df),
            top_countries=self.calculate_top_countries(df),
            rfm=rfm,
            top_customers=self.top_customers(rfm),
            sales_by_day_of_week=self.calculate_sales_by_day_of_week(df)
        )

        for name, table in results.tables().items():
            logger.info(f"Calculated {name}: {table.count():,} records")

        return results


def format_totals(totals: TotalsSummary, currency: Optional[str] = None) -> str:
    """Three-line textual summary with thousands separators"""
    currency = currency or analytics_config.currency
    revenue = totals.total_revenue.quantize(Decimal("0.01"))
    return "\n".join([
        f"Total Revenue: {revenue:,} {currency}",
        f"Total Orders: {totals.total_orders:,}",
        f"Unique Customers: {totals.total_customers:,}",
    ])
