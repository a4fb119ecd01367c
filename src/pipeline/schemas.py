"""Data schemas for the online retail dataset"""

import re
from pyspark.sql.types import DecimalType

# Unit prices carry at most 3 decimals in the source workbook
PRICE_TYPE = DecimalType(12, 4)

# Fixed English labels, independent of the JVM or OS locale
MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def to_snake_case(name: str) -> str:
    """Normalize a column header to snake_case.

    ``InvoiceNo`` -> ``invoice_no``, ``CustomerID`` -> ``customer_id``,
    ``Customer ID`` -> ``customer_id``.
    """
    s = re.sub(r"[^0-9a-zA-Z]+", "_", name.strip())
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", s)
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    s = re.sub(r"_+", "_", s)
    return s.strip("_").lower()


class RetailSchema:
    """Schema definitions for retail transaction data"""

    REQUIRED_COLUMNS = [
        "invoice_no", "stock_code", "description", "quantity",
        "invoice_date", "unit_price", "customer_id", "country"
    ]

    # Header variants seen in the "Online Retail II" release
    COLUMN_ALIASES = {
        "invoice": "invoice_no",
        "price": "unit_price",
        "customer": "customer_id",
    }

    @staticmethod
    def standardized_name(column: str) -> str:
        """Canonical snake_case name for a source column"""
        name = to_snake_case(column)
        return RetailSchema.COLUMN_ALIASES.get(name, name)

    @staticmethod
    def standardized_columns(columns):
        """Mapping of source column name -> canonical name"""
        return {c: RetailSchema.standardized_name(c) for c in columns}
