"""Configuration management module"""

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import field_validator
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

class Settings(BaseSettings):
    """Application settings"""

    # Environment
    env: str = os.getenv("ENV", "development")
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Paths
    project_root: Path = Path(__file__).parent.parent.parent
    data_path_raw: Path = project_root / "data" / "raw"
    data_path_processed: Path = project_root / "data" / "processed"
    reports_path: Path = project_root / "reports"

    # Spark
    spark_app_name: str = "OnlineRetailReport"
    spark_master: str = os.getenv("SPARK_MASTER", "local[*]")
    spark_driver_memory: str = os.getenv("SPARK_DRIVER_MEMORY", "4g")
    spark_executor_memory: str = os.getenv("SPARK_EXECUTOR_MEMORY", "4g")
    spark_max_result_size: str = os.getenv("SPARK_MAX_RESULT_SIZE", "2g")
    spark_log_level: str = os.getenv("SPARK_LOG_LEVEL", "WARN")

    # Reporting
    enable_charts: bool = os.getenv("ENABLE_CHARTS", "true").lower() == "true"
    chart_dpi: int = int(os.getenv("CHART_DPI", "150"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is uppercase and valid"""
        v = v.upper()
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            return "INFO"
        return v

    class Config:
        case_sensitive = False


class AnalyticsConfig(BaseSettings):
    """Business rules for cleaning and aggregating retail transactions"""

    # Invoices whose number starts with this marker are cancellations
    cancellation_prefix: str = "C"

    # Size of the ranked summaries (products, countries, customers)
    top_n: int = 10

    currency: str = "GBP"

    # Quality thresholds
    min_rows_threshold: int = 1
    max_duplicate_rate: float = 0.05
    max_country_concentration: float = 0.95

    cache_enabled: bool = True

    @field_validator("top_n")
    @classmethod
    def validate_top_n(cls, v: int) -> int:
        if v < 1:
            raise ValueError("top_n must be a positive integer")
        return v

    @field_validator("cancellation_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        if not v:
            raise ValueError("cancellation_prefix must not be empty")
        return v

    class Config:
        env_prefix = "ANALYTICS_"
        case_sensitive = False

# Create global settings instances
settings = Settings()
analytics_config = AnalyticsConfig()
