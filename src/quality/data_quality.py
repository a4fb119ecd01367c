"""Data quality checks on enriched transactions"""

from pathlib import Path
from typing import Dict, List, Tuple, Optional, Any
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
import json

from pyspark.sql import DataFrame
from pyspark.sql import functions as F
from src.utils.logger import logger
from src.utils.config import analytics_config


class DataInvariantError(Exception):
    """Raised when rows that should have been cleaned reach the aggregates."""


@dataclass
class QualityCheckResult:
    """Result of a quality check"""
    name: str
    status: str  # 'passed', 'failed', 'warning'
    details: Optional[str] = None
    message: Optional[str] = None
    severity: str = 'error'  # 'error', 'warning', 'info'
    metrics: Dict[str, Any] = field(default_factory=dict)


class DataQualityChecker:
    """Verify the clean-row invariants and profile the cleaned dataset"""

    def __init__(self):
        self.checks_passed: List[QualityCheckResult] = []
        self.checks_failed: List[QualityCheckResult] = []
        self.checks_warning: List[QualityCheckResult] = []
        self.config = analytics_config

    def run_all_checks(self, df: DataFrame) -> Tuple[bool, Dict]:
        """Run all checks; the flag is False when any critical check failed"""
        logger.info("Starting data quality checks")

        self.checks_passed = []
        self.checks_failed = []
        self.checks_warning = []

        check_groups = [
            ("Clean Invariants", [
                lambda: self._check_schema_compliance(df),
                lambda: self._check_positive_values(df),
                lambda: self._check_customer_ids(df),
                lambda: self._check_invoice_dates(df),
                lambda: self._check_cancellations(df),
                lambda: self._check_line_totals(df),
            ]),
            ("Profile", [
                lambda: self._check_row_count(df),
                lambda: self._check_duplicates(df),
                lambda: self._check_date_range(df),
                lambda: self._check_country_distribution(df),
            ]),
        ]

        for group_name, checks in check_groups:
            logger.info(f"Running {group_name}")
            for check in checks:
                check()

        total_checks = len(self.checks_passed) + len(self.checks_failed) + len(self.checks_warning)
        quality_score = (len(self.checks_passed) / total_checks * 100) if total_checks > 0 else 100.0
        has_critical_errors = any(c.severity == 'error' for c in self.checks_failed)

        results = {
            "total_checks": total_checks,
            "passed": len(self.checks_passed),
            "failed": len(self.checks_failed),
            "warnings": len(self.checks_warning),
            "quality_score": quality_score,
            "passed_checks": [self._serialize_check(c) for c in self.checks_passed],
            "failed_checks": [self._serialize_check(c) for c in self.checks_failed],
            "warning_checks": [self._serialize_check(c) for c in self.checks_warning],
            "timestamp": datetime.now().isoformat(),
            "has_critical_errors": has_critical_errors
        }

        self._log_quality_summary(results)

        return not has_critical_errors, results

    def assert_clean_invariants(self, df: DataFrame) -> Dict:
        """Run all checks and raise if a clean-row invariant is violated"""
        passed, results = self.run_all_checks(df)
        if not passed:
            failures = "; ".join(f"{c['name']}: {c['message']}" for c in results["failed_checks"])
            raise DataInvariantError(f"Cleaned data violates invariants: {failures}")
        return results

    def _serialize_check(self, check: QualityCheckResult) -> Dict:
        """Serialize check result for storage"""
        return asdict(check)

    def _log_quality_summary(self, results: Dict):
        quality_score = results['quality_score']

        if results['has_critical_errors']:
            logger.error(f"Data quality FAILED: Score {quality_score:.1f}%")
            for check in self.checks_failed[:5]:
                logger.error(f"  {check.name}: {check.message}")
        elif results['warnings'] > 0:
            logger.warning(f"Data quality PASSED with warnings: Score {quality_score:.1f}%")
            for check in self.checks_warning[:5]:
                logger.warning(f"  {check.name}: {check.message}")
        else:
            logger.success(f"Data quality EXCELLENT: Score {quality_score:.1f}%")

    def _check_schema_compliance(self, df: DataFrame):
        """Check the enriched columns are present"""
        expected_columns = {
            "invoice_no", "stock_code", "description", "quantity", "invoice_date",
            "unit_price", "customer_id", "country", "line_total", "year_month",
            "month_name", "day_of_week_name"
        }

        missing_columns = expected_columns - set(df.columns)

        if missing_columns:
            self._add_failed(
                QualityCheckResult(
                    name="Schema Compliance",
                    status="failed",
                    message=f"Missing required columns: {sorted(missing_columns)}",
                    severity="error"
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Schema Compliance",
                    status="passed",
                    details="All required columns present"
                )
            )

    def _check_positive_values(self, df: DataFrame):
        """Quantity and unit price must be strictly positive"""
        if not {"quantity", "unit_price"}.issubset(df.columns):
            return

        invalid = df.filter(
            F.col("quantity").isNull() | (F.col("quantity") <= 0) |
            F.col("unit_price").isNull() | (F.col("unit_price") <= 0)
        ).count()

        if invalid > 0:
            self._add_failed(
                QualityCheckResult(
                    name="Positive Values Check",
                    status="failed",
                    message=f"{invalid:,} rows with non-positive quantity or price",
                    severity="error",
                    metrics={"invalid_rows": invalid}
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Positive Values Check",
                    status="passed",
                    details="All quantities and prices are positive"
                )
            )

    def _check_customer_ids(self, df: DataFrame):
        """Every row must carry a customer id"""
        if "customer_id" not in df.columns:
            return

        null_count = df.filter(F.col("customer_id").isNull()).count()

        if null_count > 0:
            self._add_failed(
                QualityCheckResult(
                    name="Null Check: customer_id",
                    status="failed",
                    message=f"{null_count:,} rows without customer_id",
                    severity="error",
                    metrics={"null_count": null_count}
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Null Check: customer_id",
                    status="passed",
                    details="No nulls in customer_id"
                )
            )

    def _check_invoice_dates(self, df: DataFrame):
        """Every row must carry a parsable invoice date"""
        if "invoice_date" not in df.columns:
            return

        null_count = df.filter(F.col("invoice_date").isNull()).count()

        if null_count > 0:
            self._add_failed(
                QualityCheckResult(
                    name="Null Check: invoice_date",
                    status="failed",
                    message=f"{null_count:,} rows without a valid invoice_date",
                    severity="error",
                    metrics={"null_count": null_count}
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Null Check: invoice_date",
                    status="passed",
                    details="No nulls in invoice_date"
                )
            )

    def _check_cancellations(self, df: DataFrame):
        """No cancellation invoices may survive cleaning"""
        if "invoice_no" not in df.columns:
            return

        prefix = self.config.cancellation_prefix
        cancelled = df.filter(
            F.col("invoice_no").isNull() | F.col("invoice_no").startswith(prefix)
        ).count()

        if cancelled > 0:
            self._add_failed(
                QualityCheckResult(
                    name="Cancellation Check",
                    status="failed",
                    message=f"{cancelled:,} cancelled or unnumbered invoices",
                    severity="error",
                    metrics={"cancelled_rows": cancelled}
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Cancellation Check",
                    status="passed",
                    details="No cancellation invoices"
                )
            )

    def _check_line_totals(self, df: DataFrame):
        """line_total = quantity * unit_price, exactly"""
        if not {"quantity", "unit_price", "line_total"}.issubset(df.columns):
            return

        mismatch = df.filter(
            F.col("line_total") != F.col("quantity") * F.col("unit_price")
        ).count()

        if mismatch > 0:
            self._add_failed(
                QualityCheckResult(
                    name="Line Total Check",
                    status="failed",
                    message=f"{mismatch:,} line total calculation errors",
                    severity="error",
                    metrics={"mismatched_rows": mismatch}
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Line Total Check",
                    status="passed",
                    details="Line totals match quantity * unit price"
                )
            )

    def _check_row_count(self, df: DataFrame, min_rows: Optional[int] = None):
        """Warn when cleaning left fewer rows than expected"""
        if min_rows is None:
            min_rows = self.config.min_rows_threshold

        row_count = df.count()
        logger.info(f"Checking row count: {row_count:,} (expected at least {min_rows:,})")

        if row_count < min_rows:
            # An empty report is still a valid report
            self._add_warning(
                QualityCheckResult(
                    name="Row Count Check",
                    status="warning",
                    message=f"Only {row_count:,} rows found (expected at least {min_rows:,})",
                    severity="warning",
                    metrics={"row_count": row_count, "min_expected": min_rows}
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Row Count Check",
                    status="passed",
                    details=f"Found {row_count:,} rows",
                    metrics={"row_count": row_count}
                )
            )

    def _check_duplicates(self, df: DataFrame):
        """Profile exact duplicate line items"""
        total_count = df.count()
        duplicates = total_count - df.distinct().count()
        dup_rate = duplicates / total_count if total_count > 0 else 0

        metrics = {"total_records": total_count, "duplicates": duplicates, "dup_rate": dup_rate}

        if dup_rate > self.config.max_duplicate_rate:
            self._add_warning(
                QualityCheckResult(
                    name="Duplicate Check",
                    status="warning",
                    message=f"High duplicate rate: {dup_rate:.1%} (threshold: {self.config.max_duplicate_rate:.1%})",
                    severity="warning",
                    metrics=metrics
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Duplicate Check",
                    status="passed",
                    details=f"{duplicates:,} duplicate rows ({dup_rate:.1%})",
                    metrics=metrics
                )
            )

    def _check_date_range(self, df: DataFrame):
        """Report the covered period and flag future dates"""
        if "invoice_date" not in df.columns:
            return

        stats = df.select(
            F.min("invoice_date").alias("min_date"),
            F.max("invoice_date").alias("max_date"),
            F.countDistinct("invoice_date").alias("unique_dates")
        ).collect()[0]

        min_date, max_date = stats["min_date"], stats["max_date"]
        metrics = {
            "date_range": f"{min_date} to {max_date}",
            "unique_dates": stats["unique_dates"]
        }

        if max_date is not None and _as_date(max_date) > date.today():
            self._add_warning(
                QualityCheckResult(
                    name="Date Range Check",
                    status="warning",
                    message=f"Records dated in the future (latest: {max_date})",
                    severity="warning",
                    metrics=metrics
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Date Range Check",
                    status="passed",
                    details=f"Date range: {min_date} to {max_date}",
                    metrics=metrics
                )
            )

    def _check_country_distribution(self, df: DataFrame):
        """Warn when one country dominates the dataset"""
        if "country" not in df.columns:
            return

        total_count = df.count()
        top = df.groupBy("country").count() \
            .orderBy(F.desc("count"), F.asc("country")) \
            .limit(1).collect()

        if not top or total_count == 0:
            self._add_passed(
                QualityCheckResult(
                    name="Country Distribution Check",
                    status="passed",
                    details="No rows to profile"
                )
            )
            return

        concentration = top[0]["count"] / total_count
        metrics = {"top_country": top[0]["country"], "concentration": concentration}

        if concentration > self.config.max_country_concentration:
            self._add_warning(
                QualityCheckResult(
                    name="Country Distribution Check",
                    status="warning",
                    message=f"Data highly concentrated: {concentration:.1%} from {top[0]['country']}",
                    severity="warning",
                    metrics=metrics
                )
            )
        else:
            self._add_passed(
                QualityCheckResult(
                    name="Country Distribution Check",
                    status="passed",
                    details=f"Largest country share: {concentration:.1%} ({top[0]['country']})",
                    metrics=metrics
                )
            )

    def _add_passed(self, result: QualityCheckResult):
        self.checks_passed.append(result)

    def _add_failed(self, result: QualityCheckResult):
        self.checks_failed.append(result)

    def _add_warning(self, result: QualityCheckResult):
        self.checks_warning.append(result)

    def generate_quality_report(self, results: Dict, output_path: Optional[Path] = None) -> str:
        """Plain-text quality report, optionally written with a JSON twin"""
        report = []
        report.append("=" * 60)
        report.append("DATA QUALITY REPORT")
        report.append("=" * 60)
        report.append(f"Generated: {results['timestamp']}")
        report.append(f"Quality Score: {results['quality_score']:.1f}%")
        report.append("")
        report.append(f"Total Checks: {results['total_checks']}")
        report.append(f"Passed: {results['passed']}")
        report.append(f"Failed: {results['failed']}")
        report.append(f"Warnings: {results['warnings']}")
        report.append("")

        if results['failed_checks']:
            report.append("FAILED CHECKS")
            report.append("-" * 30)
            for check in results['failed_checks']:
                report.append(f"- {check['name']}: {check['message']}")
            report.append("")

        if results['warning_checks']:
            report.append("WARNINGS")
            report.append("-" * 30)
            for check in results['warning_checks']:
                report.append(f"- {check['name']}: {check['message']}")
            report.append("")

        report_text = "\n".join(report)

        if output_path:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(report_text)

            with open(output_path.with_suffix('.json'), 'w') as f:
                json.dump(results, f, indent=2, default=str)

        return report_text


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value
