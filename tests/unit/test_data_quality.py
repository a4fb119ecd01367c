"""Unit tests for data quality module"""

import pytest
from datetime import date, timedelta
from pyspark.sql import functions as F
from src.quality.data_quality import DataQualityChecker, DataInvariantError

class TestDataQualityChecker:
    """Test data quality checks"""

    @pytest.fixture
    def checker(self):
        return DataQualityChecker()

    def test_clean_data_passes(self, checker, enriched_data):
        """Cleaned sample data satisfies every critical check"""
        passed, results = checker.run_all_checks(enriched_data)

        assert passed is True
        assert results["failed"] == 0
        assert results["has_critical_errors"] is False
        assert results["total_checks"] == results["passed"] + results["warnings"]

    def test_assert_clean_invariants_returns_results(self, checker, enriched_data):
        results = checker.assert_clean_invariants(enriched_data)

        assert results["quality_score"] > 0

    def test_uncleaned_rows_fail(self, checker, raw_data):
        """Enriching without cleaning lets cancelled and anonymous rows through"""
        from src.pipeline.transformations import DataTransformer

        transformer = DataTransformer()
        dirty = transformer.enrich_data(transformer.standardize_columns(raw_data))

        with pytest.raises(DataInvariantError) as exc_info:
            checker.assert_clean_invariants(dirty)

        message = str(exc_info.value)
        assert "Cancellation Check" in message
        assert "Null Check: customer_id" in message
        assert "Positive Values Check" in message

    def test_line_total_mismatch(self, checker, enriched_data):
        broken = enriched_data.withColumn("line_total", F.col("line_total") + F.lit(1))

        checker._check_line_totals(broken)

        assert len(checker.checks_failed) == 1
        assert checker.checks_failed[0].name == "Line Total Check"

    def test_schema_compliance_missing_columns(self, checker, enriched_data):
        checker._check_schema_compliance(enriched_data.drop("year_month"))

        assert len(checker.checks_failed) == 1

    def test_row_count_check(self, checker, enriched_data):
        """Too few rows is a warning, never a failure"""
        checker._check_row_count(enriched_data, min_rows=5)
        assert len(checker.checks_passed) == 1

        checker._check_row_count(enriched_data, min_rows=100)
        assert len(checker.checks_warning) == 1
        assert len(checker.checks_failed) == 0

    def test_empty_data_has_no_critical_errors(self, checker, enriched_data):
        """An empty cleaned dataset still produces a report"""
        passed, results = checker.run_all_checks(enriched_data.limit(0))

        assert passed is True
        assert results["warnings"] >= 1

    def test_duplicate_check(self, checker, enriched_data):
        """Duplicated line items above the threshold raise a warning"""
        duplicated = enriched_data.union(enriched_data)

        checker._check_duplicates(duplicated)

        assert len(checker.checks_warning) == 1
        assert checker.checks_warning[0].metrics["duplicates"] == 6

    def test_future_dates_warn(self, checker, spark):
        future = date.today() + timedelta(days=30)
        df = spark.createDataFrame([(date(2010, 12, 1),), (future,)], ["invoice_date"])

        checker._check_date_range(df)

        assert len(checker.checks_warning) == 1
        assert checker.checks_warning[0].name == "Date Range Check"

    def test_country_concentration(self, checker, spark):
        df = spark.createDataFrame([("United Kingdom",)] * 99 + [("France",)], ["country"])

        checker._check_country_distribution(df)

        assert len(checker.checks_warning) == 1
        assert checker.checks_warning[0].metrics["top_country"] == "United Kingdom"

    def test_generate_quality_report(self, checker, enriched_data, tmp_path):
        _, results = checker.run_all_checks(enriched_data)
        output_path = tmp_path / "quality" / "report.txt"

        text = checker.generate_quality_report(results, output_path)

        assert "DATA QUALITY REPORT" in text
        assert output_path.exists()
        assert output_path.with_suffix(".json").exists()

    def test_missing_invoice_date_fails(self, checker, enriched_data):
        undated = enriched_data.withColumn("invoice_date", F.lit(None).cast("date"))

        checker._check_invoice_dates(undated)

        assert len(checker.checks_failed) == 1
        assert checker.checks_failed[0].name == "Null Check: invoice_date"
