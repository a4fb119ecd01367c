"""Main report pipeline orchestrator"""

import sys
import time
import json
import argparse
from pathlib import Path
from datetime import datetime
from typing import Optional, Dict, Any, Callable

import pandas as pd
from pyspark.sql import DataFrame

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.append(str(project_root))

from src.utils.spark_manager import SparkManager
from src.utils.logger import logger
from src.utils.config import settings, analytics_config
from src.pipeline.ingestion import DataIngestion
from src.pipeline.transformations import DataTransformer
from src.pipeline.analytics import AnalyticsEngine, AnalyticsResults, format_totals
from src.quality.data_quality import DataQualityChecker
from src.reporting.charts import ChartRenderer
from src.reporting.dashboard import DashboardBuilder


class RetailReportPipeline:
    """Load, clean, enrich, aggregate and render the online retail report"""

    def __init__(self, input_path: Optional[Path] = None,
                 output_path: Optional[Path] = None,
                 reports_path: Optional[Path] = None,
                 top_n: Optional[int] = None,
                 render_charts: Optional[bool] = None,
                 config_overrides: Optional[Dict[str, Any]] = None):
        self.input_path = Path(input_path) if input_path else settings.data_path_raw
        self.output_path = Path(output_path) if output_path else settings.data_path_processed
        self.reports_path = Path(reports_path) if reports_path else settings.reports_path
        self.render_charts = settings.enable_charts if render_charts is None else render_charts

        self.spark = SparkManager.get_session(config_overrides=config_overrides or {})
        self.ingestion = DataIngestion()
        self.transformer = DataTransformer()
        self.analytics = AnalyticsEngine(top_n=top_n)
        self.quality_checker = DataQualityChecker()

        self.current_stage = "initialization"
        self.stage_timings: Dict[str, float] = {}

    def run(self) -> Dict[str, Any]:
        """Run every stage; any failure aborts the run"""
        pipeline_start = time.time()
        results: Dict[str, Any] = {
            "status": "started",
            "start_time": datetime.now().isoformat(),
        }

        logger.info("=" * 60)
        logger.info("Starting Online Retail Report Pipeline")
        logger.info("=" * 60)

        try:
            raw_df = self._execute_stage("ingestion", self.ingestion.read_data, self.input_path)

            enriched_df, exclusions = self._execute_stage("transformation",
                                                          self._transform_data, raw_df)

            quality_results = self._execute_stage("quality_check",
                                                  self.quality_checker.assert_clean_invariants,
                                                  enriched_df)

            analytics_results, tables = self._execute_stage("analytics", self._run_analytics,
                                                            enriched_df)

            outputs = self._execute_stage("reporting", self._render_reports,
                                          analytics_results, tables)

            outputs.update(self._execute_stage("save_results", self._save_results, tables))

            total_duration = time.time() - pipeline_start
            row_count = exclusions["retained"]

            results.update({
                "status": "completed",
                "end_time": datetime.now().isoformat(),
                "total_duration_seconds": total_duration,
                "rows_loaded": exclusions["total_rows"],
                "rows_processed": row_count,
                "exclusions": exclusions,
                "totals": analytics_results.totals.to_dict(),
                "quality_score": quality_results.get("quality_score"),
                "stage_timings": self.stage_timings,
                "outputs": {name: str(path) for name, path in outputs.items()},
            })

            self._write_summary_report(results, quality_results)

            for line in format_totals(analytics_results.totals).splitlines():
                logger.info(line)

            logger.success("=" * 60)
            logger.success(f"Pipeline completed successfully in {total_duration:.1f} seconds!")
            logger.success("=" * 60)

            return results

        except Exception as e:
            logger.error(f"Pipeline failed at stage '{self.current_stage}': {e}")
            results.update({
                "status": "failed",
                "error": str(e),
                "failed_stage": self.current_stage,
                "error_type": type(e).__name__
            })
            raise
        finally:
            self._cleanup()

    def _execute_stage(self, stage_name: str, func: Callable, *args, **kwargs) -> Any:
        """Execute a pipeline stage with timing"""
        self.current_stage = stage_name
        stage_start = time.time()

        logger.info(f"Starting stage: {stage_name}")

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            stage_duration = time.time() - stage_start
            self.stage_timings[stage_name] = stage_duration
            logger.error(f"Stage '{stage_name}' failed after {stage_duration:.1f}s: {e}")
            raise

        stage_duration = time.time() - stage_start
        self.stage_timings[stage_name] = stage_duration
        logger.success(f"Stage '{stage_name}' completed in {stage_duration:.1f}s")

        return result

    def _transform_data(self, raw_df: DataFrame):
        """Standardize, clean and enrich; also report what cleaning removed"""
        standardized = self.transformer.standardize_columns(raw_df)
        exclusions = self.transformer.exclusion_summary(standardized)

        partitions = SparkManager.optimize_shuffle_partitions(exclusions["total_rows"])
        self.spark.conf.set("spark.sql.shuffle.partitions", str(partitions))
        logger.debug(f"Using {partitions} shuffle partitions")

        cleaned = self.transformer.clean_data(standardized)
        enriched = self.transformer.enrich_data(cleaned)

        if analytics_config.cache_enabled:
            enriched = enriched.persist(SparkManager.get_storage_level("MEMORY_AND_DISK"))

        return enriched, exclusions

    def _run_analytics(self, enriched_df: DataFrame):
        """Compute every summary and collect it before any output is written"""
        analytics_results = self.analytics.run_all(enriched_df)
        tables = analytics_results.collect()
        logger.info(f"Collected {len(tables)} summary tables")
        return analytics_results, tables

    def _render_reports(self, analytics_results: AnalyticsResults,
                        tables: Dict[str, pd.DataFrame]) -> Dict[str, Path]:
        """Charts and dashboard; skipped when charts are disabled"""
        if not self.render_charts:
            logger.info("Chart rendering disabled")
            return {}

        charts = ChartRenderer(self.reports_path).render_all(tables)
        dashboard = DashboardBuilder(self.reports_path).build(analytics_results.totals, tables, charts)

        outputs = dict(charts)
        outputs["dashboard"] = dashboard
        return outputs

    def _save_results(self, tables: Dict[str, pd.DataFrame]) -> Dict[str, Path]:
        """Write every summary table as CSV; money stays exact Decimal"""
        self.output_path.mkdir(parents=True, exist_ok=True)

        saved = {}
        for name, pdf in tables.items():
            path = self.output_path / f"{name}.csv"
            pdf.to_csv(path, index=False)
            saved[name] = path
            logger.info(f"Saved {name} ({len(pdf):,} rows) to {path.name}")

        return saved

    def _write_summary_report(self, pipeline_results: Dict[str, Any],
                              quality_results: Dict[str, Any]) -> Path:
        """Persist the run summary as JSON"""
        summary = dict(pipeline_results)
        summary["execution_date"] = datetime.now().strftime("%Y-%m-%d")
        summary["quality_details"] = {
            "total_checks": quality_results.get("total_checks", 0),
            "passed": quality_results.get("passed", 0),
            "failed": quality_results.get("failed", 0),
            "warnings": quality_results.get("warnings", 0),
            "warning_checks": [
                {"name": c.get("name"), "message": c.get("message")}
                for c in quality_results.get("warning_checks", [])
            ],
        }

        summary_path = self.output_path / "summary_report.json"
        with open(summary_path, 'w') as f:
            json.dump(summary, f, indent=2, default=str)

        quality_path = self.output_path / "quality_report.txt"
        self.quality_checker.generate_quality_report(quality_results, quality_path)

        pipeline_results.setdefault("outputs", {})["summary_report"] = str(summary_path)
        pipeline_results["outputs"]["quality_report"] = str(quality_path)
        logger.info(f"Summary report saved to: {summary_path}")
        return summary_path

    def _cleanup(self) -> None:
        """Release cached data"""
        try:
            self.spark.catalog.clearCache()
        except Exception as e:
            logger.warning(f"Cleanup error: {e}")


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Online Retail sales report")
    parser.add_argument("--input", type=Path, help="Transaction file or directory (default: data/raw)")
    parser.add_argument("--output", type=Path, help="Directory for summary tables (default: data/processed)")
    parser.add_argument("--reports", type=Path, help="Directory for charts and dashboard (default: reports)")
    parser.add_argument("--top-n", type=_positive_int, help="Size of ranked summaries (default: 10)")
    parser.add_argument("--no-charts", action="store_true", help="Skip charts and dashboard")
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point"""
    args = parse_args(argv)

    pipeline = RetailReportPipeline(
        input_path=args.input,
        output_path=args.output,
        reports_path=args.reports,
        top_n=args.top_n,
        render_charts=False if args.no_charts else None,
    )

    try:
        pipeline.run()
    except Exception:
        sys.exit(1)


if __name__ == "__main__":
    main()
