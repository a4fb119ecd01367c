"""HTML dashboard composing KPIs, charts and ranked tables"""

from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import jinja2
import pandas as pd

from src.pipeline.analytics import TotalsSummary
from src.utils.config import settings, analytics_config
from src.utils.logger import logger

TEMPLATE_DIR = Path(__file__).parent / "templates"

CHART_TITLES = {
    "top_products": "Top Products by Revenue",
    "monthly_sales": "Monthly Sales Trend",
    "top_countries": "Top Countries by Revenue",
    "sales_by_day_of_week": "Sales by Day of the Week",
    "rfm_scatter": "Frequency vs Monetary Value",
}


def _money(value) -> str:
    return f"{Decimal(str(value)).quantize(Decimal('0.01')):,}"


class DashboardBuilder:
    """Render ``dashboard.html`` next to the chart images"""

    def __init__(self, output_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir or settings.reports_path)
        self.env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=True,
        )

    def build(self, totals: TotalsSummary, tables: Dict[str, pd.DataFrame], charts: Dict[str, Path],
              title: str = "Online Retail Sales Dashboard") -> Path:
        """Write the dashboard and return its path"""
        template = self.env.get_template("dashboard.html.j2")

        html_content = template.render(
            title=title,
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M"),
            currency=analytics_config.currency,
            totals={
                "total_revenue": _money(totals.total_revenue),
                "total_orders": f"{totals.total_orders:,}",
                "total_customers": f"{totals.total_customers:,}",
            },
            charts=self._chart_entries(charts),
            tables=self._tables(tables),
        )

        output_path = self.output_dir / "dashboard.html"
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(html_content, encoding="utf-8")

        logger.info(f"Dashboard written to: {output_path}")
        return output_path

    def _chart_entries(self, charts: Dict[str, Path]) -> List[Dict[str, str]]:
        entries = []
        for name, path in charts.items():
            # Images live beside the dashboard unless written elsewhere
            path = Path(path)
            src = path.name if path.parent.resolve() == self.output_dir.resolve() else path.resolve().as_uri()
            entries.append({"title": CHART_TITLES.get(name, name), "src": src})
        return entries

    def _tables(self, tables: Dict[str, pd.DataFrame]) -> List[Dict]:
        products = tables["top_products"]
        countries = tables["top_countries"]
        customers = tables["top_customers"]

        return [
            {
                "title": "Top Products",
                "columns": ["Stock Code", "Description", "Quantity", "Revenue"],
                "rows": [(r.stock_code, r.description or "", f"{int(r.total_quantity):,}",
                          _money(r.total_revenue))
                         for r in products.itertuples()],
            },
            {
                "title": "Top Countries",
                "columns": ["Country", "Revenue"],
                "rows": [(r.country, _money(r.total_revenue)) for r in countries.itertuples()],
            },
            {
                "title": "Top Customers (RFM)",
                "columns": ["Customer", "Recency (days)", "Frequency", "Monetary"],
                "rows": [(r.customer_id, int(r.recency_days), int(r.frequency), _money(r.monetary))
                         for r in customers.itertuples()],
            },
        ]
