"""Static charts for the retail report"""

from pathlib import Path
from typing import Dict, Optional

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import numpy as np
import pandas as pd
import seaborn as sns

from src.pipeline.schemas import DAY_NAMES
from src.utils.config import settings, analytics_config
from src.utils.logger import logger

SUBTITLE = "Online Retail Dataset (2010-2011)"

CHART_FILES = {
    "top_products": "top_10_products.png",
    "monthly_sales": "monthly_sales_trend.png",
    "top_countries": "top_10_countries.png",
    "sales_by_day_of_week": "sales_by_day_of_week.png",
    "rfm_scatter": "rfm_frequency_vs_monetary.png",
}

thousands = mticker.FuncFormatter(lambda x, _: f"{x:,.0f}")


def money_as_float(pdf: pd.DataFrame, money_columns=("total_revenue", "monetary")) -> pd.DataFrame:
    """Copy of a collected summary table with Decimal money columns as floats"""
    pdf = pdf.copy()
    for column in money_columns:
        if column in pdf.columns:
            pdf[column] = pdf[column].astype(float)
    return pdf


class ChartRenderer:
    """Render the summary tables to PNG files"""

    def __init__(self, output_dir: Optional[Path] = None, dpi: Optional[int] = None):
        self.output_dir = Path(output_dir or settings.reports_path)
        self.dpi = dpi or settings.chart_dpi
        self.currency = analytics_config.currency
        sns.set_theme(style="whitegrid")

    def render_all(self, tables: Dict[str, pd.DataFrame]) -> Dict[str, Path]:
        """Render every chart from collected tables; returns chart name -> file path"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        data = {name: money_as_float(pdf) for name, pdf in tables.items()}

        charts = {
            "top_products": self.plot_top_products(data["top_products"]),
            "monthly_sales": self.plot_monthly_sales(data["monthly_sales"]),
            "top_countries": self.plot_top_countries(data["top_countries"]),
            "sales_by_day_of_week": self.plot_sales_by_day_of_week(data["sales_by_day_of_week"]),
            "rfm_scatter": self.plot_rfm_scatter(data["rfm"]),
        }

        logger.info(f"Rendered {len(charts)} charts to {self.output_dir}")
        return charts

    def _save(self, fig, name: str) -> Path:
        path = self.output_dir / CHART_FILES[name]
        fig.tight_layout()
        fig.savefig(path, dpi=self.dpi, bbox_inches="tight")
        plt.close(fig)
        logger.debug(f"Saved chart: {path.name}")
        return path

    @staticmethod
    def _no_data(ax):
        ax.text(0.5, 0.5, "No data", ha="center", va="center",
                transform=ax.transAxes, fontsize=14, color="grey")
        ax.set_xticks([])
        ax.set_yticks([])

    def plot_top_products(self, pdf: pd.DataFrame) -> Path:
        """Horizontal bars, best seller on top"""
        fig, ax = plt.subplots(figsize=(10, 7))

        if pdf.empty:
            self._no_data(ax)
        else:
            data = pdf.sort_values("total_revenue")
            labels = data["description"].fillna(data["stock_code"])
            ax.barh(labels, data["total_revenue"], color="steelblue")
            ax.xaxis.set_major_formatter(thousands)
            ax.tick_params(axis="y", labelsize=10)

        ax.set_title(f"Top {len(pdf) or 10} Products by Revenue\n{SUBTITLE}")
        ax.set_xlabel(f"Total Revenue ({self.currency})")
        ax.set_ylabel("Product Description")
        return self._save(fig, "top_products")

    def plot_monthly_sales(self, pdf: pd.DataFrame) -> Path:
        """Line with markers, chronological"""
        fig, ax = plt.subplots(figsize=(10, 6))

        if pdf.empty:
            self._no_data(ax)
        else:
            ax.plot(pdf["year_month"], pdf["total_revenue"],
                    color="#2ca02c", linewidth=1.2, marker="o", markersize=6)
            ax.yaxis.set_major_formatter(thousands)
            plt.setp(ax.get_xticklabels(), rotation=45, ha="right")

        ax.set_title("Monthly Sales Trend")
        ax.set_xlabel("Year-Month")
        ax.set_ylabel(f"Total Revenue ({self.currency})")
        return self._save(fig, "monthly_sales")

    def plot_top_countries(self, pdf: pd.DataFrame) -> Path:
        fig, ax = plt.subplots(figsize=(10, 7))

        if pdf.empty:
            self._no_data(ax)
        else:
            data = pdf.sort_values("total_revenue")
            ax.barh(data["country"], data["total_revenue"], color="#d62728")
            ax.xaxis.set_major_formatter(thousands)

        ax.set_title(f"Top {len(pdf) or 10} Countries by Revenue")
        ax.set_xlabel(f"Total Revenue ({self.currency})")
        ax.set_ylabel("Country")
        return self._save(fig, "top_countries")

    def plot_sales_by_day_of_week(self, pdf: pd.DataFrame) -> Path:
        """Bars Mon..Sun; days without sales are left out"""
        fig, ax = plt.subplots(figsize=(9, 6))

        if pdf.empty:
            self._no_data(ax)
        else:
            order = [d for d in DAY_NAMES if d in set(pdf["day_of_week_name"])]
            sns.barplot(data=pdf, x="day_of_week_name", y="total_revenue",
                        hue="day_of_week_name", order=order, hue_order=order,
                        palette="Set2", legend=False, ax=ax)
            ax.yaxis.set_major_formatter(thousands)
            ax.tick_params(axis="x", labelsize=12)

        ax.set_title(f"Sales Distribution by Day of the Week\n{SUBTITLE}")
        ax.set_xlabel("Day of the Week")
        ax.set_ylabel(f"Total Revenue ({self.currency})")
        return self._save(fig, "sales_by_day_of_week")

    def plot_rfm_scatter(self, pdf: pd.DataFrame) -> Path:
        """Frequency vs monetary per customer with a least-squares trend"""
        fig, ax = plt.subplots(figsize=(9, 6))

        if pdf.empty:
            self._no_data(ax)
        else:
            ax.scatter(pdf["frequency"], pdf["monetary"], alpha=0.6, color="#1f77b4", s=30)

            if pdf["frequency"].nunique() > 1:
                slope, intercept = np.polyfit(pdf["frequency"], pdf["monetary"], 1)
                xs = np.linspace(pdf["frequency"].min(), pdf["frequency"].max(), 50)
                ax.plot(xs, slope * xs + intercept, color="red", linestyle="--")

            ax.xaxis.set_major_formatter(thousands)
            ax.yaxis.set_major_formatter(thousands)

        ax.set_title("RFM Analysis: Frequency vs Monetary Value", fontweight="bold")
        ax.set_xlabel("Frequency (Number of Orders)")
        ax.set_ylabel(f"Monetary Value (Total Spending in {self.currency})")
        return self._save(fig, "rfm_scatter")
