#!/usr/bin/env python3
"""Download the Online Retail transaction log from Kaggle"""

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent))

import kaggle
from src.utils.logger import logger
from src.utils.config import settings

DATASET = "carrie1/ecommerce-data"
STANDARD_NAME = "online_retail.csv"


def check_kaggle_credentials() -> bool:
    """Kaggle API token must be present in ~/.kaggle"""
    kaggle_json = Path.home() / ".kaggle" / "kaggle.json"

    if not kaggle_json.exists():
        logger.error("Kaggle credentials not found!")
        logger.info("Create an API token at https://www.kaggle.com/account "
                    "and save it as ~/.kaggle/kaggle.json")
        return False

    if oct(kaggle_json.stat().st_mode)[-3:] != '600':
        logger.warning("Restricting permissions on kaggle.json")
        kaggle_json.chmod(0o600)

    return True


def download_retail_data(target_dir: Path = None) -> bool:
    """Fetch and unzip the dataset, renaming the CSV to the name the loader prefers"""
    target_dir = Path(target_dir or settings.data_path_raw)
    target_dir.mkdir(parents=True, exist_ok=True)

    try:
        logger.info(f"Downloading dataset: {DATASET}")
        kaggle.api.dataset_download_files(DATASET, path=str(target_dir), unzip=True)
    except Exception as e:
        logger.error(f"Failed to download: {e}")
        logger.info("Make sure you have accepted the dataset terms on Kaggle")
        return False

    for file in target_dir.glob("*.csv"):
        size_mb = file.stat().st_size / (1024 * 1024)
        logger.info(f"Downloaded: {file.name} ({size_mb:.1f} MB)")

        if file.name.lower() == "data.csv":
            renamed = target_dir / STANDARD_NAME
            file.rename(renamed)
            logger.info(f"Renamed to: {renamed.name}")

    return True


def main():
    logger.info("=== Online Retail Dataset Download ===")

    if not check_kaggle_credentials():
        sys.exit(1)

    if download_retail_data():
        logger.success("Download complete")
    else:
        logger.error("Download failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
