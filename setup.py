from setuptools import setup, find_namespace_packages

setup(
    name="online-retail-report",
    version="0.1.0",
    author="Khairuddin Nasty",
    description="Sales report and dashboard for the UCI Online Retail transaction log",
    packages=find_namespace_packages(include=["src", "src.*"]),
    package_data={"src.reporting": ["templates/*.j2"]},
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pyspark>=3.4",
        "pyarrow>=10.0",
        "pandas>=1.5,<3",
        "numpy>=1.23",
        "openpyxl>=3.1",
        "loguru>=0.7",
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "python-dotenv>=1.0",
        "matplotlib>=3.6",
        "seaborn>=0.13",
        "jinja2>=3.1",
        "kaggle>=1.5",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "retail-report=src.pipeline.main:main",
        ],
    },
)
