from setuptools import setup


setup(
    name="finance-tracker",
    version="1.0.0",
    description="Local personal finance tracker that imports bank statement spreadsheets (xlsx, xls, ods, csv)",
    packages=["finance_tracker"],
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "ods": ["odfpy"],
        "all": ["xlrd", "odfpy"],
    },
    entry_points={
        "console_scripts": [
            "finance-tracker=finance_tracker.cli:main",
        ]
    },
)
