from setuptools import setup


setup(
    name="menu-studio",
    version="0.3.0",
    description="Normalize, reconcile and enrich messy restaurant menu spreadsheet exports",
    packages=["menu_studio"],
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "pandas",
        "chardet",
        "openpyxl",
        "requests",
        "rapidfuzz",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "test": ["pytest"],
        "all": ["xlrd"],
    },
    entry_points={
        "console_scripts": [
            "menu-studio=menu_studio.cli:main",
        ]
    },
)
