"""Setup script for the Oura exporter."""

from setuptools import find_packages, setup

setup(
    name="oura-exporter",
    version="0.1.0",
    description="Oura Exporter - poll the Oura API and export to InfluxDB and pub/sub",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["ouraexport"],
    install_requires=[
        "typer>=0.9.0",
        "rich>=13.0.0",
        "httpx>=0.27.0",
        "python-dotenv>=1.0.0",
        "pydantic>=2.0.0",
        "boto3>=1.34.0",
        "python-dateutil>=2.8.0",
        "PyYAML>=6.0",
        "influxdb-client[async]>=1.40.0",
        "aiohttp>=3.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "moto>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ouraexport=ouraexport:app",
        ],
    },
    python_requires=">=3.11",
)
