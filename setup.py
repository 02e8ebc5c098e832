"""Setup script for the Ads Access & IP Exclusion API."""

from setuptools import setup, find_packages

setup(
    name="ads-access-exclusions",
    version="0.1.0",
    description="Management links and IP exclusion lists for Google Ads and Microsoft Advertising",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.109.0",
        "uvicorn[standard]>=0.27.0",
        "google-ads>=25.0.0",
        "google-auth>=2.23.0",
        "google-api-core>=2.15.0",
        "grpcio>=1.60.0",
        "protobuf>=4.25.0",
        "bingads>=13.0.18",
        "suds-community>=1.1.2",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-dotenv>=1.0.0",
        "cryptography>=41.0.7",
        "pyjwt[crypto]>=2.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "httpx>=0.26.0",
        ],
    },
)
