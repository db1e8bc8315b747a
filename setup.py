from setuptools import setup, find_packages

setup(
    name="journal-insights",
    version="0.1.0",
    packages=find_packages(include=["insights", "insights.*"]),
    python_requires=">=3.11",
    install_requires=[
        "fastapi>=0.110",
        "httpx>=0.27",
        "pydantic>=2.7",
        "pydantic-settings>=2.7",
        "uvicorn[standard]>=0.29",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
