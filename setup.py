import os

from setuptools import find_packages, setup

setup(
    name="schemata",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pydantic[email]>=2.10.6,<3.0.0",
        "structlog>=24.1.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "hypothesis>=6.100",
        ],
    },
    author="Schemata Contributors",
    description="Composable schema declaration and validation with structured errors",
    long_description=open("README.md").read() if os.path.exists("README.md") else "",
    long_description_content_type="text/markdown",
)
