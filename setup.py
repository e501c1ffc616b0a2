# setup.py

from setuptools import setup, find_packages

setup(
    name="search_coverage",
    version="0.1.0",
    author="Kushagra Bharti",
    description="Grid coverage tracking and multi-agent search simulation over geographic polygons",
    packages=find_packages(exclude=["tests*", "scripts*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.23",
        "shapely>=2.0",
    ],
    extras_require={
        "test": ["pytest>=7", "hypothesis>=6"],
    },
)
