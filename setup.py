"""Setup script for wideload."""

from setuptools import find_packages, setup

setup(
    name="wideload",
    version="0.1.0",
    description="A synthetic workload generator and live dashboard for wide-column data stores",
    author="wideload Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24",
        "pandas>=2.0",
        "pyyaml>=6.0",
        "pydantic>=2.0",
        "scipy>=1.10",
        "click>=8.1",
        "cassandra-driver>=3.28",
        "hdrhistogram>=0.10",
        "psutil>=5.9",
        "rich>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "wideload=wideload.cli:cli",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
