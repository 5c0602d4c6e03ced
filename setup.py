#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for LedgerAudit

Installs the ``ledgeraudit`` package and the ``ledgeraudit`` console
command.
"""

from pathlib import Path

from setuptools import find_packages, setup

VERSION = "0.3.0"

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "LedgerAudit - account consistency auditing for replicated ledgers"

setup(
    name="ledgeraudit",
    version=VERSION,
    description="Compare account state between an archiver and its node databases",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="LedgerAudit Team",
    python_requires=">=3.10",
    packages=find_packages(include=["ledgeraudit", "ledgeraudit.*"]),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-core>=2.0",
        "typer>=0.9",
        "rich>=13.0",
        "prometheus-client>=0.17",
        "PyYAML>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ledgeraudit=ledgeraudit.cli.main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
)
