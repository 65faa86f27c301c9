#!/usr/bin/env python3
"""
Setup configuration for Cost Report Explorer
"""

from setuptools import setup, find_packages
import os

# Read the contents of README file
this_directory = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(this_directory, 'README.md'), encoding='utf-8') as f:
    long_description = f.read()

# Read requirements
with open(os.path.join(this_directory, 'requirements.txt')) as f:
    requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

setup(
    name="cost-report-explorer",
    version="1.0.0",
    author="Cost Report Team",
    author_email="admin@example.com",
    description="Interactive cross-filtering and aggregation of cloud cost exports",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=['src', 'src.*']),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Topic :: Office/Business :: Financial",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    entry_points={
        'console_scripts': [
            'cost-report=src.main:cli',
        ],
    },
    include_package_data=True,
    extras_require={
        'test': [
            'pytest>=7.4.0',
        ],
        'dev': [
            'pytest>=7.4.0',
            'black>=23.9.0',
            'isort>=5.12.0',
            'mypy>=1.6.0',
        ],
    },
    keywords="cloud cost report azure billing cross-filter dashboard",
)
