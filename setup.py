#!/usr/bin/env python3
"""
Setup script for the threaded HTTP/1.1 file server
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="threaded-file-server",
    version="1.0.0",
    description="A minimal multi-threaded HTTP/1.1 static file server",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["fileserver", "fileserver.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.1.0",
            "requests>=2.31.0",
            "black>=23.3.0",
            "flake8>=6.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.1.0",
            "requests>=2.31.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "fileserver=fileserver.cli:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
