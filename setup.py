"""
Compatibility shim.

All package configuration lives in pyproject.toml (PEP 621).
Install with: pip install -e .
"""

from setuptools import setup

# Kept for tooling that still invokes setup.py directly
setup()
