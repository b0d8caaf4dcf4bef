"""Readiness - investment-readiness backend for founders, investors and accelerators"""

__version__ = "1.0.0"
