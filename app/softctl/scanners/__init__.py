"""Application scanners.

This module exports the scanner classes for enumerating installed applications.
"""

from softctl.scanners.base import Scanner
from softctl.scanners.bundle import BundleScanner, ScanIndex

__all__ = ["BundleScanner", "ScanIndex", "Scanner"]
