"""Data models for softctl.

This module exports the core data structures used throughout the application.
"""

from softctl.models.application import (
    LocatedBundle,
    OperationResult,
    Outcome,
    OutcomeStatus,
    ScannedApplication,
)
from softctl.models.inventory import InventoryEntry, InventoryRecord, normalize_entry_name
from softctl.models.package import SUPPORTED_EXTENSIONS, PackageReference
from softctl.models.process import ProcessDescriptor
from softctl.models.progress import Completed, Error, EventStatus, Progress, ProgressEvent

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "Completed",
    "Error",
    "EventStatus",
    "InventoryEntry",
    "InventoryRecord",
    "LocatedBundle",
    "OperationResult",
    "Outcome",
    "OutcomeStatus",
    "PackageReference",
    "ProcessDescriptor",
    "Progress",
    "ProgressEvent",
    "ScannedApplication",
    "normalize_entry_name",
]
