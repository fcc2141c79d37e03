"""Abstract base class for application scanners.

This module defines the Scanner interface that application scanners
must implement.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from softctl.models.application import ScannedApplication


class Scanner(ABC):
    """Abstract base class for all application scanners.

    Scanners enumerate applications present on the machine. They never
    modify installed applications.

    Example:
        >>> scanner = BundleScanner.from_config(config)
        >>> if scanner.is_available():
        ...     for app in scanner.scan():
        ...         print(f"{app.name}: {app.version}")
    """

    @abstractmethod
    def scan(self) -> Iterator[ScannedApplication]:
        """Scan and yield all applications found.

        Yields:
            ScannedApplication instances, at most one per application name.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this scanner has anything to scan on the system.

        Returns:
            True if the scanner can be used, False otherwise.
        """
