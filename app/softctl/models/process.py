"""Process descriptor model."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProcessDescriptor:
    """A running process associated with an application.

    Produced by the process locator and consumed by the terminator
    within a single operation; never persisted.

    Attributes:
        pid: Process id.
        command: Originating command line (or friendly application name).
        bundle_id: Bundle identifier when it could be resolved.
    """

    pid: int
    command: str
    bundle_id: str | None = None

    def __post_init__(self) -> None:
        """Validate descriptor data after initialization."""
        if self.pid <= 0:
            msg = f"Invalid process id: {self.pid}"
            raise ValueError(msg)
