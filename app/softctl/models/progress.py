"""Progress event models for the streaming protocol.

A ProgressEvent is one of Progress, Completed or Error. Each event
serializes to the JSON object carried by one stream frame.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from softctl.core.errors import ErrorKind


class EventStatus(str, Enum):
    """Discriminator of a progress event."""

    PROGRESS = "progress"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Progress:
    """Intermediate progress report.

    Attributes:
        percent: Completion percentage (0-100).
        message: Short human-readable step description.
        details: Additional context (e.g., placeholder-bundle notice).
    """

    percent: int
    message: str
    details: str | None = None

    def __post_init__(self) -> None:
        """Validate event data after initialization."""
        if not 0 <= self.percent <= 100:
            msg = f"Percent must be between 0 and 100, got {self.percent}"
            raise ValueError(msg)

    @property
    def status(self) -> EventStatus:
        """Event discriminator."""
        return EventStatus.PROGRESS

    @property
    def is_terminal(self) -> bool:
        """Progress events never end a stream."""
        return False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON encoding."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "progress": self.percent,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


@dataclass(frozen=True, slots=True)
class Completed:
    """Terminal success event."""

    message: str
    details: str | None = None

    @property
    def status(self) -> EventStatus:
        """Event discriminator."""
        return EventStatus.COMPLETED

    @property
    def is_terminal(self) -> bool:
        """Completed always ends a stream."""
        return True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON encoding."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "progress": 100,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


@dataclass(frozen=True, slots=True)
class Error:
    """Terminal failure event.

    Attributes:
        message: User-facing message templated per error kind.
        kind: Classified error kind.
        details: Technical detail of the failure.
    """

    message: str
    kind: ErrorKind = ErrorKind.UNKNOWN
    details: str | None = None

    @property
    def status(self) -> EventStatus:
        """Event discriminator."""
        return EventStatus.ERROR

    @property
    def is_terminal(self) -> bool:
        """Error always ends a stream."""
        return True

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON encoding."""
        result: dict[str, Any] = {
            "status": self.status.value,
            "message": self.message,
            "type": self.kind.value,
        }
        if self.details is not None:
            result["details"] = self.details
        return result


ProgressEvent = Progress | Completed | Error


def event_to_json(event: ProgressEvent) -> str:
    """Encode an event as a compact JSON string."""
    return json.dumps(event.to_dict(), separators=(",", ":"))


def event_from_dict(data: dict[str, Any]) -> ProgressEvent:
    """Decode an event from its dictionary form.

    Raises:
        KeyError: If required fields are missing.
        ValueError: If the status or error kind is unknown.
    """
    status = EventStatus(data["status"])
    if status == EventStatus.PROGRESS:
        return Progress(
            percent=int(data["progress"]),
            message=data["message"],
            details=data.get("details"),
        )
    if status == EventStatus.COMPLETED:
        return Completed(message=data["message"], details=data.get("details"))
    return Error(
        message=data["message"],
        kind=ErrorKind(data.get("type", ErrorKind.UNKNOWN.value)),
        details=data.get("details"),
    )
