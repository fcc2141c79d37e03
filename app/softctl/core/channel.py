"""Progress channel for streaming operation events to a caller.

Events are written as text frames: ``data: <json>`` followed by a blank
line. A comment-only frame is written periodically as a keep-alive while
the channel is open. The channel guarantees that exactly one terminal
event (Completed or Error) is written per operation.
"""

import json
import logging
import threading
from collections.abc import Callable
from typing import TextIO

from softctl.core.context import CancelReason, OperationContext
from softctl.models.progress import (
    Completed,
    Progress,
    ProgressEvent,
    event_from_dict,
    event_to_json,
)

logger = logging.getLogger(__name__)

# Comment-only frame carrying no payload
KEEPALIVE_FRAME = ":keepalive\n\n"

# Separator between frames
FRAME_SEPARATOR = "\n\n"

_DATA_PREFIX = "data: "

# Message of the Completed event synthesized on close
DEFAULT_COMPLETION_MESSAGE = "Operation completed"


def encode_frame(event: ProgressEvent) -> str:
    """Encode one event as a stream frame."""
    return f"{_DATA_PREFIX}{event_to_json(event)}{FRAME_SEPARATOR}"


def decode_frames(text: str) -> list[ProgressEvent]:
    """Decode every data frame in a stream, skipping keep-alives.

    Args:
        text: Raw stream content.

    Returns:
        Events in stream order.

    Raises:
        ValueError: If a data frame does not carry a valid event.
    """
    events: list[ProgressEvent] = []
    for frame in text.split(FRAME_SEPARATOR):
        frame = frame.strip()
        if not frame or frame.startswith(":"):
            continue
        if not frame.startswith(_DATA_PREFIX.strip()):
            msg = f"Malformed frame: {frame[:80]!r}"
            raise ValueError(msg)
        payload = frame[len(_DATA_PREFIX.strip()) :].strip()
        try:
            events.append(event_from_dict(json.loads(payload)))
        except (json.JSONDecodeError, KeyError) as e:
            msg = f"Invalid event payload: {e}"
            raise ValueError(msg) from e
    return events


def stream_sink(stream: TextIO) -> Callable[[str], None]:
    """Build a sink that writes and flushes frames on a text stream."""

    def write(frame: str) -> None:
        stream.write(frame)
        stream.flush()

    return write


class ProgressChannel:
    """Single-writer event stream with keep-alives and disconnect detection.

    The sink is any callable accepting one frame. A sink raising
    BrokenPipeError or ConnectionError is treated as a caller disconnect and
    cancels the operation context; any other OSError marks the channel
    dead. Either way later writes are suppressed.

    Example:
        >>> with ProgressChannel(sink, ctx) as channel:
        ...     channel.send(Progress(5, "Starting"))
    """

    def __init__(
        self,
        sink: Callable[[str], None],
        ctx: OperationContext,
        keepalive_interval: float = 5.0,
    ) -> None:
        self._sink = sink
        self._ctx = ctx
        self._keepalive_interval = keepalive_interval
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._alive = True
        self._terminal: ProgressEvent | None = None
        self._last_percent = 0

    def __enter__(self) -> "ProgressChannel":
        return self.open()

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        """Whether the peer is attached and no terminal event was sent."""
        return self._alive and self._terminal is None

    @property
    def terminal_event(self) -> ProgressEvent | None:
        """The terminal event written to the stream, if any."""
        return self._terminal

    @property
    def last_percent(self) -> int:
        """Highest progress percentage written so far."""
        return self._last_percent

    def open(self) -> "ProgressChannel":
        """Start the keep-alive thread."""
        if self._thread is None and self._keepalive_interval > 0:
            self._thread = threading.Thread(
                target=self._keepalive_loop,
                name=f"keepalive-{self._ctx.operation_id}",
                daemon=True,
            )
            self._thread.start()
        return self

    def send(self, event: ProgressEvent) -> bool:
        """Write one event.

        Progress percentages never go backwards; a lower value is raised to
        the last one written. Nothing is written after a terminal event.

        Args:
            event: Event to deliver.

        Returns:
            True if the event was delivered, False if the caller should stop
            producing events.
        """
        with self._lock:
            if not self.is_open:
                return False
            if isinstance(event, Progress):
                if event.percent < self._last_percent:
                    event = Progress(self._last_percent, event.message, event.details)
                self._last_percent = event.percent
            if not self._write(encode_frame(event)):
                return False
            if event.is_terminal:
                self._terminal = event
                if isinstance(event, Completed):
                    self._last_percent = 100
            return True

    def close(self, message: str = DEFAULT_COMPLETION_MESSAGE) -> None:
        """Close the channel, synthesizing Completed if no terminal event was sent.

        Args:
            message: Message of the synthesized Completed event.
        """
        if self._terminal is None:
            self.send(Completed(message))
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=1.0)
        self._thread = None

    def _write(self, frame: str) -> bool:
        """Write a frame; caller holds the lock."""
        try:
            self._sink(frame)
        except (BrokenPipeError, ConnectionError) as e:
            logger.info("Caller disconnected from operation %s: %s", self._ctx.operation_id, e)
            self._alive = False
            self._ctx.cancel(CancelReason.DISCONNECTED)
            return False
        except OSError as e:
            logger.warning("Progress channel write failed: %s", e)
            self._alive = False
            return False
        return True

    def _keepalive_loop(self) -> None:
        while not self._stop.wait(self._keepalive_interval):
            with self._lock:
                if not self.is_open:
                    return
                self._write(KEEPALIVE_FRAME)
