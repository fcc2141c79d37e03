"""Application models produced by scanning and deployment."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True, slots=True)
class ScannedApplication:
    """An application bundle discovered on disk.

    Attributes:
        name: Bundle name without the '.app' suffix.
        version: Short version string from the bundle manifest.
        path: Absolute path of the bundle.
        is_system_app: Whether the bundle lives in the system directory.
        bundle_id: Bundle identifier from the manifest, if any.
    """

    name: str
    version: str
    path: str
    is_system_app: bool = False
    bundle_id: str | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate application data after initialization."""
        if not self.name:
            msg = "Application name cannot be empty"
            raise ValueError(msg)


class OutcomeStatus(Enum):
    """Confidence of a successful step."""

    OK = "ok"
    DEGRADED = "degraded"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of a step that succeeded, possibly with reduced confidence.

    Best-effort steps return DEGRADED with a reason instead of raising,
    so callers can tell a clean path from a degraded-but-successful one.

    Attributes:
        status: OK or DEGRADED.
        reason: Why the step was degraded.
    """

    status: OutcomeStatus = OutcomeStatus.OK
    reason: str | None = None

    @classmethod
    def ok(cls) -> "Outcome":
        """Create a clean outcome."""
        return cls()

    @classmethod
    def degraded(cls, reason: str) -> "Outcome":
        """Create a degraded outcome with a reason."""
        return cls(status=OutcomeStatus.DEGRADED, reason=reason)

    @property
    def is_degraded(self) -> bool:
        """Check if the step completed with reduced confidence."""
        return self.status == OutcomeStatus.DEGRADED


@dataclass(frozen=True, slots=True)
class LocatedBundle:
    """An application bundle located inside an extracted archive.

    Attributes:
        path: Path of the bundle to deploy.
        strategy: Name of the extraction technique that produced it.
        placeholder: True when no real bundle existed and a placeholder
            bundle was synthesized instead.
    """

    path: str
    strategy: str
    placeholder: bool = False


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Settled result of an install or uninstall.

    Attributes:
        app_name: Resolved application name.
        path: Deployed or removed bundle path.
        version: Version recorded in the inventory (install only).
        bundle_id: Bundle identifier read from the manifest.
        placeholder: Whether a placeholder bundle was deployed.
        warnings: Reasons of degraded best-effort steps.
        match_strategy: Matcher that resolved the application (uninstall only).
    """

    app_name: str
    path: str
    version: str | None = None
    bundle_id: str | None = None
    placeholder: bool = False
    warnings: tuple[str, ...] = ()
    match_strategy: str | None = None

    @property
    def degraded(self) -> bool:
        """Check if the operation succeeded with reduced confidence."""
        return self.placeholder or bool(self.warnings)
