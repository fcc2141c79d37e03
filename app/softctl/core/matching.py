"""Name matching between requested and installed applications.

There is no authoritative key linking a package name to the bundle it
installs, so resolution runs an ordered chain of matchers. Each matcher
reports the confidence of its match; the first success wins and its
strategy name is surfaced to the caller.
"""

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from softctl.models.application import ScannedApplication

# Common short names mapped to the display names their bundles install as
APP_ALIASES: dict[str, str] = {
    "googlechrome": "Google Chrome",
    "chrome": "Google Chrome",
    "firefox": "Firefox",
    "safari": "Safari",
    "microsoftedge": "Microsoft Edge",
    "edge": "Microsoft Edge",
    "vscode": "Visual Studio Code",
    "visualstudiocode": "Visual Studio Code",
    "slack": "Slack",
    "zoom": "zoom.us",
    "zoomus": "zoom.us",
    "spotify": "Spotify",
    "discord": "Discord",
    "teams": "Microsoft Teams",
    "microsoftteams": "Microsoft Teams",
}

# Request fragments whose installed name diverges from the package name
RECOVERY_HINTS: dict[str, tuple[str, ...]] = {
    "github": ("github",),
    "chrome": ("chrome", "google"),
    "google": ("chrome", "google"),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_WHITESPACE = re.compile(r"\s+")

# Minimum word length used by fragment matching
_MIN_FRAGMENT_LENGTH = 4


def normalize_name(name: str) -> str:
    """Lower-case a name and drop everything but letters and digits."""
    return _NON_ALNUM.sub("", name.lower())


def strip_whitespace(name: str) -> str:
    """Lower-case a name and drop all whitespace."""
    return _WHITESPACE.sub("", name).lower()


def canonical_alias(name: str) -> str | None:
    """Return the installed display name for a known short name."""
    return APP_ALIASES.get(normalize_name(name))


def aliases_for(display_name: str) -> list[str]:
    """Return every alias that resolves to the given display name."""
    return [alias for alias, target in APP_ALIASES.items() if target == display_name]


class Confidence(int, Enum):
    """Confidence of a name match, higher is stronger."""

    HEURISTIC = 1
    FRAGMENT = 2
    FUZZY = 3
    ALIAS = 4
    EXACT = 5


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Application selected by a matcher.

    Attributes:
        application: The matched application.
        strategy: Name of the matcher that produced the match.
        confidence: Strength of the match.
    """

    application: ScannedApplication
    strategy: str
    confidence: Confidence


class Matcher(ABC):
    """Single name-matching policy."""

    name: str = "matcher"
    confidence: Confidence = Confidence.HEURISTIC

    @abstractmethod
    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        """Pick the first candidate matching the query, or None."""

    def match(self, query: str, candidates: Sequence[ScannedApplication]) -> MatchResult | None:
        """Run the policy and wrap a hit into a MatchResult."""
        app = self.select(query, candidates)
        if app is None:
            return None
        return MatchResult(application=app, strategy=self.name, confidence=self.confidence)


class ExactMatcher(Matcher):
    """Normalized names are equal."""

    name = "exact"
    confidence = Confidence.EXACT

    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        wanted = normalize_name(query)
        if not wanted:
            return None
        return next((a for a in candidates if normalize_name(a.name) == wanted), None)


class AliasMatcher(Matcher):
    """Query is a known short name for an installed display name."""

    name = "alias"
    confidence = Confidence.ALIAS

    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        target = canonical_alias(query)
        if target is None:
            return None
        return next((a for a in candidates if a.name == target), None)


class SubstringMatcher(Matcher):
    """One normalized name contains the other."""

    name = "substring"
    confidence = Confidence.FUZZY

    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        wanted = normalize_name(query)
        if not wanted:
            return None
        for app in candidates:
            have = normalize_name(app.name)
            if have and (wanted in have or have in wanted):
                return app
        return None


class WhitespaceInsensitiveMatcher(Matcher):
    """Names match once whitespace is removed, keeping punctuation."""

    name = "whitespace"
    confidence = Confidence.FUZZY

    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        wanted = strip_whitespace(query)
        if not wanted:
            return None
        for app in candidates:
            have = strip_whitespace(app.name)
            if have and (have == wanted or wanted in have or have in wanted):
                return app
        return None


class FragmentMatcher(Matcher):
    """Any long-enough word of the query occurs in the application name."""

    name = "fragment"
    confidence = Confidence.FRAGMENT

    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        words = [w.lower() for w in _WHITESPACE.split(query) if len(w) >= _MIN_FRAGMENT_LENGTH]
        for word in words:
            for app in candidates:
                if word in app.name.lower():
                    return app
        return None


class RecoveryMatcher(Matcher):
    """Hardcoded hints for applications installed under unrelated names."""

    name = "recovery"
    confidence = Confidence.HEURISTIC

    def select(
        self, query: str, candidates: Sequence[ScannedApplication]
    ) -> ScannedApplication | None:
        wanted = normalize_name(query)
        for hint, fragments in RECOVERY_HINTS.items():
            if hint not in wanted:
                continue
            for app in candidates:
                lowered = app.name.lower()
                if any(fragment in lowered for fragment in fragments):
                    return app
        return None


def default_matchers() -> list[Matcher]:
    """Matcher chain used to locate an installed application."""
    return [
        ExactMatcher(),
        AliasMatcher(),
        SubstringMatcher(),
        WhitespaceInsensitiveMatcher(),
        FragmentMatcher(),
        RecoveryMatcher(),
    ]


def resolve(
    query: str,
    candidates: Sequence[ScannedApplication],
    matchers: Sequence[Matcher] | None = None,
) -> MatchResult | None:
    """Resolve a requested name against installed applications.

    Args:
        query: Requested application name.
        candidates: Applications found by a fresh scan.
        matchers: Matcher chain; defaults to default_matchers().

    Returns:
        The first successful MatchResult, or None if every matcher failed.
    """
    for matcher in matchers if matchers is not None else default_matchers():
        result = matcher.match(query, candidates)
        if result is not None:
            return result
    return None


def match_bundle_name(query: str, bundle_names: Sequence[str]) -> str | None:
    """Find a bundle name in a directory listing for a requested name.

    Tries an exact case-insensitive match, then substring, then a
    whitespace-insensitive substring match. Only '.app' entries count.

    Args:
        query: Requested application name (without suffix).
        bundle_names: Directory entry names.

    Returns:
        The matching entry name, or None.
    """
    bundles = [n for n in bundle_names if n.endswith(".app")]
    lowered = query.lower()
    exact = f"{lowered}.app"
    for name in bundles:
        if name.lower() == exact:
            return name
    for name in bundles:
        if lowered in name.lower():
            return name
    compact = strip_whitespace(query)
    for name in bundles:
        if compact and compact in name.lower():
            return name
    return None
