"""Process-wide quota backoff for the meal proposer."""

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field

_logger = logging.getLogger(__name__)

_RETRY_DELAY_PATTERNS = (
    re.compile(r"retryDelay\"?\s*:\s*\"?(\d+(?:\.\d+)?)s", re.IGNORECASE),
    re.compile(r"try again in\s+(\d+(?:\.\d+)?)\s*s\b", re.IGNORECASE),
    re.compile(r"retry after\s+(\d+(?:\.\d+)?)\s*(?:s|seconds)\b", re.IGNORECASE),
)
_QUOTA_MARKERS = ("quota", "429", "rate limit", "resource_exhausted")


@dataclass
class QuotaBackoff:
    """Shared gate that blocks proposer calls after a quota signal.

    One instance is shared by every planning session. ``try_acquire`` never
    waits: while the window is open it returns False and callers fail fast.
    """

    default_seconds: float = 60
    min_seconds: float = 10
    clock: Callable[[], float] = time.monotonic
    _blocked_until: float = field(default=0.0, init=False)

    def try_acquire(self) -> bool:
        """Return True when a proposer call may proceed."""
        return self.clock() >= self._blocked_until

    def trip(self, seconds: float | None = None) -> float:
        """Open a backoff window and return its length in seconds."""
        window = max(self.min_seconds, seconds or self.default_seconds)
        self._blocked_until = max(self._blocked_until, self.clock() + window)
        _logger.warning("Proposer quota backoff for %.0fs", window)
        return window

    @property
    def remaining_seconds(self) -> float:
        """Seconds left in the current backoff window."""
        return max(0.0, self._blocked_until - self.clock())


def retry_delay_from_error(exc: BaseException) -> float | None:
    """Extract a retry delay from an error's headers or message."""
    response = getattr(exc, "response", None)
    headers = getattr(response, "headers", None)
    if headers is not None:
        raw = headers.get("retry-after")
        if raw:
            try:
                return float(raw)
            except ValueError:
                pass
    text = str(exc)
    for pattern in _RETRY_DELAY_PATTERNS:
        match = pattern.search(text)
        if match:
            return float(match.group(1))
    return None


def looks_like_quota_error(exc: BaseException) -> bool:
    """Heuristic for quota or rate-limit failures from any proposer."""
    if getattr(exc, "status_code", None) == 429:  # noqa: PLR2004
        return True
    text = str(exc).lower()
    return any(marker in text for marker in _QUOTA_MARKERS)
