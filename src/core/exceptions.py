from __future__ import annotations

from collections.abc import Iterable


class HealthCheckError(Exception):
    """Base class for failures of a whole health evaluation."""


class ProbeTimeoutError(HealthCheckError):
    """Raised when probes are still pending once the deadline has passed."""

    def __init__(self, pending: Iterable[str], timeout: float) -> None:
        self.pending = sorted(pending)
        self.timeout = timeout
        super().__init__(
            f"Probes did not finish within {timeout:.2f}s: {', '.join(self.pending)}"
        )
