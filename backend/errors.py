"""Error taxonomy for route generation and scoring."""

from dataclasses import dataclass, field
from typing import Literal

FailureKind = Literal["no-route", "service", "similar"]


class RouteServiceError(Exception):
    """Base class for every error raised by the route core."""


class InvalidRequest(RouteServiceError):
    """Malformed input, rejected before any external call."""


class Unwalkable(RouteServiceError):
    """A probed point could not be confirmed walkable."""

    def __init__(self, point, tried: int = 0):
        self.point = point
        self.tried = tried
        super().__init__(f"No walkable way near {point} after {tried} probes")


class ExternalServiceError(RouteServiceError):
    """Non-retryable failure from a collaborator (network, quota, 5xx, timeout)."""

    def __init__(self, service: str, detail: str):
        self.service = service
        self.detail = detail
        super().__init__(f"{service}: {detail}")


class NoRouteFound(RouteServiceError):
    """The assembler spent its attempt budget without an in-tolerance route."""

    def __init__(self, attempts: int, last_error: str | None = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"No route found after {attempts} attempts (last error: {last_error})")


@dataclass
class SlotDiagnostics:
    slot: int
    attempts: int = 0
    rejected_similar: int = 0
    last_kind: FailureKind | None = None
    last_error: str | None = None
    errors: list[str] = field(default_factory=list)

    def record(self, kind: FailureKind, message: str) -> None:
        self.last_kind = kind
        self.last_error = message
        self.errors.append(f"{kind}: {message}")


class RouteGenerationFailed(RouteServiceError):
    """No candidate slot produced a route."""

    def __init__(self, slots: list[SlotDiagnostics]):
        self.slots = slots
        super().__init__(f"Could not generate any valid routes ({len(slots)} slots tried)")

    @property
    def service_failure(self) -> bool:
        """True when every slot ended on a collaborator failure."""
        return bool(self.slots) and all(s.last_kind == "service" for s in self.slots)
