from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from openmods.output.console import ConsoleProtocol, Style
from openmods.services.publisher import PublishOutcome


@dataclass(frozen=True, slots=True)
class EndpointDiagnostic:
    relay: str
    status: str
    attempts: int
    elapsed: float
    detail: str


@dataclass(frozen=True, slots=True)
class PublishSummary:
    success_count: int
    failure_count: int
    diagnostics: tuple[EndpointDiagnostic, ...]

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count

    @property
    def any_failed(self) -> bool:
        return self.failure_count > 0

    @property
    def all_failed(self) -> bool:
        """True when relays were tried and none accepted the event."""
        return self.total > 0 and self.success_count == 0


def summarize(outcomes: Sequence[PublishOutcome]) -> PublishSummary:
    diagnostics = tuple(
        EndpointDiagnostic(
            relay=o.relay,
            status=o.status,
            attempts=o.attempts,
            elapsed=o.elapsed,
            detail="" if o.ok else (o.error or "unknown error"),
        )
        for o in outcomes
    )
    successes = sum(1 for o in outcomes if o.ok)
    return PublishSummary(
        success_count=successes,
        failure_count=len(outcomes) - successes,
        diagnostics=diagnostics,
    )


def render_summary(summary: PublishSummary, console: ConsoleProtocol, *, event_id: str, label: str) -> None:
    if summary.success_count:
        console.success(f"Published {label} event {event_id} to {summary.success_count} relay(s).")
    if summary.failure_count:
        console.warning(f"Failed to publish to {summary.failure_count} relay(s).")
    for diag in summary.diagnostics:
        plural = "attempt" if diag.attempts == 1 else "attempts"
        line = f"  {diag.relay}: {diag.status} after {diag.attempts} {plural} in {diag.elapsed:.2f}s"
        if diag.detail:
            line += f" ({diag.detail})"
        console.print(line, Style.DEFAULT if diag.status == "ok" else Style.WARNING)
