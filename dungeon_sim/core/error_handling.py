"""
Centralized error handling for the combat core.

Nothing that goes wrong inside a combat is allowed to escape run_combat().
Instead each problem is classified, logged through catchery with its context,
and kept as a CombatIncident so the final result tells what was skipped or
forced.
"""

from typing import Any

from catchery import log_critical, log_debug, log_warning
from pydantic import BaseModel, Field

from dungeon_sim.core.constants import NiceEnum


class IncidentKind(NiceEnum):
    """Classification of the problems the combat loop recovers from."""

    # Action target missing or already dead: the turn is skipped silently.
    VALIDATION = "validation"
    # Actor cannot afford the action: the turn becomes a no-op.
    RESOURCE = "resource"
    # External weapon lookup failed: the default weapon is used.
    INTEGRATION = "integration"
    # Safety ceiling reached: a stalemate defeat is forced.
    TERMINATION = "termination"
    # Unexpected exception inside a turn: combat ends as a forced defeat.
    INTERNAL = "internal"


class CombatIncident(BaseModel):
    """A recovered problem, kept for auditing."""

    kind: IncidentKind = Field(
        description="The class of the problem.",
    )
    message: str = Field(
        description="Human readable description.",
    )
    turn_number: int | None = Field(
        default=None,
        description="Main-loop turn number, if the incident happened in one.",
    )
    context: dict[str, str] = Field(
        default_factory=dict,
        description="Additional context, stringified.",
    )


class IncidentLog:
    """Records incidents and logs them at a severity matching their kind."""

    def __init__(self) -> None:
        self.incidents: list[CombatIncident] = []

    def record(
        self,
        kind: IncidentKind,
        message: str,
        context: dict[str, Any] | None = None,
        exception: Exception | None = None,
        turn_number: int | None = None,
    ) -> CombatIncident:
        """
        Records a new incident.

        Args:
            kind (IncidentKind):
                The class of the problem.
            message (str):
                Human readable description.
            context (dict[str, Any] | None):
                Optional context dictionary.
            exception (Exception | None):
                The exception that caused the incident, if any.
            turn_number (int | None):
                The main-loop turn number, if any.

        Returns:
            CombatIncident:
                The recorded incident.

        """
        safe_context = {key: str(value) for key, value in (context or {}).items()}
        if exception is not None:
            safe_context["error"] = f"{type(exception).__name__}: {exception}"
        if turn_number is not None:
            safe_context["turn_number"] = str(turn_number)

        if kind in (IncidentKind.VALIDATION, IncidentKind.RESOURCE):
            log_debug(message, safe_context)
        elif kind is IncidentKind.INTERNAL:
            log_critical(message, safe_context)
        else:
            log_warning(message, safe_context)

        incident = CombatIncident(
            kind=kind,
            message=message,
            turn_number=turn_number,
            context=safe_context,
        )
        self.incidents.append(incident)
        return incident

    def of_kind(self, kind: IncidentKind) -> list[CombatIncident]:
        """Returns the incidents of the given kind."""
        return [incident for incident in self.incidents if incident.kind is kind]

    def __len__(self) -> int:
        return len(self.incidents)
