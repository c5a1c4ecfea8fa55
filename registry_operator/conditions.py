"""Status conditions reported on the managed resource, with prioritised transitions."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ConditionType(str, Enum):
    READY = "Ready"
    CONFIGURATION_ERROR = "ConfigurationError"
    APPLICATION_NOT_HEALTHY = "ApplicationNotHealthy"


class ConditionStatus(str, Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ReadyConditionReason(str, Enum):
    """Reasons in decreasing order of priority."""

    ERROR = "Error"
    INITIALIZING = "Initializing"
    RECONCILING = "Reconciling"
    RECONCILED = "Reconciled"


class ConfigurationErrorConditionReason(str, Enum):
    """Reasons in decreasing order of priority."""

    INVALID_PERSISTENCE = "InvalidPersistenceOption"
    REQUIRED = "MissingRequiredOption"
    INVALID = "InvalidValue"


class ApplicationNotHealthyConditionReason(str, Enum):
    """Reasons in decreasing order of priority."""

    READINESS = "ReadinessProbeFailed"
    LIVENESS = "LivenessProbeFailed"


@dataclass
class ConditionData:
    """One condition as it appears in the resource status."""

    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: Optional[datetime] = None


class Condition:
    """A condition that is rebuilt every loop and remembers its previous state."""

    def __init__(self, ctype: ConditionType) -> None:
        self.ctype = ctype
        self.data: Optional[ConditionData] = None
        self.previous_data: Optional[ConditionData] = None
        self.reset()

    def is_active(self) -> bool:
        """Whether the condition is shown in the status."""
        return self.data.status == ConditionStatus.TRUE

    def reset(self) -> None:
        """Clear the current state, keeping it as the previous one."""
        if not self.ctype:
            raise ValueError("Condition type is empty.")
        type_name = ConditionType(self.ctype).value
        if self.data is None:
            self.data = ConditionData(type=type_name)
        self.previous_data = self.data
        self.data = ConditionData(
            type=type_name,
            last_transition_time=self.previous_data.last_transition_time,
        )

    def _set(self, status: ConditionStatus, reason: str, message: str) -> None:
        self.data.status = status
        self.data.reason = reason
        self.data.message = message


class ReadyCondition(Condition):
    """Overall readiness; always shown."""

    def __init__(self) -> None:
        super().__init__(ConditionType.READY)

    def is_active(self) -> bool:
        return True

    def transition_error(self) -> None:
        self._set(
            ConditionStatus.FALSE,
            ReadyConditionReason.ERROR.value,
            "An error occurred in the operator or the application. "
            "Please check other conditions and logs.",
        )

    def transition_initializing(self) -> None:
        if self.data.reason != ReadyConditionReason.ERROR.value:
            self._set(ConditionStatus.FALSE, ReadyConditionReason.INITIALIZING.value, "")

    def transition_reconciling(self) -> None:
        if self.data.reason not in (
            ReadyConditionReason.ERROR.value,
            ReadyConditionReason.INITIALIZING.value,
        ):
            self._set(ConditionStatus.FALSE, ReadyConditionReason.RECONCILING.value, "")

    def transition_reconciled(self) -> None:
        if self.data.reason not in (
            ReadyConditionReason.ERROR.value,
            ReadyConditionReason.INITIALIZING.value,
            ReadyConditionReason.RECONCILING.value,
        ):
            self._set(ConditionStatus.TRUE, ReadyConditionReason.RECONCILED.value, "")


class ConfigurationErrorCondition(Condition):
    """Problems with the user's configuration."""

    def __init__(self) -> None:
        super().__init__(ConditionType.CONFIGURATION_ERROR)

    def transition_invalid_persistence(self, current_value: str) -> None:
        self._set(
            ConditionStatus.TRUE,
            ConfigurationErrorConditionReason.INVALID_PERSISTENCE.value,
            "Invalid persistence option " + current_value
            + " . Supported: <none> (or mem), sql, kafkasql",
        )

    def transition_required(self, option_path: str) -> None:
        if self.data.reason != ConfigurationErrorConditionReason.INVALID_PERSISTENCE.value:
            self._set(
                ConditionStatus.TRUE,
                ConfigurationErrorConditionReason.REQUIRED.value,
                "Required configuration option missing: " + option_path,
            )

    def transition_invalid(self, details: str, option_path: str) -> None:
        if self.data.reason not in (
            ConfigurationErrorConditionReason.INVALID_PERSISTENCE.value,
            ConfigurationErrorConditionReason.REQUIRED.value,
        ):
            self._set(
                ConditionStatus.TRUE,
                ConfigurationErrorConditionReason.INVALID.value,
                "Invalid value for configuration option " + option_path + ": " + details,
            )


class ApplicationNotHealthyCondition(Condition):
    """Failing health probes of the application."""

    def __init__(self) -> None:
        super().__init__(ConditionType.APPLICATION_NOT_HEALTHY)

    def transition_not_ready(self) -> None:
        self._set(
            ConditionStatus.TRUE,
            ApplicationNotHealthyConditionReason.READINESS.value,
            "Readiness probe is failing. Please check application logs.",
        )

    def transition_not_live(self) -> None:
        if self.data.reason != ApplicationNotHealthyConditionReason.READINESS.value:
            self._set(
                ConditionStatus.TRUE,
                ApplicationNotHealthyConditionReason.LIVENESS.value,
                "Liveness probe is failing. Please check application logs.",
            )

    def transition_healthy(self) -> None:
        if self.data.reason not in (
            ApplicationNotHealthyConditionReason.READINESS.value,
            ApplicationNotHealthyConditionReason.LIVENESS.value,
        ):
            self._set(ConditionStatus.FALSE, "", "")


class ConditionManager:
    """Holds the conditions and computes their reported form after each loop."""

    def __init__(self, ctx: Any) -> None:
        self._ctx = ctx
        self.conditions: Dict[ConditionType, Condition] = {
            ConditionType.READY: ReadyCondition(),
            ConditionType.CONFIGURATION_ERROR: ConfigurationErrorCondition(),
            ConditionType.APPLICATION_NOT_HEALTHY: ApplicationNotHealthyCondition(),
        }

    @property
    def ready(self) -> ReadyCondition:
        return self.conditions[ConditionType.READY]

    @property
    def configuration_error(self) -> ConfigurationErrorCondition:
        return self.conditions[ConditionType.CONFIGURATION_ERROR]

    @property
    def application_not_healthy(self) -> ApplicationNotHealthyCondition:
        return self.conditions[ConditionType.APPLICATION_NOT_HEALTHY]

    def after_loop(self) -> None:
        """Mark Ready as reconciling (and requeue) if the loop had to act, else reconciled."""
        # More than one attempt, because some control functions always act once.
        if self._ctx.attempts > 1:
            self.ready.transition_reconciling()
            self._ctx.set_requeue_delay_soon()
        else:
            self.ready.transition_reconciled()

    def execute(self) -> List[ConditionData]:
        """Return the active conditions and reset all of them for the next loop."""
        result: List[ConditionData] = []
        for condition in self.conditions.values():
            if condition.is_active():
                data = condition.data
                previous = condition.previous_data
                if (
                    data.last_transition_time is None
                    or data.status != previous.status
                    or data.reason != previous.reason
                    or data.message != previous.message
                ):
                    data.last_transition_time = datetime.now(timezone.utc)
                result.append(dataclasses.replace(data))
            condition.reset()
        return result