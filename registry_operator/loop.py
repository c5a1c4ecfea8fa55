"""The control loop that runs control functions until the state stabilizes."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List


class StabilizationError(RuntimeError):
    """The control functions did not reach the desired state in time."""


class ControlFunction(ABC):
    """A component responsible for one part of the reconciliation."""

    @abstractmethod
    def sense(self) -> None:
        """Gather information from the environment."""

    @abstractmethod
    def compare(self) -> bool:
        """Return whether the measured state differs from the intended one."""

    @abstractmethod
    def respond(self) -> None:
        """Act to bring the system into the desired state."""

    @abstractmethod
    def describe(self) -> str:
        """Return a short description of this function."""

    @abstractmethod
    def cleanup(self) -> bool:
        """Release what this function created; return whether it is done.

        May be called again even after returning ``True``.
        """


class ControlLoop:
    """Runs control functions repeatedly until none of them has to act."""

    def __init__(self, ctx: Any, services: Any) -> None:
        self.ctx = ctx
        self.services = services
        self._control_functions: List[ControlFunction] = []

    @property
    def control_functions(self) -> List[ControlFunction]:
        return list(self._control_functions)

    def add_control_function(self, cf: ControlFunction) -> None:
        self._control_functions.append(cf)

    def run(self) -> None:
        """Run one reconciliation; raise :class:`StabilizationError` if it never settles."""
        self.services.before_run()
        log = self.ctx.log
        max_attempts = len(self._control_functions) * 2
        for attempt in range(max_attempts):
            log.info(
                "control loop executing attempt=%d maxAttempts=%d", attempt, max_attempts
            )
            self.ctx.attempts = attempt
            stabilized = True
            for cf in self._control_functions:
                description = cf.describe()
                log.debug("control function sense cf=%s", description)
                cf.sense()
                log.debug("control function compare cf=%s", description)
                if cf.compare():
                    log.info("control function respond cf=%s", description)
                    cf.respond()
                    stabilized = False
            if stabilized:
                log.info("control loop is stable")
                break
        else:
            raise StabilizationError(
                "Control loop stabilization limit exceeded. The control functions "
                "could not reach the desired state within a limited number of attempts."
            )
        self.services.after_run()

    def cleanup(self) -> bool:
        """Ask every control function to clean up, retrying; return whether all finished."""
        log = self.ctx.log
        app = self.ctx.app_name
        log.info(
            "ApicurioRegistry CR has been removed. Starting resource cleanup. app=%s", app
        )
        max_attempts = len(self._control_functions) * 2
        for _ in range(max_attempts):
            finished = True
            for cf in self._control_functions:
                if not cf.cleanup():
                    log.info("Control function requested cleanup retry. cf=%s", cf.describe())
                    finished = False
            if finished:
                log.info("Cleanup finished successfully. app=%s", app)
                return True
        log.warning(
            "Cleanup did not finish successfully. You may need to delete some of the "
            "resources manually. app=%s",
            app,
        )
        return False