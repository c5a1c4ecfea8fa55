"""Long-lived state shared by the parts of one application's reconciliation."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional, Tuple

from .env import EnvCache
from .resources import ResourceCache

_SOON_DELAY_SEC = 5
_MAX_SEQUENCE = 2**63 - 1


class LoopContext:
    """Mostly static data for one managed application, plus requeue bookkeeping."""

    def __init__(
        self,
        app_name: str,
        app_namespace: str,
        log: Optional[logging.Logger] = None,
        clients: Any = None,
        testing: Any = None,
        features: Any = None,
    ) -> None:
        self.app_name = app_name
        self.app_namespace = app_namespace
        self.log = log if log is not None else logging.getLogger(__name__)
        self.clients = clients
        self.testing = testing
        self.features = features
        self.attempts = 0
        self.resource_cache = ResourceCache()
        self.env_cache = EnvCache(self.log)
        self._requeue = False
        self._requeue_delay = timedelta(0)
        self._reconcile_sequence = 0

    @property
    def reconcile_sequence(self) -> int:
        """Number of reconciliations finalized so far."""
        return self._reconcile_sequence

    def set_requeue_now(self) -> None:
        self.set_requeue_delay_sec(0)

    def set_requeue_delay_soon(self) -> None:
        self.set_requeue_delay_sec(_SOON_DELAY_SEC)

    def set_requeue_delay_sec(self, delay: int) -> None:
        """Request a requeue; the shortest delay requested in a cycle wins."""
        if delay < 0:
            raise ValueError(f"Requeue delay must not be negative, got {delay}.")
        self.log.debug("set_requeue_delay_sec called with %s", delay)
        requested = timedelta(seconds=delay)
        if not self._requeue or requested < self._requeue_delay:
            self._requeue_delay = requested
            self._requeue = True

    def finalize(self) -> Tuple[bool, timedelta]:
        """Return the requeue request of this cycle and reset it for the next one."""
        try:
            if self._reconcile_sequence == _MAX_SEQUENCE:
                raise OverflowError("Reconcile sequence counter overflow.")
            self._reconcile_sequence += 1
            return self._requeue, self._requeue_delay
        finally:
            self._requeue = False
            self._requeue_delay = timedelta(0)