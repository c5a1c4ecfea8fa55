"""Services shared by the control functions of one application's loop."""

from __future__ import annotations

from typing import Any

from .conditions import ConditionManager
from .factory import KubeFactory, MonitoringFactory
from .patchers import Patchers
from .status import Status


class LoopServices:
    """Factories, conditions, status and patchers, wired around one loop context."""

    def __init__(self, ctx: Any) -> None:
        self.kube_factory = KubeFactory(ctx)
        self.monitoring_factory = MonitoringFactory(ctx, self.kube_factory)
        self.condition_manager = ConditionManager(ctx)
        self.status = Status(ctx, self.condition_manager)
        self.patchers = Patchers(ctx, self.kube_factory, self.status)

    def before_run(self) -> None:
        """Reload the cached resources before the control functions run."""
        self.patchers.reload()

    def after_run(self) -> None:
        """Settle conditions, compute the status and write back all changes."""
        self.condition_manager.after_loop()
        self.status.compute_status()
        self.patchers.execute()