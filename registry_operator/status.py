"""Computes the status reported on the managed registry resource."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .conditions import ConditionData, ConditionManager
from .resources import RC_KEY_STATUS

CFG_STA_IMAGE = "CFG_STA_IMAGE"

CFG_STA_DEPLOYMENT_NAME = "CFG_STA_DEPLOYMENT_NAME"
CFG_STA_SERVICE_NAME = "CFG_STA_SERVICE_NAME"
CFG_STA_INGRESS_NAME = "CFG_STA_INGRESS_NAME"
CFG_STA_NETWORK_POLICY_NAME = "CFG_STA_NETWORK_POLICY_NAME"
CFG_STA_POD_DISRUPTION_BUDGET_NAME = "CFG_STA_POD_DISRUPTION_BUDGET_NAME"

CFG_STA_REPLICA_COUNT = "CFG_STA_REPLICA_COUNT"
CFG_STA_ROUTE = "CFG_STA_ROUTE"

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1

# Status keys holding resource names, with the kind reported for each, in order.
_MANAGED_RESOURCE_KEYS = (
    (CFG_STA_DEPLOYMENT_NAME, "Deployment"),
    (CFG_STA_SERVICE_NAME, "Service"),
    (CFG_STA_INGRESS_NAME, "Ingress"),
    (CFG_STA_NETWORK_POLICY_NAME, "NetworkPolicy"),
    (CFG_STA_POD_DISRUPTION_BUDGET_NAME, "PodDisruptionBudget"),
)


@dataclass
class ManagedResource:
    """A cluster resource the operator manages for the application."""

    kind: str
    namespace: str
    name: str


@dataclass
class RegistryStatus:
    """The status section of the managed registry resource."""

    host: str = ""
    conditions: List[ConditionData] = field(default_factory=list)
    managed_resources: List[ManagedResource] = field(default_factory=list)


class Status:
    """Collects status values during a loop and writes them to the cached status."""

    def __init__(self, ctx: Any, conditions: ConditionManager) -> None:
        self._ctx = ctx
        self._conditions = conditions
        self._config: Dict[str, str] = {}
        for key in (
            CFG_STA_IMAGE,
            CFG_STA_DEPLOYMENT_NAME,
            CFG_STA_SERVICE_NAME,
            CFG_STA_INGRESS_NAME,
            CFG_STA_NETWORK_POLICY_NAME,
            CFG_STA_POD_DISRUPTION_BUDGET_NAME,
            CFG_STA_REPLICA_COUNT,
            CFG_STA_ROUTE,
        ):
            self.set_config(key, "")

    def set_config(self, key: str, value: str) -> None:
        if key == "":
            raise ValueError("Status key is empty for value: " + value)
        self._config[key] = value

    def set_config_int(self, key: str, value: int) -> None:
        self.set_config(key, str(int(value)))

    def get_config(self, key: str) -> str:
        try:
            return self._config[key]
        except KeyError:
            raise KeyError(
                "Value that belongs to status key " + key + " not found."
            ) from None

    def get_config_int(self, key: str) -> int:
        """Return the value as a 32-bit integer; an unparsable value gives 0."""
        try:
            number = int(self.get_config(key), 10)
        except ValueError:
            return 0
        return max(_INT32_MIN, min(_INT32_MAX, number))

    def compute_status(self) -> None:
        """Patch the cached status with the host, conditions and managed resources."""
        entry = self._ctx.resource_cache.get(RC_KEY_STATUS)
        if entry is None:
            return

        def patch(value: RegistryStatus) -> RegistryStatus:
            status = copy.deepcopy(value)
            status.host = self.get_config(CFG_STA_ROUTE)
            status.conditions = self._conditions.execute()
            namespace = self._ctx.app_namespace
            status.managed_resources = [
                ManagedResource(kind=kind, namespace=namespace, name=self.get_config(key))
                for key, kind in _MANAGED_RESOURCE_KEYS
                if self.get_config(key) != ""
            ]
            return status

        entry.apply_patch(patch)