"""A per-reconciliation cache of cluster resources and their pending patches."""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

RC_KEY_SPEC = "SPEC"
RC_KEY_STATUS = "STATUS"
RC_KEY_DEPLOYMENT = "DEPLOYMENT"
RC_KEY_SERVICE = "SERVICE"
RC_KEY_INGRESS = "INGRESS"
RC_KEY_NETWORK_POLICY = "NETWORK_POLICY"
RC_KEY_ROUTE_OCP = "ROUTE_OCP"
RC_KEY_POD_DISRUPTION_BUDGET_V1BETA1 = "POD_DISRUPTION_BUDGET_V1BETA1"
RC_KEY_POD_DISRUPTION_BUDGET_V1 = "POD_DISRUPTION_BUDGET_V1"

# Name of a resource that has not been created on the cluster yet.
RC_NOT_CREATED_NAME_EMPTY = ""

# Must return a modified copy of the value, never the original.
PatchFunction = Callable[[Any], Any]


class ResourceCacheEntry:
    """A cached resource together with the value it had when it was loaded."""

    def __init__(self, name: str, value: Any) -> None:
        self.name = name
        self.value = value
        self.original_value = value
        self.has_changed = False

    def apply_patch(self, pf: PatchFunction) -> None:
        """Replace the value with the result of ``pf`` and mark the entry changed."""
        self.value = pf(self.value)
        self.has_changed = True

    def reset_has_changed(self) -> None:
        self.has_changed = False

    def __repr__(self) -> str:
        return (
            f"ResourceCacheEntry(name={self.name!r}, value={self.value!r}, "
            f"has_changed={self.has_changed})"
        )


class ResourceCache:
    """Keyed store that lets control functions share and patch resources."""

    def __init__(self) -> None:
        self._cache: Dict[str, ResourceCacheEntry] = {}

    def get(self, key: str) -> Optional[ResourceCacheEntry]:
        """Return the entry under ``key`` or ``None`` when there is none."""
        return self._cache.get(key)

    def set(self, key: str, value: ResourceCacheEntry) -> None:
        self._cache[key] = value

    def remove(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache = {}

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)