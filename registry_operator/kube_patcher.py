"""Reloads the Kubernetes resources of an application and writes back their changes."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Mapping

from .patching import patch_generic
from .resources import (
    RC_KEY_DEPLOYMENT,
    RC_KEY_INGRESS,
    RC_KEY_NETWORK_POLICY,
    RC_KEY_POD_DISRUPTION_BUDGET_V1,
    RC_KEY_POD_DISRUPTION_BUDGET_V1BETA1,
    RC_KEY_SERVICE,
    RC_KEY_SPEC,
    RC_KEY_STATUS,
    ResourceCacheEntry,
)


def _name_of(value: Any) -> str:
    """Return the cluster name of a resource document or object."""
    if isinstance(value, Mapping):
        return (value.get("metadata") or {}).get("name", "")
    return getattr(value, "name", "")


def _status_of(registry: Any) -> Any:
    if isinstance(registry, Mapping):
        return registry.get("status")
    return getattr(registry, "status")


def _unsupported_create(owner: Any, namespace: str, value: Any) -> Any:
    raise NotImplementedError("unsupported operation")


@dataclass(frozen=True)
class _KubeKind:
    """How one cached resource kind maps onto the Kubernetes client."""

    key: str
    type_name: str
    client_suffix: str


_KINDS = (
    _KubeKind(RC_KEY_DEPLOYMENT, "apps.Deployment", "deployment"),
    _KubeKind(RC_KEY_SERVICE, "core.Service", "service"),
    _KubeKind(RC_KEY_INGRESS, "networking.Ingress", "ingress"),
    _KubeKind(RC_KEY_NETWORK_POLICY, "networking.NetworkPolicy", "network_policy"),
    _KubeKind(
        RC_KEY_POD_DISRUPTION_BUDGET_V1BETA1,
        "policy.PodDisruptionBudget",
        "pod_disruption_budget_v1beta1",
    ),
    _KubeKind(
        RC_KEY_POD_DISRUPTION_BUDGET_V1,
        "policy.PodDisruptionBudget",
        "pod_disruption_budget_v1",
    ),
)


class KubePatcher:
    """Keeps the cached Kubernetes resources in sync with the cluster.

    ``ctx.clients.kube`` provides ``get_<kind>(namespace, name)``,
    ``create_<kind>(owner, namespace, value)`` and
    ``patch_<kind>(namespace, name, patch)``; ``ctx.clients.crd`` provides
    ``patch_apicurio_registry`` and ``patch_apicurio_registry_status``.
    """

    def __init__(self, ctx: Any, factory_kube: Any, status: Any) -> None:
        self._ctx = ctx
        self._factory_kube = factory_kube
        self._status = status

    def _reload_registry_status(self) -> None:
        cache = self._ctx.resource_cache
        spec_entry = cache.get(RC_KEY_SPEC)
        if spec_entry is None:
            self._ctx.log.warning(
                "Resource not found. (May have been deleted). name=%s error=%s",
                self._ctx.app_name,
                "Could not reload ApicurioRegistryStatus. "
                "ApicurioRegistry resource not found.",
            )
            cache.remove(RC_KEY_SPEC)
            cache.remove(RC_KEY_STATUS)
            self._ctx.set_requeue_now()
            return
        status = copy.deepcopy(_status_of(spec_entry.value))
        cache.set(RC_KEY_STATUS, ResourceCacheEntry(spec_entry.name, status))

    def _reload_kind(self, kind: _KubeKind) -> None:
        cache = self._ctx.resource_cache
        entry = cache.get(kind.key)
        if entry is None:
            return
        getter = getattr(self._ctx.clients.kube, "get_" + kind.client_suffix)
        try:
            resource = getter(self._ctx.app_namespace, entry.name)
        except Exception as exc:  # the client reports any API failure this way
            self._ctx.log.warning(
                "Resource not found. (May have been deleted). name=%s error=%s",
                entry.name, exc,
            )
            cache.remove(kind.key)
            self._ctx.set_requeue_now()
            return
        cache.set(kind.key, ResourceCacheEntry(_name_of(resource), resource))

    def _patch_registry(self) -> None:
        crd = self._ctx.clients.crd
        patch_generic(
            self._ctx,
            RC_KEY_SPEC,
            "ar.ApicurioRegistry",
            _unsupported_create,
            crd.patch_apicurio_registry,
            _name_of,
        )

    def _patch_registry_status(self) -> None:
        crd = self._ctx.clients.crd
        patch_generic(
            self._ctx,
            RC_KEY_STATUS,
            "ar.ApicurioRegistryStatus",
            _unsupported_create,
            crd.patch_apicurio_registry_status,
            lambda value: self._ctx.app_name,
        )

    def _patch_kind(self, kind: _KubeKind) -> None:
        kube = self._ctx.clients.kube
        patch_generic(
            self._ctx,
            kind.key,
            kind.type_name,
            getattr(kube, "create_" + kind.client_suffix),
            getattr(kube, "patch_" + kind.client_suffix),
            _name_of,
        )

    def reload(self) -> None:
        """Refresh the cached status and resources from the cluster."""
        self._reload_registry_status()
        for kind in _KINDS:
            self._reload_kind(kind)

    def execute(self) -> None:
        """Create missing resources and submit pending changes."""
        self._patch_registry()
        self._patch_registry_status()
        for kind in _KINDS:
            self._patch_kind(kind)