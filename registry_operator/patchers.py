"""Reload and write-back of all cached resources: Kubernetes and OpenShift."""

from __future__ import annotations

from typing import Any, Mapping

from .kube_patcher import KubePatcher
from .resources import RC_KEY_ROUTE_OCP, RC_KEY_SPEC, ResourceCacheEntry


def _field(value: Any, *path: str) -> Any:
    """Follow ``path`` through mappings or attributes; ``None`` if any step is missing."""
    current = value
    for step in path:
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(step)
        else:
            current = getattr(current, step, None)
    return current


class OCPPatcher:
    """Keeps the cached OpenShift route in sync with the cluster.

    ``ctx.clients.ocp`` provides ``get_route(namespace, name)`` and
    ``get_routes(namespace, label_selector)``; routes are resource documents.
    """

    def __init__(self, ctx: Any) -> None:
        self._ctx = ctx

    def _reload_route(self) -> None:
        ctx = self._ctx
        cache = ctx.resource_cache
        ocp = ctx.clients.ocp
        entry = cache.get(RC_KEY_ROUTE_OCP)
        if entry is not None:
            try:
                route = ocp.get_route(ctx.app_namespace, entry.name)
            except Exception as exc:  # the client reports any API failure this way
                ctx.log.warning(
                    "Resource not found. (May have been deleted). name=%s error=%s",
                    entry.name, exc,
                )
                cache.remove(RC_KEY_ROUTE_OCP)
                ctx.set_requeue_now()
                return
            cache.set(
                RC_KEY_ROUTE_OCP,
                ResourceCacheEntry(_field(route, "metadata", "name") or "", route),
            )
            return

        # No route known yet: look for an existing one serving the requested host.
        try:
            routes = ocp.get_routes(ctx.app_namespace, "app=" + ctx.app_name)
        except Exception:  # the client reports any API failure this way
            return
        existing_host = ""
        spec_entry = cache.get(RC_KEY_SPEC)
        if spec_entry is not None:
            existing_host = _field(spec_entry.value, "spec", "deployment", "host") or ""
        for route in routes:
            deleted = _field(route, "metadata", "deletionTimestamp") is not None
            host = _field(route, "spec", "host") or ""
            if not deleted and host == existing_host:
                cache.set(
                    RC_KEY_ROUTE_OCP,
                    ResourceCacheEntry(_field(route, "metadata", "name") or "", route),
                )

    def reload(self) -> None:
        """Refresh the cached route from the cluster."""
        self._reload_route()

    def execute(self) -> None:
        """Routes are written by their control functions; nothing is submitted here."""
        return None


class Patchers:
    """Runs the Kubernetes and OpenShift patchers together."""

    def __init__(self, ctx: Any, factory_kube: Any, status: Any) -> None:
        self.kube_patcher = KubePatcher(ctx, factory_kube, status)
        self.ocp_patcher = OCPPatcher(ctx)

    def reload(self) -> None:
        self.kube_patcher.reload()
        self.ocp_patcher.reload()

    def execute(self) -> None:
        self.kube_patcher.execute()
        self.ocp_patcher.execute()