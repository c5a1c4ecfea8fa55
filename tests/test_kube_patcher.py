from dataclasses import dataclass, field
from datetime import timedelta

import pytest

from registry_operator.kube_patcher import KubePatcher
from registry_operator.context import LoopContext
from registry_operator.resources import (
    RC_KEY_DEPLOYMENT,
    RC_KEY_SERVICE,
    RC_KEY_SPEC,
    RC_KEY_STATUS,
    ResourceCacheEntry,
)
from registry_operator.status import RegistryStatus


@dataclass
class Registry:
    name: str
    status: RegistryStatus = field(default_factory=RegistryStatus)


class FakeKube:
    """Records calls; resources are looked up by (kind, name)."""

    def __init__(self):
        self.resources = {}
        self.calls = []

    def __getattr__(self, attr):
        action, _, kind = attr.partition("_")
        if action == "get":
            def get(namespace, name):
                self.calls.append(("get", kind, name))
                try:
                    return self.resources[(kind, name)]
                except KeyError:
                    raise LookupError(name) from None
            return get
        if action == "create":
            def create(owner, namespace, value):
                self.calls.append(("create", kind, owner.name))
                return value
            return create
        if action == "patch":
            def patch(namespace, name, data):
                self.calls.append(("patch", kind, name, data))
                return self.resources.get((kind, name), {"metadata": {"name": name}})
            return patch
        raise AttributeError(attr)


class FakeCrd:
    def __init__(self):
        self.status_patches = []

    def patch_apicurio_registry(self, namespace, name, data):
        raise AssertionError("registry should not be patched")

    def patch_apicurio_registry_status(self, namespace, name, data):
        self.status_patches.append((namespace, name, data))
        return RegistryStatus(host=data.get("host", ""))


class Clients:
    def __init__(self):
        self.kube = FakeKube()
        self.crd = FakeCrd()


@pytest.fixture
def ctx():
    return LoopContext("app", "ns", clients=Clients())


def test_reload_without_spec_clears_and_requeues(ctx):
    ctx.resource_cache.set(RC_KEY_STATUS, ResourceCacheEntry("app", RegistryStatus()))
    KubePatcher(ctx, None, None).reload()
    assert ctx.resource_cache.get(RC_KEY_STATUS) is None
    assert ctx.finalize() == (True, timedelta(0))


def test_reload_copies_status_from_spec(ctx):
    registry = Registry("app", RegistryStatus(host="h"))
    ctx.resource_cache.set(RC_KEY_SPEC, ResourceCacheEntry("app", registry))
    KubePatcher(ctx, None, None).reload()
    entry = ctx.resource_cache.get(RC_KEY_STATUS)
    assert entry.name == "app"
    assert entry.value == registry.status
    assert entry.value is not registry.status


def test_reload_refreshes_deployment(ctx):
    fresh = {"metadata": {"name": "app-deployment"}, "spec": {"replicas": 3}}
    ctx.clients.kube.resources[("deployment", "app-deployment")] = fresh
    ctx.resource_cache.set(RC_KEY_SPEC, ResourceCacheEntry("app", Registry("app")))
    ctx.resource_cache.set(
        RC_KEY_DEPLOYMENT, ResourceCacheEntry("app-deployment", {"spec": {"replicas": 1}})
    )
    KubePatcher(ctx, None, None).reload()
    assert ctx.resource_cache.get(RC_KEY_DEPLOYMENT).value == fresh


def test_reload_missing_resource_removes_and_requeues(ctx):
    ctx.resource_cache.set(RC_KEY_SPEC, ResourceCacheEntry("app", Registry("app")))
    ctx.resource_cache.set(RC_KEY_SERVICE, ResourceCacheEntry("gone", {}))
    KubePatcher(ctx, None, None).reload()
    assert ctx.resource_cache.get(RC_KEY_SERVICE) is None
    assert ctx.finalize()[0] is True


def test_execute_creates_unnamed_deployment(ctx):
    ctx.resource_cache.set(RC_KEY_SPEC, ResourceCacheEntry("app", Registry("app")))
    deployment = {"metadata": {"name": "app-deployment"}, "spec": {}}
    ctx.resource_cache.set(RC_KEY_DEPLOYMENT, ResourceCacheEntry("", deployment))
    KubePatcher(ctx, None, None).execute()
    assert ("create", "deployment", "app") in ctx.clients.kube.calls
    assert ctx.resource_cache.get(RC_KEY_DEPLOYMENT).name == "app-deployment"


def test_execute_patches_changed_service(ctx):
    ctx.resource_cache.set(RC_KEY_SPEC, ResourceCacheEntry("app", Registry("app")))
    service = {"metadata": {"name": "app-service"}, "spec": {"selector": {"app": "app"}}}
    entry = ResourceCacheEntry("app-service", service)
    entry.apply_patch(lambda v: {**v, "spec": {"selector": {"app": "other"}}})
    ctx.resource_cache.set(RC_KEY_SERVICE, entry)
    KubePatcher(ctx, None, None).execute()
    assert (
        "patch", "service", "app-service", {"spec": {"selector": {"app": "other"}}}
    ) in ctx.clients.kube.calls


def test_execute_patches_status(ctx):
    ctx.resource_cache.set(RC_KEY_SPEC, ResourceCacheEntry("app", Registry("app")))
    patcher = KubePatcher(ctx, None, None)
    patcher.reload()
    ctx.resource_cache.get(RC_KEY_STATUS).apply_patch(lambda v: RegistryStatus(host="h"))
    patcher.execute()
    assert ctx.clients.crd.status_patches == [("ns", "app", {"host": "h"})]
    assert ctx.resource_cache.get(RC_KEY_STATUS).value == RegistryStatus(host="h")