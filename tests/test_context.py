from datetime import timedelta

import pytest

from registry_operator.context import LoopContext
from registry_operator.env import EnvCache, new_simple_builder
from registry_operator.resources import ResourceCache, ResourceCacheEntry


@pytest.fixture
def ctx():
    return LoopContext("test", "test-namespace")


def test_static_data_is_kept():
    clients = object()
    context = LoopContext("app", "ns", None, clients, "testing", "features")
    assert context.app_name == "app"
    assert context.app_namespace == "ns"
    assert context.clients is clients
    assert context.testing == "testing"
    assert context.features == "features"


def test_no_requeue_by_default(ctx):
    assert ctx.finalize() == (False, timedelta(0))


def test_requeue_delay_is_reported_once(ctx):
    ctx.set_requeue_delay_sec(10)
    assert ctx.finalize() == (True, timedelta(seconds=10))
    assert ctx.finalize() == (False, timedelta(0))


@pytest.mark.parametrize("first,second", [(10, 3), (3, 10)])
def test_shortest_delay_wins(ctx, first, second):
    ctx.set_requeue_delay_sec(first)
    ctx.set_requeue_delay_sec(second)
    requeue, delay = ctx.finalize()
    assert requeue is True
    assert delay == timedelta(seconds=min(first, second))


def test_requeue_now_overrides_soon(ctx):
    ctx.set_requeue_delay_soon()
    ctx.set_requeue_now()
    assert ctx.finalize() == (True, timedelta(0))


def test_requeue_soon_delay(ctx):
    ctx.set_requeue_delay_soon()
    assert ctx.finalize() == (True, timedelta(seconds=5))


def test_negative_delay_rejected(ctx):
    with pytest.raises(ValueError):
        ctx.set_requeue_delay_sec(-1)


def test_reconcile_sequence_counts_finalizations(ctx):
    assert ctx.reconcile_sequence == 0
    for _ in range(3):
        ctx.finalize()
    assert ctx.reconcile_sequence == 3


def test_attempts_roundtrip(ctx):
    ctx.attempts = 7
    assert ctx.attempts == 7


def test_caches_are_usable(ctx):
    assert isinstance(ctx.resource_cache, ResourceCache)
    assert isinstance(ctx.env_cache, EnvCache)
    ctx.resource_cache.set("SPEC", ResourceCacheEntry("test", {"a": 1}))
    assert ctx.resource_cache.get("SPEC").value == {"a": 1}
    ctx.env_cache.set(new_simple_builder("A", "B").build())
    assert [v.name for v in ctx.env_cache.get_sorted()] == ["A"]


def test_caches_are_per_context():
    a = LoopContext("a", "ns")
    b = LoopContext("b", "ns")
    a.resource_cache.set("SPEC", ResourceCacheEntry("a", 1))
    assert b.resource_cache.get("SPEC") is None