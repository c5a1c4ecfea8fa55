from registry_operator.resources import (
    RC_KEY_DEPLOYMENT,
    RC_KEY_SPEC,
    RC_NOT_CREATED_NAME_EMPTY,
    ResourceCache,
    ResourceCacheEntry,
)


def test_new_entry_keeps_original_and_is_unchanged():
    value = {"a": 1}
    entry = ResourceCacheEntry("test", value)
    assert entry.name == "test"
    assert entry.value is value
    assert entry.original_value is value
    assert entry.has_changed is False


def test_apply_patch_changes_value_but_not_original():
    entry = ResourceCacheEntry("test", {"a": 1})
    entry.apply_patch(lambda v: {**v, "b": 2})
    assert entry.value == {"a": 1, "b": 2}
    assert entry.original_value == {"a": 1}
    assert entry.has_changed is True


def test_patches_accumulate():
    entry = ResourceCacheEntry("test", [1])
    entry.apply_patch(lambda v: v + [2])
    entry.apply_patch(lambda v: v + [3])
    assert entry.value == [1, 2, 3]
    assert entry.original_value == [1]


def test_reset_has_changed():
    entry = ResourceCacheEntry("test", 1)
    entry.apply_patch(lambda v: v + 1)
    entry.reset_has_changed()
    assert entry.has_changed is False
    assert entry.value == 2


def test_cache_get_missing_returns_none():
    cache = ResourceCache()
    assert cache.get(RC_KEY_SPEC) is None
    assert RC_KEY_SPEC not in cache


def test_cache_set_get_remove():
    cache = ResourceCache()
    entry = ResourceCacheEntry(RC_NOT_CREATED_NAME_EMPTY, "x")
    cache.set(RC_KEY_DEPLOYMENT, entry)
    assert cache.get(RC_KEY_DEPLOYMENT) is entry
    assert RC_KEY_DEPLOYMENT in cache
    cache.remove(RC_KEY_DEPLOYMENT)
    assert cache.get(RC_KEY_DEPLOYMENT) is None


def test_remove_missing_key_is_harmless():
    cache = ResourceCache()
    cache.set(RC_KEY_SPEC, ResourceCacheEntry("a", 1))
    cache.remove(RC_KEY_DEPLOYMENT)
    assert len(cache) == 1


def test_set_overwrites():
    cache = ResourceCache()
    first = ResourceCacheEntry("a", 1)
    second = ResourceCacheEntry("b", 2)
    cache.set(RC_KEY_SPEC, first)
    cache.set(RC_KEY_SPEC, second)
    assert cache.get(RC_KEY_SPEC) is second


def test_clear_empties_cache():
    cache = ResourceCache()
    cache.set(RC_KEY_SPEC, ResourceCacheEntry("a", 1))
    cache.set(RC_KEY_DEPLOYMENT, ResourceCacheEntry("b", 2))
    cache.clear()
    assert len(cache) == 0
    assert cache.get(RC_KEY_SPEC) is None