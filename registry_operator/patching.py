"""Merge-patch creation and the shared create-or-patch routine for cached resources."""

from __future__ import annotations

import dataclasses
import json
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Mapping

from .resources import RC_KEY_SPEC, RC_NOT_CREATED_NAME_EMPTY, ResourceCacheEntry

CreateFunction = Callable[[Any, str, Any], Any]
PatchCallFunction = Callable[[str, str, Dict[str, Any]], Any]
NameFunction = Callable[[Any], str]


class PatchError(ValueError):
    """A merge patch could not be computed for the given values."""


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_json(value: Any) -> Any:
    try:
        return json.loads(json.dumps(value, default=_json_default))
    except (TypeError, ValueError) as exc:
        raise PatchError(str(exc)) from exc


def _diff(original: Mapping[str, Any], target: Mapping[str, Any]) -> Dict[str, Any]:
    patch: Dict[str, Any] = {}
    for key in original:
        if key not in target:
            patch[key] = None
    for key, new in target.items():
        if key not in original:
            patch[key] = new
            continue
        old = original[key]
        if old == new:
            continue
        if isinstance(old, dict) and isinstance(new, dict):
            nested = _diff(old, new)
            if nested:
                patch[key] = nested
        else:
            patch[key] = new
    return patch


def create_merge_patch(original: Any, target: Any) -> Dict[str, Any]:
    """Return the JSON merge patch that turns ``original`` into ``target``.

    Both values must serialize to JSON objects; dataclasses, enums and
    datetimes are converted first.
    """
    old = _to_json(original)
    new = _to_json(target)
    if not isinstance(old, dict) or not isinstance(new, dict):
        raise PatchError("Merge patches can only be created between JSON objects.")
    return _diff(old, new)


def patch_generic(
    ctx: Any,
    key: str,
    type_name: str,
    create: CreateFunction,
    patch: PatchCallFunction,
    get_name: NameFunction,
) -> None:
    """Create the cached resource under ``key`` or submit its pending changes.

    A resource whose cached name is empty is created; otherwise a merge patch
    between the loaded and the current value is submitted, when there is one.
    Failures drop the entry from the cache so it is reloaded next time.
    """
    cache = ctx.resource_cache
    log = ctx.log

    owner = cache.get(RC_KEY_SPEC)
    if owner is None:
        log.info(
            "Could not patch a resource. No ApicurioRegistry exists to set as the "
            "owner. Retrying. resource=%s",
            type_name,
        )
        ctx.set_requeue_now()
        return

    entry = cache.get(key)
    if entry is None:
        return

    namespace = ctx.app_namespace
    name = entry.name
    value = entry.value

    if name != RC_NOT_CREATED_NAME_EMPTY:
        if not entry.has_changed:
            return
        actual = entry.original_value
        try:
            patch_data = create_merge_patch(actual, value)
        except PatchError as exc:
            log.warning(
                "could not create patch data resource=%s name=%s error=%s "
                "original=%r target=%r",
                type_name, name, exc, actual, value,
            )
            cache.remove(key)
            ctx.set_requeue_now()
            return

        if not patch_data:
            entry.reset_has_changed()
            return

        log.info("patching resource=%s name=%s", type_name, name)
        try:
            patched = patch(namespace, name, patch_data)
        except Exception as exc:  # the client reports any API failure this way
            log.warning(
                "could not submit patch resource=%s name=%s error=%s "
                "original=%r target=%r patch=%s",
                type_name, name, exc, actual, value, json.dumps(patch_data),
            )
            cache.remove(key)
            ctx.set_requeue_now()
            return
        cache.set(key, ResourceCacheEntry(get_name(patched), patched))
    else:
        log.info("creating resource=%s", type_name)
        try:
            created = create(owner.value, namespace, value)
        except Exception as exc:  # the client reports any API failure this way
            log.info(
                "Could not create new resource. resource=%s error=%s target=%r",
                type_name, exc, value,
            )
            cache.remove(key)
            return
        cache.set(key, ResourceCacheEntry(get_name(created), created))