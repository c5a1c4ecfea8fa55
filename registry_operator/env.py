"""Cache of container environment variables with priorities and dependency ordering."""

from __future__ import annotations

import copy
import logging
import shlex
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

JAVA_OPTIONS = "JAVA_OPTS_APPEND"
JAVA_OPTIONS_LEGACY = "JAVA_OPTIONS"

JAVA_OPTIONS_OPERATOR = "__JAVA_OPTIONS_OPERATOR__bedc397c-9486-4d87-8741-e4c90e72abe5__"
JAVA_OPTIONS_COMBINED = "__JAVA_OPTIONS_COMBINED__bedc397c-9486-4d87-8741-e4c90e72abe5__"


class Priority(IntEnum):
    """Where a variable came from; a higher priority wins."""

    MIN = 0
    DEPLOYMENT = 1
    SPEC = 2
    OPERATOR = 3
    MAX = 4


@dataclass
class EnvVar:
    """A container environment variable."""

    name: str
    value: str = ""
    value_from: Any = None


class EnvCycleError(RuntimeError):
    """The dependencies between environment variables form a cycle."""


class ShellParseError(ValueError):
    """A string could not be split into shell words."""


@dataclass
class EnvCacheEntry:
    """An environment variable with its dependencies and priority."""

    value: EnvVar
    dependencies: List[str] = field(default_factory=list)
    priority: Priority = Priority.OPERATOR

    @property
    def name(self) -> str:
        return self.value.name


class EnvCacheEntryBuilder:
    """Builds an :class:`EnvCacheEntry` from a copy of the given variable."""

    def __init__(self, value: EnvVar) -> None:
        self._entry = EnvCacheEntry(value=copy.deepcopy(value))

    def set_dependency(self, name: str) -> "EnvCacheEntryBuilder":
        if name not in self._entry.dependencies:
            self._entry.dependencies.append(name)
        return self

    def set_priority(self, priority: Priority) -> "EnvCacheEntryBuilder":
        self._entry.priority = Priority(priority)
        return self

    def build(self) -> EnvCacheEntry:
        if not self._entry.name.strip():
            raise ValueError(
                "Environment variable name cannot be empty nor contain only whitespace."
            )
        return self._entry


def new_simple_builder(name: str, value: str) -> EnvCacheEntryBuilder:
    """Return a builder for a plain name/value variable."""
    return EnvCacheEntryBuilder(EnvVar(name=name, value=value))


class EnvCache:
    """Keeps environment variables in order of addition, reordered only for dependencies.

    Deletions are only marked; they take effect on
    :meth:`process_and_advance_to_next_period`.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log if log is not None else logging.getLogger(__name__)
        self._cache: Dict[str, EnvCacheEntry] = {}
        self._deleted: set = set()
        self._changed = False

    @property
    def changed(self) -> bool:
        return self._changed

    def get(self, key: str) -> Optional[EnvCacheEntry]:
        """Return the entry, or ``None`` if it is missing or marked deleted."""
        if self.was_deleted(key):
            return None
        return self._cache.get(key)

    def set(self, entry: EnvCacheEntry) -> None:
        """Store ``entry`` unless an equal or higher-priority entry is present."""
        name = entry.name
        old = self._cache.get(name)
        if old is not None and not self.was_deleted(name):
            if entry.priority >= old.priority and entry != old:
                self._cache[name] = entry
                self._changed = True
        else:
            self._cache[name] = entry
            self._changed = True

    def delete(self, entry: EnvCacheEntry) -> bool:
        return self.delete_by_name(entry.name)

    def delete_by_name(self, name: str) -> bool:
        """Mark ``name`` for deletion; return whether it was present."""
        if name in self._cache:
            self._deleted.add(name)
            self._changed = True
            return True
        return False

    def was_deleted(self, name: str) -> bool:
        return name in self._deleted

    def clear(self) -> None:
        self._changed = True
        self._cache = {}
        self._deleted = set()

    def process_and_advance_to_next_period(self) -> None:
        """Drop the entries marked for deletion and reset the changed flag."""
        self._changed = False
        for name in self._deleted:
            self._cache.pop(name, None)
        self._deleted = set()

    def get_sorted(self) -> List[EnvVar]:
        """Return the variables ordered by priority, each after its dependencies."""
        ordered: List[EnvCacheEntry] = []
        processed: set = set()
        for priority in Priority:
            for entry in list(self._cache.values()):
                if entry.priority == priority:
                    self._process_with_dependencies(0, processed, entry, ordered)
        return [entry.value for entry in ordered]

    def _process_with_dependencies(
        self,
        depth: int,
        processed: set,
        entry: EnvCacheEntry,
        ordered: List[EnvCacheEntry],
    ) -> None:
        if depth > len(self._cache):
            raise EnvCycleError(
                f"Cycle detected during the processing of environment variables "
                f"(at {entry.name}), make sure that every env. variable is defined once."
            )
        if entry.name in processed or self.was_deleted(entry.name):
            return
        for dependency_name in entry.dependencies:
            dependency = self.get(dependency_name)
            if dependency is not None:
                self._process_with_dependencies(depth + 1, processed, dependency, ordered)
            else:
                self._log.info(
                    "Dependency for an entry not found: entryName=%s dependencyName=%s",
                    entry.name,
                    dependency_name,
                )
        ordered.append(entry)
        processed.add(entry.name)


def parse_shell_args(text: str) -> Dict[str, str]:
    """Split ``text`` into shell words and map each ``key=value`` word to its parts."""
    try:
        words = shlex.split(text)
    except ValueError as exc:
        raise ShellParseError(str(exc)) from exc
    result: Dict[str, str] = {}
    for word in words:
        key, _, value = word.partition("=")
        result[key] = value
    return result


def merge_maps(base: Dict[str, str], update: Mapping[str, str]) -> None:
    """Copy every item of ``update`` into ``base``."""
    base.update(update)


def _merge_from(env_cache: EnvCache, names: Sequence[str]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for name in names:
        entry = env_cache.get(name)
        if entry is not None:
            merge_maps(options, parse_shell_args(entry.value.value))
    return options


def parse_operator_java_options_map(env_cache: EnvCache) -> Dict[str, str]:
    """Return the Java options the operator itself has set."""
    return _merge_from(env_cache, [JAVA_OPTIONS_OPERATOR])


def parse_combined_java_options_map(env_cache: EnvCache) -> Dict[str, str]:
    """Merge legacy, user and operator Java options, later ones overriding earlier."""
    return _merge_from(
        env_cache, [JAVA_OPTIONS_LEGACY, JAVA_OPTIONS, JAVA_OPTIONS_OPERATOR]
    )


def save_operator_java_options_map(
    env_cache: EnvCache, java_options: Mapping[str, str]
) -> None:
    _save_java_options_map(env_cache, JAVA_OPTIONS_OPERATOR, java_options)


def save_combined_java_options_map(
    env_cache: EnvCache, java_options: Mapping[str, str]
) -> None:
    _save_java_options_map(env_cache, JAVA_OPTIONS_COMBINED, java_options)


def _save_java_options_map(
    env_cache: EnvCache, name: str, java_options: Mapping[str, str]
) -> None:
    words = sorted(k if v == "" else f"{k}={v}" for k, v in java_options.items())
    if words:
        env_cache.set(
            new_simple_builder(name, shlex.join(words))
            .set_priority(Priority.OPERATOR)
            .set_dependency(JAVA_OPTIONS_LEGACY)
            .set_dependency(JAVA_OPTIONS)
            .build()
        )
    else:
        env_cache.delete_by_name(name)


def get_env(haystack: Sequence[EnvVar], name: str) -> Optional[EnvVar]:
    """Return the first variable called ``name``, or ``None``."""
    return next((var for var in haystack if var.name == name), None)


def remove_env(haystack: Sequence[EnvVar], name: str) -> Tuple[List[EnvVar], bool]:
    """Return a list without the first variable called ``name`` and whether one was removed."""
    for index, var in enumerate(haystack):
        if var.name == name:
            return list(haystack[:index]) + list(haystack[index + 1 :]), True
    return list(haystack), False