# registry_operator

This package is the reconciliation core of an operator that runs a schema
registry on a Kubernetes-style cluster. It never contacts a cluster itself.
You pass it client objects through a `LoopContext`, and it supplies the pieces
that decide what the cluster should look like and that write changes back.

## Modules

- `registry_operator.loop`
  - `ControlLoop` runs the `ControlFunction`s added with
    `add_control_function`. Each function goes through `sense`, `compare` and
    `respond`.
  - `run()` repeats until no function reports a discrepancy. If that does not
    happen within twice the number of functions, it raises
    `StabilizationError`.
  - Before the functions run, `run()` calls the services' `before_run()`.
    After them it calls `after_run()`.
  - `cleanup()` calls every function's `cleanup` and retries within the same
    limit. It returns whether all of them finished.
- `registry_operator.context`: `LoopContext` holds the long-lived state for
  one application:
  - `app_name`, `app_namespace`, `log`, `clients` and `attempts`;
  - a `resource_cache` and an `env_cache`;
  - the requeue request. `set_requeue_now`, `set_requeue_delay_soon` and
    `set_requeue_delay_sec` set it, and the shortest delay wins.
    `finalize()` returns the request and resets it.
- `registry_operator.env`: `EnvCache` keeps `EnvVar`s as `EnvCacheEntry`s,
  each with a `Priority` and dependencies. You build entries with
  `EnvCacheEntryBuilder` or `new_simple_builder`.
  - An entry does not replace an equal entry or one of higher priority.
  - Deletions are only marked until `process_and_advance_to_next_period()`.
  - `get_sorted()` orders the variables by priority, with each one placed
    after its dependencies. It raises `EnvCycleError` on a cycle.
  - Java options helpers: `parse_shell_args`, `parse_operator_java_options_map`,
    `parse_combined_java_options_map`, `save_operator_java_options_map` and
    `save_combined_java_options_map`. They raise `ShellParseError` on bad
    quoting.
  - `get_env` and `remove_env` work on plain lists of `EnvVar`.
- `registry_operator.resources`: `ResourceCache` and `ResourceCacheEntry`.
  An entry keeps its original value. `apply_patch(pf)` replaces the value with
  `pf(value)` and marks the entry as changed.
- `registry_operator.conditions`: `ReadyCondition`,
  `ConfigurationErrorCondition` and `ApplicationNotHealthyCondition`.
  - Transitions are ordered by priority: a lower-priority transition does not
    override a higher-priority reason set earlier in the same loop.
  - `ConditionManager.after_loop()` marks Ready as reconciling if the loop
    needed more than one attempt, and requeues soon. Otherwise it marks Ready
    as reconciled.
  - `ConditionManager.execute()` returns the active conditions as
    `ConditionData` and resets all of them.
- `registry_operator.status`: `Status` collects status values by key and
  reads them back with `set_config`, `get_config` and their `_int` forms.
  `compute_status()` patches the cached `RegistryStatus` with three things:
  - the route host;
  - the conditions;
  - the non-empty `ManagedResource`s.
- `registry_operator.factory`: `KubeFactory` builds the default Deployment,
  Service, Ingress, NetworkPolicy and PodDisruptionBudget manifests as plain
  dictionaries. `MonitoringFactory.new_service_monitor` builds a
  ServiceMonitor for a service. Missing inputs raise `FactoryError`.
- `registry_operator.patching`:
  - `create_merge_patch(original, target)` returns a JSON merge patch as a
    dict. It accepts dataclasses, enums and datetimes.
  - `patch_generic` creates a cached resource whose name is empty. Otherwise
    it submits the merge patch of its pending changes. On failure it drops
    the entry from the cache.
- `registry_operator.kube_patcher` and `registry_operator.patchers`:
  - `KubePatcher` reloads the cached status and Kubernetes resources and
    writes them back.
  - `OCPPatcher` reloads or discovers the cached route.
  - `Patchers` runs both patchers.
- `registry_operator.services`: `LoopServices` connects the factories, the
  `ConditionManager`, the `Status` and the `Patchers` for one context.

## Client objects

The patchers reach the cluster only through `ctx.clients`:

- `ctx.clients.kube` provides the following methods for each of
  `deployment`, `service`, `ingress`, `network_policy`,
  `pod_disruption_budget_v1` and `pod_disruption_budget_v1beta1`:
  - `get_<kind>(namespace, name)`
  - `create_<kind>(owner, namespace, value)`
  - `patch_<kind>(namespace, name, patch)`
- `ctx.clients.crd` provides `patch_apicurio_registry(namespace, name, patch)`
  and `patch_apicurio_registry_status(namespace, name, patch)`.
- `ctx.clients.ocp` provides `get_route(namespace, name)` and
  `get_routes(namespace, label_selector)`.

Any exception raised by these methods is treated as a failed call.

`KubeFactory` takes its labels from the `REGISTRY_VERSION` and
`OPERATOR_NAME` environment variables. Both must be set.

## Example

```python
import logging

from registry_operator.env import EnvCache, Priority, new_simple_builder, parse_shell_args

cache = EnvCache(logging.getLogger("env"))
cache.set(new_simple_builder("B", "2").set_dependency("A").build())
cache.set(new_simple_builder("A", "1").set_priority(Priority.SPEC).build())
print([v.name for v in cache.get_sorted()])   # ['A', 'B']

print(parse_shell_args("-Xmx1g -Dspaces=\"one two\""))
# {'-Xmx1g': '', '-Dspaces': 'one two'}
```

## What this package does not do

- It has no command and no long-running manager. Nothing watches the cluster
  or triggers reconciliations.
- It has no cluster client. You supply the client objects described above.
- It has no concrete control functions, such as ones that set environment
  variables or create the Deployment. You write them against the
  `ControlFunction` base class.

## Running the tests

```
pip install -e .[test]
pytest
```