"""Batch driver: run a whole workload with no pacing and collect the results.

Every run builds its own Engine, its own copy of the policy and fresh Process
objects, so several policies can be compared on the same workload without
sharing any state.
"""
import copy
import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from schedsim.engine import DEFAULT_CONTEXT_SWITCH_OVERHEAD, Engine, SimulationResult
from schedsim.errors import SimulationBoundExceeded
from schedsim.policy import POLICIES, SchedulingPolicy, create_policy
from schedsim.process import Process, ProcessDefinition

log = logging.getLogger(__name__)

DEFAULT_MAX_TIME = 10_000

Definition = Union[ProcessDefinition, Process, Mapping[str, Any]]


def _clone(definition: Definition) -> ProcessDefinition:
    if isinstance(definition, ProcessDefinition):
        return definition
    if isinstance(definition, Process):
        return ProcessDefinition(burst_time=definition.burst_time, name=definition.name,
                                 arrival_time=definition.arrival_time, priority=definition.priority,
                                 io_frequency=definition.io_frequency, id=definition.id)
    return ProcessDefinition.from_mapping(definition)


def run_to_completion(policy: SchedulingPolicy, definitions: Iterable[Definition],
                      max_time: int = DEFAULT_MAX_TIME,
                      context_switch_overhead: int = DEFAULT_CONTEXT_SWITCH_OVERHEAD,
                      rng: Optional[Any] = None, seed: Optional[int] = None) -> SimulationResult:
    engine = Engine(copy.deepcopy(policy), context_switch_overhead=context_switch_overhead,
                    rng=rng, seed=seed)
    for definition in definitions:
        engine.add_process(_clone(definition))
    if not engine.processes:
        return engine.result()

    try:
        engine.run(max_time=max_time)
    except SimulationBoundExceeded as exc:
        partial = exc.result
        log.error("%s run aborted at t=%d: %d/%d processes terminated", partial.policy_info.name,
                  partial.total_time, len(partial.completed), len(partial.processes))
        raise
    result = engine.result()
    log.info("%s finished at t=%d: %d processes, %d context switches", result.policy_info.name,
             result.total_time, len(result.processes), result.metrics.context_switches)
    return result


def compare_policies(definitions: Sequence[Definition], policy_keys: Optional[Sequence[str]] = None,
                     policy_options: Optional[Mapping[str, Mapping[str, Any]]] = None,
                     max_time: int = DEFAULT_MAX_TIME,
                     context_switch_overhead: int = DEFAULT_CONTEXT_SWITCH_OVERHEAD,
                     seed: Optional[int] = None) -> Dict[str, SimulationResult]:
    """Run the same workload under several policies, keyed by registry key."""
    definitions = [_clone(d) for d in definitions]
    policy_options = policy_options or {}
    results = {}
    for key in policy_keys or list(POLICIES):
        policy = create_policy(key, **policy_options.get(key, {}))
        results[key] = run_to_completion(policy, definitions, max_time=max_time,
                                         context_switch_overhead=context_switch_overhead, seed=seed)
    return results
