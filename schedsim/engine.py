"""Discrete-time single-CPU simulation engine.

Each call to :meth:`Engine.step` runs one fixed sequence:

1. admit NEW processes whose arrival time has passed,
2. advance every I/O countdown by one unit and re-admit finished ones,
3. if the CPU is free, let the policy pick a process and charge a context switch,
4. run the current process for one unit, then handle completion, an I/O
   request or preemption (in that order),
5. otherwise record one idle unit.

The engine owns every queue; policies only ever see tuple copies.
"""
import dataclasses
import logging
import random
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, List, Mapping, Optional, Tuple, Union

from schedsim.errors import InvalidConfiguration, NoPolicySet, ProcessNotFound, SimulationBoundExceeded
from schedsim.metrics import Metrics, compute_metrics
from schedsim.policy import PolicyInfo, SchedulingPolicy, quantum_exhausted
from schedsim.process import Process, ProcessDefinition, ProcessSnapshot, ProcessState, require_int
from schedsim.trace import TraceEntry, TraceKind, execution_segments

log = logging.getLogger(__name__)

DEFAULT_CONTEXT_SWITCH_OVERHEAD = 1
DEFAULT_IO_INJECT_DURATION = 5
IO_DURATION_RANGE = (3, 7)


def _plain(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value if isinstance(value.value, str) else value.name
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


@dataclass(frozen=True)
class EngineSnapshot:
    current_time: int
    is_running: bool
    is_context_switching: bool
    running_process: Optional[ProcessSnapshot]
    ready_queue: Tuple[ProcessSnapshot, ...]
    waiting_queue: Tuple[ProcessSnapshot, ...]
    completed_processes: Tuple[ProcessSnapshot, ...]
    all_processes: Tuple[ProcessSnapshot, ...]
    trace: Tuple[TraceEntry, ...]
    metrics: Metrics
    policy_info: Optional[PolicyInfo]
    quantum_remaining: Optional[int]
    idle_time: int
    context_switches: int

    def to_dict(self) -> dict:
        """Plain dict/list/str/number form, ready for json.dumps."""
        return _plain(self)


@dataclass(frozen=True)
class SimulationResult:
    policy_info: Optional[PolicyInfo]
    trace: Tuple[TraceEntry, ...]
    metrics: Metrics
    processes: Tuple[ProcessSnapshot, ...]
    total_time: int

    @property
    def completed(self) -> Tuple[ProcessSnapshot, ...]:
        return tuple(p for p in self.processes if p.completion_time is not None)

    def process(self, name: str) -> ProcessSnapshot:
        for p in self.processes:
            if p.name == name:
                return p
        raise KeyError(name)

    def segments(self):
        return execution_segments(self.trace)


class Engine:
    def __init__(self, policy: Optional[SchedulingPolicy] = None,
                 context_switch_overhead: int = DEFAULT_CONTEXT_SWITCH_OVERHEAD,
                 rng: Optional[Any] = None, seed: Optional[int] = None):
        # rng needs random() and randint(a, b), like random.Random
        self.context_switch_overhead = require_int(context_switch_overhead, 'context_switch_overhead', 0)
        self.rng = rng if rng is not None else random.Random(seed)
        self.policy: Optional[SchedulingPolicy] = None
        self.processes: List[Process] = []
        self.ready_queue: Deque[Process] = deque()
        self.waiting_queue: List[Process] = []
        self.running: Optional[Process] = None
        self.completed: List[Process] = []
        self.trace: List[TraceEntry] = []
        self.current_time = 0
        self.idle_time = 0
        self.context_switches = 0
        self.is_context_switching = False
        self.is_running = False
        self.quantum_remaining: Optional[int] = None
        if policy is not None:
            self.set_policy(policy)

    def set_policy(self, policy: SchedulingPolicy) -> None:
        self.policy = policy
        if policy is not None:
            policy.reset()
        self.quantum_remaining = policy.quantum if policy is not None else None
        log.debug("[t=%d] policy set to %r", self.current_time, policy)

    # process registry
    def add_process(self, definition: Union[Process, ProcessDefinition, Mapping[str, Any]]) -> Process:
        if isinstance(definition, Process):
            process = definition
        else:
            if not isinstance(definition, ProcessDefinition):
                definition = ProcessDefinition.from_mapping(definition)
            if definition.name is None:
                definition = dataclasses.replace(definition, name=f"P{len(self.processes) + 1}")
            process = Process.from_definition(definition)
        if any(p.id == process.id for p in self.processes):
            raise InvalidConfiguration(f"duplicate process id {process.id!r}")
        self.processes.append(process)
        log.debug("[t=%d] added %r", self.current_time, process)
        if process.state is ProcessState.NEW and process.arrival_time <= self.current_time:
            self._admit(process, self.current_time)
        return process

    def get_process(self, process_id: str) -> Process:
        for p in self.processes:
            if p.id == process_id:
                return p
        raise ProcessNotFound(process_id)

    def kill_process(self, process_id: str) -> None:
        p = self.get_process(process_id)
        p.kill(self.current_time)
        if p in self.ready_queue:
            self.ready_queue.remove(p)
        if p in self.waiting_queue:
            self.waiting_queue.remove(p)
        if self.running is p:
            self.running = None
        self.completed.append(p)
        log.debug("[t=%d] killed %s", self.current_time, p.name)

    def inject_io(self, duration: int = DEFAULT_IO_INJECT_DURATION) -> bool:
        """Push the running process into I/O wait; False when the CPU is free."""
        require_int(duration, 'io duration', 1)
        if self.running is None:
            log.debug("[t=%d] inject_io ignored: no running process", self.current_time)
            return False
        self._block_for_io(self.running, duration)
        return True

    # simulation loop
    def is_complete(self) -> bool:
        return bool(self.processes) and all(p.is_terminated for p in self.processes)

    def step(self) -> EngineSnapshot:
        if self.policy is None:
            raise NoPolicySet(self.current_time)
        started = self.current_time

        self._admit_arrivals()
        self._complete_io()
        if self.running is None and self.ready_queue:
            self._dispatch()
        if self.running is not None:
            self._execute()
        else:
            self._idle()

        boosted = self.policy.on_tick(self.current_time - started, self._live_processes())
        if boosted:
            log.debug("[t=%d] priority boost: %d processes back to level 0", self.current_time, len(boosted))
        return self.get_snapshot()

    def run(self, step_delay: float = 0.0, max_time: Optional[int] = None) -> EngineSnapshot:
        """Step until every process terminates or ``pause()`` clears ``is_running``.

        ``step_delay`` only paces the loop in wall-clock seconds; results are the
        same with or without it.
        """
        self.is_running = True
        try:
            while self.is_running and not self.is_complete():
                if max_time is not None and self.current_time >= max_time:
                    raise SimulationBoundExceeded(max_time, self.result())
                self.step()
                if step_delay > 0:
                    time.sleep(step_delay)
        finally:
            self.is_running = False
        return self.get_snapshot()

    def pause(self) -> None:
        self.is_running = False

    def reset(self) -> None:
        self.current_time = 0
        self.is_running = False
        self.is_context_switching = False
        self.running = None
        self.ready_queue.clear()
        self.waiting_queue.clear()
        self.completed.clear()
        self.trace.clear()
        self.idle_time = 0
        self.context_switches = 0
        self.quantum_remaining = self.policy.quantum if self.policy is not None else None
        if self.policy is not None:
            self.policy.reset()
        for p in self.processes:
            p.reset()
        self._admit_arrivals()

    def clear(self) -> None:
        self.processes.clear()
        self.reset()

    # step phases
    def _admit(self, process: Process, ready_at: int) -> None:
        process.transition(ProcessState.READY, ready_at)
        self.ready_queue.append(process)
        if self.policy is not None:
            self.policy.on_admit(process)
        log.debug("[t=%d] %s -> READY (arrived t=%d)", self.current_time, process.name, process.arrival_time)

    def _admit_arrivals(self) -> None:
        for p in self.processes:
            if p.state is ProcessState.NEW and p.arrival_time <= self.current_time:
                # it became ready when it arrived, possibly partway through the last step
                self._admit(p, p.arrival_time)

    def _complete_io(self) -> None:
        done = []
        for p in self.waiting_queue:
            if p.advance_io(1):
                done.append(p)
        for p in done:
            self.waiting_queue.remove(p)
            p.transition(ProcessState.READY, self.current_time)
            self.ready_queue.append(p)
            log.debug("[t=%d] %s I/O complete -> READY", self.current_time, p.name)

    def _dispatch(self) -> None:
        nxt = self.policy.select_next(tuple(self.ready_queue), self.current_time)
        if nxt is None:
            return
        self.ready_queue.remove(nxt)
        self._context_switch(nxt)
        nxt.transition(ProcessState.RUNNING, self.current_time)
        self.running = nxt
        self.quantum_remaining = self.policy.quantum
        log.debug("[t=%d] %s -> RUNNING, quantum=%s, level=%d",
                  self.current_time, nxt.name, self.quantum_remaining, nxt.queue_level)

    def _context_switch(self, nxt: Process) -> None:
        self.is_context_switching = True
        self.context_switches += 1
        end = self.current_time + self.context_switch_overhead
        self.trace.append(TraceEntry(TraceKind.CONTEXT_SWITCH, self.current_time, end))
        log.debug("[t=%d] context switch to %s (%d units)", self.current_time, nxt.name,
                  self.context_switch_overhead)
        self.current_time = end
        self.is_context_switching = False

    def _execute(self) -> None:
        p = self.running
        result = p.execute_one_unit(self.rng)
        self.trace.append(TraceEntry(TraceKind.EXECUTION, self.current_time, self.current_time + 1,
                                     process_id=p.id, process_name=p.name, color=p.color))
        self.current_time += 1
        if self.quantum_remaining is not None:
            self.quantum_remaining -= 1

        if result.completed:
            p.transition(ProcessState.TERMINATED, self.current_time)
            self.completed.append(p)
            self.running = None
            log.debug("[t=%d] %s -> TERMINATED (turnaround=%d, waiting=%d)",
                      self.current_time, p.name, p.turnaround_time, p.waiting_time)
        elif result.requests_io:
            self._block_for_io(p, self.rng.randint(*IO_DURATION_RANGE))
        elif self.policy.should_preempt(p, tuple(self.ready_queue), self.quantum_remaining):
            self._preempt(p)

    def _block_for_io(self, p: Process, duration: int) -> None:
        p.transition(ProcessState.WAITING, self.current_time)
        p.start_io(duration)
        if self.policy is not None:
            self.policy.on_io_yield(p)
        self.waiting_queue.append(p)
        if self.running is p:
            self.running = None
        log.debug("[t=%d] %s -> WAITING for %d units of I/O", self.current_time, p.name, duration)

    def _preempt(self, p: Process) -> None:
        if quantum_exhausted(self.quantum_remaining):
            self.policy.on_quantum_expired(p)
        p.transition(ProcessState.READY, self.current_time)
        self.ready_queue.append(p)
        self.running = None
        log.debug("[t=%d] %s preempted -> READY (level=%d)", self.current_time, p.name, p.queue_level)

    def _idle(self) -> None:
        self.idle_time += 1
        self.trace.append(TraceEntry(TraceKind.IDLE, self.current_time, self.current_time + 1))
        self.current_time += 1

    def _live_processes(self) -> List[Process]:
        return [p for p in self.processes if not p.is_terminated]

    # read side
    def metrics(self) -> Metrics:
        return compute_metrics([p.snapshot() for p in self.completed], self.current_time, self.idle_time,
                               self.context_switches, self.context_switch_overhead)

    def get_snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            current_time=self.current_time,
            is_running=self.is_running,
            is_context_switching=self.is_context_switching,
            running_process=self.running.snapshot() if self.running is not None else None,
            ready_queue=tuple(p.snapshot() for p in self.ready_queue),
            waiting_queue=tuple(p.snapshot() for p in self.waiting_queue),
            completed_processes=tuple(p.snapshot() for p in self.completed),
            all_processes=tuple(p.snapshot() for p in self.processes),
            trace=tuple(self.trace),
            metrics=self.metrics(),
            policy_info=self.policy.info() if self.policy is not None else None,
            quantum_remaining=self.quantum_remaining,
            idle_time=self.idle_time,
            context_switches=self.context_switches,
        )

    def result(self) -> SimulationResult:
        """Trace, metrics and process snapshots as they stand now."""
        return SimulationResult(
            policy_info=self.policy.info() if self.policy is not None else None,
            trace=tuple(self.trace),
            metrics=self.metrics(),
            processes=tuple(p.snapshot() for p in self.processes),
            total_time=self.current_time,
        )
