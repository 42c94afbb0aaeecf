"""Scheduling policies.

A policy only *reads* the ready queue: the engine hands it a tuple copy and
keeps every insertion and removal to itself. Policies may keep their own
configuration (quanta, boost clock) and adjust a process' queue level through
the engine-driven hooks, but they never move a process between states.
"""
import logging
import numbers
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from schedsim.errors import InvalidConfiguration
from schedsim.process import Process, ProcessSnapshot

log = logging.getLogger(__name__)


def _coerce_quantum(value: Any, field_name: str = 'time quantum') -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or value != value:
        raise InvalidConfiguration(f"{field_name} must be a number, got {value!r}")
    return max(1, int(value))


def quantum_exhausted(quantum_remaining: Optional[int]) -> bool:
    return quantum_remaining is not None and quantum_remaining <= 0


@dataclass(frozen=True)
class PolicyInfo:
    key: str
    name: str
    description: str
    preemptive: bool
    time_quantum: Optional[int]
    quanta: Optional[Tuple[int, ...]] = None
    boost_interval: Optional[int] = None


@dataclass(frozen=True)
class QueueLevelView:
    level: int
    quantum: int
    priority: str
    label: str
    processes: Tuple[ProcessSnapshot, ...]


class SchedulingPolicy(ABC):
    key = 'base'
    name = 'Unknown'
    description = ''
    preemptive = False

    @property
    def quantum(self) -> Optional[int]:
        """Units a dispatch may run before the quantum expires; None is unbounded."""
        return None

    @abstractmethod
    def select_next(self, ready_queue: Sequence[Process], current_time: int) -> Optional[Process]:
        ...

    def should_preempt(self, running: Process, ready_queue: Sequence[Process],
                       quantum_remaining: Optional[int]) -> bool:
        return False

    # engine hooks
    def on_admit(self, process: Process) -> None:
        pass

    def on_quantum_expired(self, process: Process) -> None:
        pass

    def on_io_yield(self, process: Process) -> None:
        pass

    def on_tick(self, elapsed: int, processes: Iterable[Process]) -> List[Process]:
        """Advance any policy clock by ``elapsed`` units; return processes it touched."""
        return []

    def reset(self) -> None:
        pass

    def info(self) -> PolicyInfo:
        return PolicyInfo(key=self.key, name=self.name, description=self.description,
                          preemptive=self.preemptive, time_quantum=self.quantum)

    def __repr__(self):
        return f"{type(self).__name__}(quantum={self.quantum})"


class FCFSPolicy(SchedulingPolicy):
    key = 'fcfs'
    name = 'FCFS'
    description = ('First-Come, First-Served: processes run in arrival order until they finish '
                   'or block for I/O. Non-preemptive; a long first job delays everyone behind it '
                   '(convoy effect).')

    def select_next(self, ready_queue, current_time):
        if not ready_queue:
            return None
        # min() keeps the first of equal arrivals, i.e. queue order
        return min(ready_queue, key=lambda p: p.arrival_time)


class SJFPolicy(SchedulingPolicy):
    def __init__(self, preemptive: bool = False):
        self.preemptive = bool(preemptive)
        if self.preemptive:
            self.key = 'srtf'
            self.name = 'SRTF'
            self.description = ('Shortest Remaining Time First: the ready process with the least '
                                'remaining work runs, and a strictly shorter arrival preempts it. '
                                'Long processes can starve.')
        else:
            self.key = 'sjf'
            self.name = 'SJF'
            self.description = ('Shortest Job First: the ready process with the least remaining work '
                                'runs to completion. Optimal average waiting time, but long '
                                'processes can starve.')

    def select_next(self, ready_queue, current_time):
        if not ready_queue:
            return None
        return min(ready_queue, key=lambda p: (p.remaining_time, p.arrival_time))

    def should_preempt(self, running, ready_queue, quantum_remaining):
        if not self.preemptive or not ready_queue:
            return False
        # equal remaining time is not worth a context switch
        return min(p.remaining_time for p in ready_queue) < running.remaining_time

    def __repr__(self):
        return f"SJFPolicy(preemptive={self.preemptive})"


class RoundRobinPolicy(SchedulingPolicy):
    key = 'rr'
    name = 'Round Robin'
    preemptive = True

    def __init__(self, time_quantum: int = 4):
        self.time_quantum = _coerce_quantum(time_quantum)

    @property
    def description(self):
        return (f"Round Robin: each dispatch gets a time quantum of {self.time_quantum} units, "
                f"then the process goes to the back of the ready queue.")

    @property
    def quantum(self):
        return self.time_quantum

    def set_time_quantum(self, time_quantum: int) -> None:
        self.time_quantum = _coerce_quantum(time_quantum)
        log.debug("round robin quantum set to %d", self.time_quantum)

    def select_next(self, ready_queue, current_time):
        if not ready_queue:
            return None
        return ready_queue[0]

    def should_preempt(self, running, ready_queue, quantum_remaining):
        # nobody waiting: keep running instead of paying for a switch
        return quantum_exhausted(quantum_remaining) and len(ready_queue) > 0


DEFAULT_MLFQ_QUANTA = (4, 8, 16)


class MLFQPolicy(SchedulingPolicy):
    """Multi-Level Feedback Queue.

    Level 0 is the highest priority. A process that burns its whole quantum
    drops a level; one that yields for I/O climbs a level. Every
    ``boost_interval`` time units all live processes return to level 0.
    """
    key = 'mlfq'
    name = 'MLFQ'
    description = ('Multi-Level Feedback Queue: processes start at the top level; using a full '
                   'quantum demotes them, yielding for I/O promotes them, and a periodic boost '
                   'returns everyone to the top to prevent starvation.')
    preemptive = True

    def __init__(self, num_queues: int = 3, quanta: Optional[Sequence[int]] = None,
                 boost_interval: int = 50):
        if isinstance(num_queues, bool) or not isinstance(num_queues, numbers.Integral) or num_queues < 1:
            raise InvalidConfiguration(f"num_queues must be a positive integer, got {num_queues!r}")
        if isinstance(boost_interval, bool) or not isinstance(boost_interval, numbers.Integral) \
                or boost_interval < 1:
            raise InvalidConfiguration(f"boost_interval must be a positive integer, got {boost_interval!r}")
        self.num_queues = int(num_queues)
        self.boost_interval = int(boost_interval)
        if quanta is None:
            if self.num_queues == len(DEFAULT_MLFQ_QUANTA):
                quanta = DEFAULT_MLFQ_QUANTA
            else:
                quanta = [4 * 2 ** level for level in range(self.num_queues)]
        self.set_quanta(quanta)
        self.time_since_boost = 0

    @property
    def max_level(self) -> int:
        return self.num_queues - 1

    @property
    def quantum(self):
        return self._active_quantum

    def set_quanta(self, quanta: Sequence[int]) -> None:
        quanta = list(quanta)
        if len(quanta) != self.num_queues:
            raise InvalidConfiguration(
                f"MLFQ needs one quantum per level: got {len(quanta)} quanta for {self.num_queues} levels")
        self.quanta = tuple(_coerce_quantum(q, f"level {level} quantum") for level, q in enumerate(quanta))
        self._active_quantum = self.quanta[0]

    def quantum_for(self, process: Process) -> int:
        return self.quanta[min(process.queue_level, self.max_level)]

    def on_admit(self, process):
        process.queue_level = 0
        process.quantum_used = 0

    def select_next(self, ready_queue, current_time):
        if not ready_queue:
            return None
        levels: List[List[Process]] = [[] for _ in range(self.num_queues)]
        for process in ready_queue:
            levels[min(process.queue_level, self.max_level)].append(process)
        for level, queue in enumerate(levels):
            if queue:
                self._active_quantum = self.quanta[level]
                return min(queue, key=lambda p: p.arrival_time)
        return None

    def should_preempt(self, running, ready_queue, quantum_remaining):
        if quantum_exhausted(quantum_remaining):
            return True
        return any(p.queue_level < running.queue_level for p in ready_queue)

    def on_quantum_expired(self, process):
        process.demote(self.max_level)

    def on_io_yield(self, process):
        process.promote()

    def on_tick(self, elapsed, processes):
        self.time_since_boost += elapsed
        if self.time_since_boost < self.boost_interval:
            return []
        return self.boost(processes)

    def reset(self):
        self.time_since_boost = 0
        self._active_quantum = self.quanta[0]

    def boost(self, processes: Iterable[Process]) -> List[Process]:
        self.time_since_boost = 0
        boosted = []
        for process in processes:
            if process.is_terminated:
                continue
            process.queue_level = 0
            process.quantum_used = 0
            boosted.append(process)
        return boosted

    def queue_structure(self, ready_queue: Sequence[Process]) -> List[QueueLevelView]:
        views = []
        for level in range(self.num_queues):
            if level == 0:
                priority = 'Highest'
            elif level == self.max_level:
                priority = 'Lowest'
            else:
                priority = 'Medium'
            members = tuple(p.snapshot() for p in ready_queue
                            if min(p.queue_level, self.max_level) == level)
            views.append(QueueLevelView(level=level, quantum=self.quanta[level], priority=priority,
                                        label=f"Queue {level} (Q={self.quanta[level]})",
                                        processes=members))
        return views

    def info(self):
        return PolicyInfo(key=self.key, name=self.name, description=self.description,
                          preemptive=self.preemptive, time_quantum=self.quantum,
                          quanta=self.quanta, boost_interval=self.boost_interval)

    def __repr__(self):
        return f"MLFQPolicy(quanta={self.quanta}, boost_interval={self.boost_interval})"


# registry
POLICIES: Dict[str, Callable[..., SchedulingPolicy]] = {
    'fcfs': FCFSPolicy,
    'sjf': lambda: SJFPolicy(preemptive=False),
    'srtf': lambda: SJFPolicy(preemptive=True),
    'rr': RoundRobinPolicy,
    'mlfq': MLFQPolicy,
}


def create_policy(key: str, **options) -> SchedulingPolicy:
    factory = POLICIES.get(key.lower())
    if factory is None:
        raise InvalidConfiguration(f"unknown policy {key!r}; expected one of {', '.join(POLICIES)}")
    try:
        return factory(**options)
    except TypeError as exc:
        raise InvalidConfiguration(f"bad options for policy {key!r}: {exc}") from exc
