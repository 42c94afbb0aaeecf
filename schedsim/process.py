import logging
import numbers
import uuid
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Mapping, Optional

from schedsim.errors import InvalidConfiguration, InvalidStateTransition

log = logging.getLogger(__name__)

DEFAULT_PRIORITY = 5


class ProcessState(Enum):
    NEW = auto()
    READY = auto()
    RUNNING = auto()
    WAITING = auto()
    TERMINATED = auto()


VALID_TRANSITIONS = {
    ProcessState.NEW: (ProcessState.READY,),
    ProcessState.READY: (ProcessState.RUNNING, ProcessState.TERMINATED),
    ProcessState.RUNNING: (ProcessState.READY, ProcessState.WAITING, ProcessState.TERMINATED),
    ProcessState.WAITING: (ProcessState.READY,),
    ProcessState.TERMINATED: (),
}


def color_for(name: str) -> str:
    hue = (sum(ord(ch) for ch in name) * 137) % 360
    return f"hsl({hue}, 70%, 55%)"


def require_int(value: Any, field_name: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidConfiguration(f"{field_name} must be an integer, got {value!r}")
    if value < minimum:
        raise InvalidConfiguration(f"{field_name} must be >= {minimum}, got {value}")
    return int(value)


def _clamp_frequency(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real) or value != value:
        raise InvalidConfiguration(f"io_frequency must be a number in [0, 1], got {value!r}")
    return min(1.0, max(0.0, float(value)))


@dataclass(frozen=True)
class ProcessDefinition:
    """Caller-side description of a process, cloned into a fresh Process per run."""
    burst_time: int
    name: Optional[str] = None
    arrival_time: int = 0
    priority: int = DEFAULT_PRIORITY
    io_frequency: float = 0.0
    id: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'ProcessDefinition':
        if 'burst_time' not in data:
            raise InvalidConfiguration(f"process definition {dict(data)!r} has no burst_time")
        unknown = set(data) - {'burst_time', 'name', 'arrival_time', 'priority', 'io_frequency', 'id'}
        if unknown:
            raise InvalidConfiguration(f"unknown process definition fields: {sorted(unknown)}")
        return cls(**data)


@dataclass(frozen=True)
class ExecutionResult:
    completed: bool
    requests_io: bool


@dataclass(frozen=True)
class ProcessSnapshot:
    id: str
    name: str
    state: ProcessState
    arrival_time: int
    burst_time: int
    remaining_time: int
    priority: int
    io_frequency: float
    queue_level: int
    waiting_time: int
    io_time: int
    start_time: Optional[int]
    completion_time: Optional[int]
    turnaround_time: Optional[int]
    response_time: Optional[int]
    color: str
    progress: float

    @property
    def executed_time(self) -> int:
        return self.burst_time - self.remaining_time


class Process:
    def __init__(self, burst_time: int, name: Optional[str] = None, arrival_time: int = 0,
                 priority: int = DEFAULT_PRIORITY, io_frequency: float = 0.0,
                 process_id: Optional[str] = None):
        # static attributes
        self.burst_time = require_int(burst_time, 'burst_time', 1)
        self.arrival_time = require_int(arrival_time, 'arrival_time', 0)
        self.priority = require_int(priority, 'priority', 0)
        self.io_frequency = _clamp_frequency(io_frequency)
        self.id = process_id if process_id is not None else str(uuid.uuid4())
        self.name = name if name else f"P-{self.id[:6]}"
        self.color = color_for(self.name)
        self.reset()

    @classmethod
    def from_definition(cls, definition: ProcessDefinition) -> 'Process':
        return cls(definition.burst_time, name=definition.name, arrival_time=definition.arrival_time,
                   priority=definition.priority, io_frequency=definition.io_frequency,
                   process_id=definition.id)

    def reset(self) -> None:
        """Rewind every runtime field; static attributes and identity are kept."""
        self.state = ProcessState.NEW
        self.remaining_time = self.burst_time
        self.queue_level = 0
        self.waiting_time = 0
        self.quantum_used = 0
        self.start_time: Optional[int] = None
        self.completion_time: Optional[int] = None
        self.turnaround_time: Optional[int] = None
        self.response_time: Optional[int] = None
        self.wait_start: Optional[int] = None
        self.io_remaining = 0
        self.io_time = 0
        self.io_started_at: Optional[int] = None

    @property
    def is_terminated(self) -> bool:
        return self.state is ProcessState.TERMINATED

    def can_transition(self, new_state: ProcessState) -> bool:
        return new_state in VALID_TRANSITIONS[self.state]

    def transition(self, new_state: ProcessState, current_time: int) -> None:
        if not self.can_transition(new_state):
            self._reject(new_state, current_time)
        self._enter(new_state, current_time)

    def kill(self, current_time: int) -> None:
        # external interrupt: any live state may go straight to TERMINATED
        if self.is_terminated:
            self._reject(ProcessState.TERMINATED, current_time)
        self._enter(ProcessState.TERMINATED, current_time)

    def _reject(self, new_state: ProcessState, current_time: int) -> None:
        err = InvalidStateTransition(self.id, self.name, self.state, new_state, current_time)
        log.warning("[t=%s] %s", current_time, err)
        raise err

    def _enter(self, new_state: ProcessState, current_time: int) -> None:
        if self.io_started_at is not None:
            self.io_time += current_time - self.io_started_at
            self.io_started_at = None

        if new_state is ProcessState.READY:
            self.quantum_used = 0
            self.wait_start = current_time
        elif new_state is ProcessState.RUNNING:
            self._accrue_wait(current_time)
            if self.start_time is None:
                self.start_time = current_time
                self.response_time = current_time - self.arrival_time
        elif new_state is ProcessState.WAITING:
            self.io_started_at = current_time
        elif new_state is ProcessState.TERMINATED:
            self._accrue_wait(current_time)
            # a process killed before it arrives completes on arrival
            self.completion_time = max(current_time, self.arrival_time)
            self.turnaround_time = self.completion_time - self.arrival_time
            self.remaining_time = 0
            self.io_remaining = 0
        self.state = new_state

    def _accrue_wait(self, current_time: int) -> None:
        if self.wait_start is not None:
            self.waiting_time += current_time - self.wait_start
            self.wait_start = None

    def execute_one_unit(self, rng) -> ExecutionResult:
        """Run for one time unit.

        ``rng`` only needs a ``random()`` method; it is consulted once per call,
        and only for processes with a non-zero I/O frequency.
        """
        used = min(1, self.remaining_time)
        self.remaining_time -= used
        self.quantum_used += used
        requests_io = (self.io_frequency > 0
                       and self.remaining_time > 0
                       and rng.random() < self.io_frequency)
        return ExecutionResult(completed=self.remaining_time == 0, requests_io=requests_io)

    # I/O countdown
    def start_io(self, duration: int) -> None:
        self.io_remaining = require_int(duration, 'io duration', 1)

    def advance_io(self, elapsed: int = 1) -> bool:
        self.io_remaining = max(0, self.io_remaining - elapsed)
        return self.io_remaining == 0

    # MLFQ level helpers
    def demote(self, max_level: int) -> None:
        if self.queue_level < max_level:
            self.queue_level += 1
            self.quantum_used = 0

    def promote(self) -> None:
        if self.queue_level > 0:
            self.queue_level -= 1
            self.quantum_used = 0

    def snapshot(self) -> ProcessSnapshot:
        return ProcessSnapshot(
            id=self.id,
            name=self.name,
            state=self.state,
            arrival_time=self.arrival_time,
            burst_time=self.burst_time,
            remaining_time=self.remaining_time,
            priority=self.priority,
            io_frequency=self.io_frequency,
            queue_level=self.queue_level,
            waiting_time=self.waiting_time,
            io_time=self.io_time,
            start_time=self.start_time,
            completion_time=self.completion_time,
            turnaround_time=self.turnaround_time,
            response_time=self.response_time,
            color=self.color,
            progress=(self.burst_time - self.remaining_time) / self.burst_time * 100,
        )

    def __repr__(self) -> str:
        return (f"Process(name={self.name}, state={self.state.name}, arrival={self.arrival_time}, "
                f"remaining={self.remaining_time}/{self.burst_time}, level={self.queue_level})")
