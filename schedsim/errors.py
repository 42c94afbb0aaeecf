# Exception taxonomy for the scheduling simulator
from typing import Any, Optional


class SchedulerError(Exception):
    """Base class for every error raised by the simulator."""


class InvalidConfiguration(SchedulerError, ValueError):
    pass


class InvalidStateTransition(SchedulerError):
    def __init__(self, process_id: str, process_name: str, from_state: Any, to_state: Any, time: int):
        self.process_id = process_id
        self.process_name = process_name
        self.from_state = from_state
        self.to_state = to_state
        self.time = time
        super().__init__(
            f"invalid transition {getattr(from_state, 'name', from_state)} -> "
            f"{getattr(to_state, 'name', to_state)} for {process_name} (id={process_id}) at t={time}"
        )


class NoPolicySet(SchedulerError):
    def __init__(self, time: int):
        self.time = time
        super().__init__(f"step() called at t={time} with no scheduling policy set")


class ProcessNotFound(SchedulerError, KeyError):
    def __init__(self, process_id: str):
        self.process_id = process_id
        super().__init__(process_id)

    def __str__(self):
        return f"no process with id {self.process_id!r}"


class SimulationBoundExceeded(SchedulerError):
    """Raised when simulated time passes the safety bound of a run.

    ``result`` holds the partial trace, metrics and process snapshots at the
    moment the run was aborted.
    """

    def __init__(self, max_time: int, result: Optional[Any] = None):
        self.max_time = max_time
        self.result = result
        completed = len(result.completed) if result is not None else 0
        total = len(result.processes) if result is not None else 0
        super().__init__(
            f"simulation exceeded max_time={max_time} with {completed}/{total} processes terminated"
        )
