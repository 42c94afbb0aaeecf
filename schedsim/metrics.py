from dataclasses import dataclass
from typing import Sequence

from schedsim.process import ProcessSnapshot


@dataclass(frozen=True)
class Metrics:
    avg_waiting_time: float = 0.0
    avg_turnaround_time: float = 0.0
    avg_response_time: float = 0.0
    cpu_utilization: float = 0.0   # percent, 0..100
    throughput: float = 0.0        # completions per time unit
    context_switches: int = 0
    completed: int = 0
    total_time: int = 0


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_metrics(completed: Sequence[ProcessSnapshot], total_time: int, idle_time: int,
                    context_switches: int, context_switch_overhead: int) -> Metrics:
    """Aggregate statistics over terminated processes and engine counters."""
    elapsed = max(total_time, 1)
    busy = total_time - idle_time - context_switches * context_switch_overhead
    return Metrics(
        avg_waiting_time=_mean([p.waiting_time for p in completed]),
        avg_turnaround_time=_mean([p.turnaround_time or 0 for p in completed]),
        avg_response_time=_mean([p.response_time or 0 for p in completed]),
        cpu_utilization=min(100.0, max(0.0, busy / elapsed * 100)),
        throughput=len(completed) / elapsed,
        context_switches=context_switches,
        completed=len(completed),
        total_time=total_time,
    )
