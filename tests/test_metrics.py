import pytest

from schedsim.metrics import Metrics, compute_metrics
from schedsim.process import Process, ProcessState


def finished(arrival, run_at, done_at, burst=1):
    p = Process(burst_time=burst, arrival_time=arrival)
    p.transition(ProcessState.READY, arrival)
    p.transition(ProcessState.RUNNING, run_at)
    p.transition(ProcessState.TERMINATED, done_at)
    return p.snapshot()


def test_no_completions():
    m = compute_metrics([], total_time=0, idle_time=0, context_switches=0, context_switch_overhead=1)
    assert m == Metrics()
    m = compute_metrics([], total_time=10, idle_time=4, context_switches=3, context_switch_overhead=1)
    assert (m.avg_waiting_time, m.avg_turnaround_time, m.avg_response_time) == (0, 0, 0)
    assert m.throughput == 0
    assert m.context_switches == 3
    assert m.cpu_utilization == pytest.approx(30.0)


def test_averages():
    done = [finished(0, 1, 5, burst=4), finished(2, 6, 9, burst=3)]
    m = compute_metrics(done, total_time=10, idle_time=1, context_switches=2, context_switch_overhead=1)
    assert m.avg_waiting_time == pytest.approx(2.5)
    assert m.avg_turnaround_time == pytest.approx(6.0)
    assert m.avg_response_time == pytest.approx(2.5)
    assert m.cpu_utilization == pytest.approx(70.0)
    assert m.throughput == pytest.approx(0.2)
    assert m.completed == 2


def test_never_dispatched_counts_zero_response():
    p = Process(burst_time=3)
    p.kill(4)
    m = compute_metrics([p.snapshot()], total_time=4, idle_time=0, context_switches=0,
                        context_switch_overhead=1)
    assert m.avg_response_time == 0
    assert m.avg_turnaround_time == 4


@pytest.mark.parametrize('total,idle,switches,overhead', [
    (0, 0, 0, 1),
    (5, 5, 3, 1),
    (3, 0, 10, 2),
])
def test_utilization_is_bounded(total, idle, switches, overhead):
    m = compute_metrics([], total, idle, switches, overhead)
    assert 0 <= m.cpu_utilization <= 100
