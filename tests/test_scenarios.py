import os
import re
import subprocess
import sys
import pytest


def run_case(sysconfig, workload):
    repo_root = os.path.dirname(os.path.dirname(__file__))
    result = subprocess.run(
        [sys.executable, os.path.join(repo_root, 'simulate.py'),
         os.path.join(repo_root, sysconfig), os.path.join(repo_root, workload)],
        capture_output=True,
        text=True,
        cwd=repo_root,
        check=False,
    )
    return result


def measurements(result):
    assert result.returncode == 0, f"Return code {result.returncode}, stderr: {result.stderr}"
    lines = [ln.strip() for ln in result.stdout.splitlines() if ln.strip()]
    assert lines, 'No output'
    last = lines[-1]
    m = re.match(r"^measurements\s+(\d+)\s+(\d+)$", last)
    assert m, f"Malformed measurements line: {last}\nFull output:\n{result.stdout}"
    return int(m.group(1)), int(m.group(2))


# Hand-traced: every dispatch costs `contextswitch` units before the process runs
@pytest.mark.parametrize(
    'sysconfig,workload,total_time,cpu',
    [
        ('examples/sysconfig.txt', 'examples/workload.txt', 16, 81),
        ('examples/sysconfig_nocs.txt', 'examples/workload.txt', 13, 100),
        ('examples/sysconfig_rr.txt', 'examples/workload_rr.txt', 13, 61),
    ],
)
def test_scenarios(sysconfig, workload, total_time, cpu):
    assert measurements(run_case(sysconfig, workload)) == (total_time, cpu)


def test_fcfs_process_lines():
    result = run_case('examples/sysconfig.txt', 'examples/workload.txt')
    lines = [ln for ln in result.stdout.splitlines() if ln.startswith('process ')]
    assert lines == [
        'process A arrival 0 burst 10 start 1 completion 11 waiting 1 turnaround 11 response 1',
        'process B arrival 1 burst 2 start 12 completion 14 waiting 11 turnaround 13 response 11',
        'process C arrival 2 burst 1 start 15 completion 16 waiting 13 turnaround 14 response 13',
    ]


@pytest.mark.parametrize('sysconfig', ['examples/sysconfig_srtf.txt', 'examples/sysconfig_mlfq.txt'])
def test_io_workload_terminates(sysconfig):
    result = run_case(sysconfig, 'examples/workload_io.txt')
    total_time, cpu = measurements(result)
    # 42 units of work plus at least one switch per process
    assert total_time >= 45
    assert 0 <= cpu <= 100
    assert ' completion - ' not in result.stdout


@pytest.mark.parametrize(
    'sysconfig,workload,message',
    [
        ('examples/sysconfig_bad.txt', 'examples/workload.txt', "unknown policy 'lottery'"),
        ('examples/sysconfig.txt', 'examples/workload_bad.txt', 'burst_time must be >= 1'),
        ('examples/sysconfig_tight_bound.txt', 'examples/workload.txt', 'exceeded max_time=5'),
    ],
)
def test_errors_exit_nonzero(sysconfig, workload, message):
    result = run_case(sysconfig, workload)
    assert result.returncode == 1
    assert message in result.stderr
