"""
simulate.py


Discrete-time simulation of a single-CPU process scheduler.


Reads a sysconfig file (policy, quanta, context-switch cost, safety bound,
random seed) and a workload file (one process per line), runs the workload
to completion and prints one result line per process followed by a final
``measurements <total_time> <cpu_utilisation>`` line.


Usage:
python simulate.py sysconfig.txt workload.txt
python simulate.py sysconfig.txt --demo convoy
python simulate.py sysconfig.txt workload.txt --compare
"""


import argparse
import logging
import sys

from schedio.parser import parse_sysconfig, parse_workload
from schedio.scenarios import DEMOS, load_demo
from schedsim.errors import SchedulerError
from schedsim.runner import compare_policies, run_to_completion


def _fmt(value):
    return '-' if value is None else value


def print_result(result):
    for p in result.processes:
        print(f"process {p.name} arrival {p.arrival_time} burst {p.burst_time} "
              f"start {_fmt(p.start_time)} completion {_fmt(p.completion_time)} "
              f"waiting {p.waiting_time} turnaround {_fmt(p.turnaround_time)} "
              f"response {_fmt(p.response_time)}")
    m = result.metrics
    print(f"averages waiting {m.avg_waiting_time:.2f} turnaround {m.avg_turnaround_time:.2f} "
          f"response {m.avg_response_time:.2f} throughput {m.throughput:.3f} switches {m.context_switches}")
    print(f"measurements {result.total_time} {int(m.cpu_utilization)}")


def print_comparison(results):
    for key, result in results.items():
        m = result.metrics
        print(f"compare {key} time {result.total_time} waiting {m.avg_waiting_time:.2f} "
              f"turnaround {m.avg_turnaround_time:.2f} response {m.avg_response_time:.2f} "
              f"switches {m.context_switches} cpu {int(m.cpu_utilization)}")


def main(argv=None):
    parser = argparse.ArgumentParser(description='single-CPU scheduling simulator')
    parser.add_argument('sysconfig', help='Path to sysconfig file')
    parser.add_argument('workload', nargs='?', help='Path to workload file')
    parser.add_argument('--demo', choices=sorted(DEMOS), help='Use a built-in workload instead of a file')
    parser.add_argument('--compare', action='store_true', help='Run every policy on the workload')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every simulation event')
    args = parser.parse_args(argv)

    if (args.workload is None) == (args.demo is None):
        parser.error('give exactly one of a workload file or --demo')

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        config = parse_sysconfig(args.sysconfig)
        definitions = load_demo(args.demo) if args.demo else parse_workload(args.workload)
        print(f"found {len(definitions)} processes")
        if args.compare:
            results = compare_policies(
                definitions,
                policy_options={key: config.policy_options(key) for key in ('rr', 'mlfq')},
                max_time=config.max_time,
                context_switch_overhead=config.context_switch,
                seed=config.seed,
            )
            print_comparison(results)
        else:
            policy = config.build_policy()
            print(f"policy is {policy.name}")
            result = run_to_completion(policy, definitions, max_time=config.max_time,
                                       context_switch_overhead=config.context_switch, seed=config.seed)
            print_result(result)
    except (SchedulerError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
