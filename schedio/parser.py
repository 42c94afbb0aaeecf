# sysconfig + workload file parsers
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from schedsim.engine import DEFAULT_CONTEXT_SWITCH_OVERHEAD
from schedsim.errors import InvalidConfiguration
from schedsim.policy import DEFAULT_MLFQ_QUANTA, SchedulingPolicy, create_policy
from schedsim.process import DEFAULT_PRIORITY, Process, ProcessDefinition
from schedsim.runner import DEFAULT_MAX_TIME


@dataclass
class SimConfig:
    policy: str = 'fcfs'
    time_quantum: int = 4
    mlfq_quanta: Tuple[int, ...] = DEFAULT_MLFQ_QUANTA
    boost_interval: int = 50
    context_switch: int = DEFAULT_CONTEXT_SWITCH_OVERHEAD
    max_time: int = DEFAULT_MAX_TIME
    seed: Optional[int] = None

    def policy_options(self, key: Optional[str] = None) -> dict:
        key = key or self.policy
        if key == 'rr':
            return {'time_quantum': self.time_quantum}
        if key == 'mlfq':
            return {'num_queues': len(self.mlfq_quanta), 'quanta': self.mlfq_quanta,
                    'boost_interval': self.boost_interval}
        return {}

    def build_policy(self) -> SchedulingPolicy:
        return create_policy(self.policy, **self.policy_options())


def _lines(path: str):
    with open(path, 'r') as fh:
        for lineno, raw in enumerate(fh, 1):
            line = raw.split('#', 1)[0].strip()
            if line:
                yield lineno, re.split(r'\s+', line)


def _int(token: str, where: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise InvalidConfiguration(f"{where}: expected an integer, got {token!r}") from None


def parse_sysconfig(path: str) -> SimConfig:
    config = SimConfig()
    for lineno, parts in _lines(path):
        where = f"{path}:{lineno}"
        keyword, args = parts[0].lower(), parts[1:]
        if not args:
            raise InvalidConfiguration(f"{where}: {keyword} needs a value")
        if keyword == 'policy':
            config.policy = args[0].lower()
        elif keyword == 'timequantum':
            config.time_quantum = _int(args[0], where)
        elif keyword == 'mlfqquanta':
            config.mlfq_quanta = tuple(_int(a, where) for a in args)
        elif keyword == 'boostinterval':
            config.boost_interval = _int(args[0], where)
        elif keyword == 'contextswitch':
            config.context_switch = _int(args[0], where)
        elif keyword == 'maxtime':
            config.max_time = _int(args[0], where)
        elif keyword == 'seed':
            config.seed = _int(args[0], where)
        else:
            raise InvalidConfiguration(f"{where}: unknown directive {parts[0]!r}")
    # fail here rather than at the first step
    try:
        config.build_policy()
    except InvalidConfiguration as exc:
        raise InvalidConfiguration(f"{path}: {exc}") from None
    return config


def parse_workload(path: str) -> List[ProcessDefinition]:
    # <name> <arrival> <burst> [priority] [iofrequency]
    definitions = []
    for lineno, parts in _lines(path):
        where = f"{path}:{lineno}"
        if len(parts) < 3 or len(parts) > 5:
            raise InvalidConfiguration(f"{where}: expected 'name arrival burst [priority] [iofrequency]'")
        name = parts[0]
        arrival = _int(parts[1], where)
        burst = _int(parts[2], where)
        priority = _int(parts[3], where) if len(parts) > 3 else DEFAULT_PRIORITY
        io_frequency = 0.0
        if len(parts) > 4:
            try:
                io_frequency = float(parts[4])
            except ValueError:
                raise InvalidConfiguration(f"{where}: bad io frequency {parts[4]!r}") from None
        definition = ProcessDefinition(burst_time=burst, name=name, arrival_time=arrival,
                                       priority=priority, io_frequency=io_frequency)
        try:
            Process.from_definition(definition)
        except InvalidConfiguration as exc:
            raise InvalidConfiguration(f"{where}: {exc}") from None
        definitions.append(definition)
    return definitions
