# Built-in demo workloads
from typing import Dict, List

from schedsim.errors import InvalidConfiguration
from schedsim.process import ProcessDefinition

DEMOS: Dict[str, List[ProcessDefinition]] = {
    # one long job ahead of several short ones
    'convoy': [
        ProcessDefinition(name='LongJob', arrival_time=0, burst_time=24),
        ProcessDefinition(name='Quick1', arrival_time=1, burst_time=3),
        ProcessDefinition(name='Quick2', arrival_time=2, burst_time=2),
        ProcessDefinition(name='Quick3', arrival_time=3, burst_time=4),
    ],
    # short jobs keep arriving while a long one waits
    'starvation': [
        ProcessDefinition(name='LongWait', arrival_time=0, burst_time=15),
        ProcessDefinition(name='Short1', arrival_time=1, burst_time=2),
        ProcessDefinition(name='Short2', arrival_time=4, burst_time=2),
        ProcessDefinition(name='Short3', arrival_time=7, burst_time=2),
        ProcessDefinition(name='Short4', arrival_time=10, burst_time=2),
    ],
    'balanced': [
        ProcessDefinition(name='P1', arrival_time=0, burst_time=8),
        ProcessDefinition(name='P2', arrival_time=1, burst_time=4),
        ProcessDefinition(name='P3', arrival_time=2, burst_time=9),
        ProcessDefinition(name='P4', arrival_time=3, burst_time=5),
    ],
    'io-bound': [
        ProcessDefinition(name='Interactive1', arrival_time=0, burst_time=12, io_frequency=0.3),
        ProcessDefinition(name='Interactive2', arrival_time=1, burst_time=10, io_frequency=0.25),
        ProcessDefinition(name='CPUBound', arrival_time=2, burst_time=20),
    ],
}


def load_demo(name: str) -> List[ProcessDefinition]:
    try:
        return list(DEMOS[name])
    except KeyError:
        raise InvalidConfiguration(f"unknown demo {name!r}; expected one of {', '.join(DEMOS)}") from None
