from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class TraceKind(Enum):
    EXECUTION = 'execution'
    CONTEXT_SWITCH = 'context_switch'
    IDLE = 'idle'


@dataclass(frozen=True)
class TraceEntry:
    kind: TraceKind
    start: int
    end: int  # exclusive
    process_id: Optional[str] = None
    process_name: Optional[str] = None
    color: Optional[str] = None

    @property
    def duration(self) -> int:
        return self.end - self.start

    def __repr__(self):
        who = f", {self.process_name}" if self.process_name else ''
        return f"TraceEntry({self.kind.value} [{self.start},{self.end}){who})"


def execution_segments(trace: Iterable[TraceEntry]) -> Dict[str, List[Tuple[int, int]]]:
    """Merge back-to-back execution entries into (start, end) runs per process id."""
    segments: Dict[str, List[Tuple[int, int]]] = defaultdict(list)
    for entry in trace:
        if entry.kind is not TraceKind.EXECUTION:
            continue
        runs = segments[entry.process_id]
        if runs and runs[-1][1] == entry.start:
            runs[-1] = (runs[-1][0], entry.end)
        else:
            runs.append((entry.start, entry.end))
    return dict(segments)
