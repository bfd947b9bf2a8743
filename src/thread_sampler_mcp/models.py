"""Structured report records, independent of how they are rendered."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class StackSample:
    count: int
    percent: float
    signature: str


@dataclass(frozen=True)
class StateRow:
    state: str
    count: int
    percent: float
    samples: List[StackSample] = field(default_factory=list)


@dataclass
class StateReport:
    rows: List[StateRow]
    total: int
    files: List[str]
    deadlock_files: List[str] = field(default_factory=list)
    deadlock_warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ThreadStackSample:
    count: int
    percent: float
    state: str
    signature: str


@dataclass(frozen=True)
class CpuRow:
    rank: int
    thread_id: int
    nid: str
    name: str
    average: float
    sample_count: int
    samples: List[ThreadStackSample] = field(default_factory=list)


@dataclass
class CpuReport:
    rows: List[CpuRow]
    merge_policy: str
    files: List[str]
    dump_files: List[str]
    deadlock_files: List[str] = field(default_factory=list)
    deadlock_warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
