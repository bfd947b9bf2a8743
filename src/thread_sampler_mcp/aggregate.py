from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Hashable, List, Tuple, TypeVar

from .parser import THREAD_STATES, ThreadRecord
from .usage import CpuSample

MERGE_POLICIES = ("pairwise", "mean")

K = TypeVar("K", bound=Hashable)


def top_k(histogram: "Counter[K]", k: int) -> List[Tuple[K, int]]:
    """Most frequent keys first; equal counts keep first-seen order."""
    if k <= 0:
        return []
    return histogram.most_common(k)


@dataclass
class StateAggregate:
    state: str
    total_count: int = 0
    signature_histogram: Counter = field(default_factory=Counter)


class StateAggregator:
    def __init__(self, collect_signatures: bool = False) -> None:
        self.collect_signatures = collect_signatures
        self.aggregates: Dict[str, StateAggregate] = {}

    def add(self, record: ThreadRecord) -> None:
        aggregate = self.aggregates.get(record.state)
        if aggregate is None:
            aggregate = self.aggregates[record.state] = StateAggregate(record.state)
        aggregate.total_count += 1
        if self.collect_signatures:
            aggregate.signature_histogram[record.signature] += 1

    @property
    def grand_total(self) -> int:
        return sum(a.total_count for a in self.aggregates.values())

    def ordered(self) -> List[StateAggregate]:
        """Non-empty aggregates in canonical state order."""
        return [
            self.aggregates[s] for s in THREAD_STATES
            if s in self.aggregates and self.aggregates[s].total_count > 0
        ]


@dataclass
class ThreadCpuRecord:
    thread_id: int
    running_average: float
    sample_count: int = 1
    total: float = 0.0
    thread_name: str = ""


class CpuMerger:
    """
    Folds CPU samples into one record per thread.

    The default ``pairwise`` policy halves towards each new sample
    (``avg = (avg + s) / 2``), so later samples weigh more than earlier ones.
    ``mean`` is the plain arithmetic mean and has to be asked for.
    """

    def __init__(self, policy: str = "pairwise") -> None:
        if policy not in MERGE_POLICIES:
            raise ValueError(f"unknown merge policy: {policy!r}")
        self.policy = policy
        self.records: Dict[int, ThreadCpuRecord] = {}

    def add(self, sample: CpuSample) -> None:
        record = self.records.get(sample.thread_id)
        if record is None:
            self.records[sample.thread_id] = ThreadCpuRecord(
                thread_id=sample.thread_id,
                running_average=sample.cpu_percent,
                total=sample.cpu_percent,
            )
            return
        record.sample_count += 1
        record.total += sample.cpu_percent
        if self.policy == "pairwise":
            record.running_average = (record.running_average + sample.cpu_percent) / 2
        else:
            record.running_average = record.total / record.sample_count

    def ranked(self, limit: int) -> List[ThreadCpuRecord]:
        ordered = sorted(self.records.values(), key=lambda r: r.running_average, reverse=True)
        return ordered[:limit]
