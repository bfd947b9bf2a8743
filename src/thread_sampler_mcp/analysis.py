import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Union

from .aggregate import MERGE_POLICIES, CpuMerger, StateAggregator, top_k
from .deadlock import DeadlockDetector
from .models import CpuReport, CpuRow, StackSample, StateReport, StateRow, ThreadStackSample
from .parser import DeadlockEvent, DumpParser, is_deadlock_marker
from .resolver import IdentityIndex, thread_id_to_nid
from .usage import read_cpu_samples

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    pass


@dataclass
class AnalysisConfig:
    samples_dir: str
    number_of_stack_trace_samples: int = 5
    number_of_stack_trace_lines: int = 100
    stack_trace: bool = False
    column_width: int = 100
    cpu_usage: bool = False
    number_of_threads: int = 100
    merge_policy: str = "pairwise"
    thread_dump_pattern: str = "jstack*"
    cpu_usage_pattern: str = "top*"

    def validate(self) -> None:
        if not isinstance(self.samples_dir, str) or not self.samples_dir:
            raise ConfigurationError("'samples_dir' must be a non-empty string")
        if not os.path.exists(self.samples_dir):
            raise ConfigurationError(f"Samples directory not found: {self.samples_dir}")
        if not os.path.isdir(self.samples_dir):
            raise ConfigurationError(f"Samples path is not a directory: {self.samples_dir}")
        for name in (
            "number_of_stack_trace_samples",
            "number_of_stack_trace_lines",
            "column_width",
            "number_of_threads",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"'{name}' must be a positive integer")
        if self.merge_policy not in MERGE_POLICIES:
            raise ConfigurationError("'merge_policy' must be one of: " + "|".join(MERGE_POLICIES))
        for name in ("thread_dump_pattern", "cpu_usage_pattern"):
            if not isinstance(getattr(self, name), str) or not getattr(self, name):
                raise ConfigurationError(f"'{name}' must be a non-empty string")


def snapshot_files(samples_dir: str, pattern: str) -> List[Path]:
    """Regular files matching ``pattern``, in name order (the processing order)."""
    return sorted(
        (p for p in Path(samples_dir).glob(pattern) if p.is_file()),
        key=lambda p: p.name,
    )


def _open(path: Path):
    return open(path, "r", encoding="utf-8", errors="replace")


def watch_deadlocks(lines: Iterable[str], source_file: str, detector: DeadlockDetector) -> Iterator[str]:
    """Pass ``lines`` through, recording any deadlock marker on the way."""
    for line in lines:
        if is_deadlock_marker(line):
            detector.record(DeadlockEvent(source_file))
        yield line


def percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def analyze_thread_states(config: AnalysisConfig) -> StateReport:
    config.validate()
    dump_files = snapshot_files(config.samples_dir, config.thread_dump_pattern)

    aggregator = StateAggregator(collect_signatures=config.stack_trace)
    detector = DeadlockDetector()
    for index, path in enumerate(dump_files, 1):
        parser = DumpParser(path.name, max_frames=config.number_of_stack_trace_lines)
        with _open(path) as f:
            for item in parser.parse(f):
                if isinstance(item, DeadlockEvent):
                    detector.record(item)
                else:
                    aggregator.add(item)
        logger.debug("Parsed thread dump %d/%d: %s", index, len(dump_files), path.name)

    grand_total = aggregator.grand_total
    rows: List[StateRow] = []
    for aggregate in aggregator.ordered():
        samples: List[StackSample] = []
        if config.stack_trace:
            for signature, count in top_k(aggregate.signature_histogram, config.number_of_stack_trace_samples):
                samples.append(StackSample(count, percent(count, aggregate.total_count), signature))
        rows.append(
            StateRow(
                state=aggregate.state,
                count=aggregate.total_count,
                percent=percent(aggregate.total_count, grand_total),
                samples=samples,
            )
        )

    warning = detector.warning()
    if warning:
        logger.warning(warning)
    logger.info("Analyzed %d thread samples from %d dump file(s)", grand_total, len(dump_files))

    return StateReport(
        rows=rows,
        total=grand_total,
        files=[p.name for p in dump_files],
        deadlock_files=list(detector.files),
        deadlock_warning=warning,
    )


def rank_thread_cpu(config: AnalysisConfig) -> CpuReport:
    config.validate()
    usage_files = snapshot_files(config.samples_dir, config.cpu_usage_pattern)
    dump_files = snapshot_files(config.samples_dir, config.thread_dump_pattern)

    merger = CpuMerger(policy=config.merge_policy)
    for index, path in enumerate(usage_files, 1):
        with _open(path) as f:
            for sample in read_cpu_samples(f, path.name, max_threads=config.number_of_threads):
                merger.add(sample)
        logger.debug("Read CPU usage %d/%d: %s", index, len(usage_files), path.name)

    ranked = merger.ranked(config.number_of_threads)
    identities = IdentityIndex(
        (r.thread_id for r in ranked),
        max_frames=config.number_of_stack_trace_lines,
        collect_stacks=config.stack_trace,
    )
    detector = DeadlockDetector()
    for path in dump_files:
        with _open(path) as f:
            identities.scan(watch_deadlocks(f, path.name, detector))

    rows: List[CpuRow] = []
    for rank, record in enumerate(ranked, 1):
        record.thread_name = identities.name_of(record.thread_id)
        samples: List[ThreadStackSample] = []
        if config.stack_trace:
            histogram = identities.stack_histogram(record.thread_id)
            occurrences = sum(histogram.values())
            for (state, signature), count in top_k(histogram, config.number_of_stack_trace_samples):
                samples.append(ThreadStackSample(count, percent(count, occurrences), state, signature))
        rows.append(
            CpuRow(
                rank=rank,
                thread_id=record.thread_id,
                nid="0x" + thread_id_to_nid(record.thread_id),
                name=record.thread_name,
                average=record.running_average,
                sample_count=record.sample_count,
                samples=samples,
            )
        )

    warning = detector.warning()
    if warning:
        logger.warning(warning)
    logger.info(
        "Ranked %d of %d threads from %d CPU usage file(s)",
        len(rows), len(merger.records), len(usage_files),
    )
    return CpuReport(
        rows=rows,
        merge_policy=config.merge_policy,
        files=[p.name for p in usage_files],
        dump_files=[p.name for p in dump_files],
        deadlock_files=list(detector.files),
        deadlock_warning=warning,
    )


def analyze(config: AnalysisConfig) -> Union[StateReport, CpuReport]:
    if config.cpu_usage:
        return rank_thread_cpu(config)
    return analyze_thread_states(config)
