import logging
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

logger = logging.getLogger(__name__)

CPU_FIELD = 0
THREAD_ID_FIELD = 5
MIN_FIELDS = 6


@dataclass(frozen=True)
class CpuSample:
    thread_id: int
    cpu_percent: float
    source_file: str


def parse_usage_row(line: str, source_file: str = "") -> Optional[CpuSample]:
    fields = line.split()
    if len(fields) < MIN_FIELDS:
        return None
    try:
        cpu_percent = float(fields[CPU_FIELD])
        thread_id = int(fields[THREAD_ID_FIELD])
    except ValueError:
        return None
    if not math.isfinite(cpu_percent):
        return None
    return CpuSample(thread_id=thread_id, cpu_percent=cpu_percent, source_file=source_file)


def read_cpu_samples(
    lines: Iterable[str], source_file: str = "", max_threads: int = 100
) -> Iterator[CpuSample]:
    """
    Yield the busiest thread samples of one usage snapshot.

    Rows must already be sorted by CPU percentage, highest first: reading stops
    at the first 0.0 row, and after ``max_threads`` accepted samples. Header
    and malformed rows (including nan or inf percentages) are skipped and not
    counted towards ``max_threads``. Unsorted input gives wrong results; it is
    not re-sorted here.
    """
    if max_threads <= 0:
        return
    accepted = 0
    for line in lines:
        sample = parse_usage_row(line, source_file)
        if sample is None:
            if line.strip():
                logger.debug("Skipping malformed usage row in %s: %r", source_file, line.rstrip())
            continue
        if sample.cpu_percent == 0.0:
            break
        yield sample
        accepted += 1
        if accepted >= max_threads:
            break
