import argparse
import json
import logging
import sys
from typing import List, Optional

from .aggregate import MERGE_POLICIES
from .analysis import AnalysisConfig, ConfigurationError, analyze
from .report import render

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="thread-sampler",
        description="Summarize periodically captured JVM thread dumps and per-thread CPU usage.",
    )
    p.add_argument("samples_dir", help="Directory holding the captured snapshot files")
    p.add_argument("-s", "--stack-trace", action="store_true", help="Show the most frequent stack traces")
    p.add_argument("-n", "--number-of-stack-trace-samples", type=int, default=5,
                   help="Stack traces to show per state or thread (default: 5)")
    p.add_argument("-l", "--number-of-stack-trace-lines", type=int, default=100,
                   help="Frames kept per stack trace (default: 100)")
    p.add_argument("-w", "--column-width", type=int, default=100,
                   help="Wrap stack trace text at this width (default: 100)")
    p.add_argument("-c", "--cpu-usage", action="store_true", help="Rank threads by CPU usage")
    p.add_argument("-t", "--number-of-threads", type=int, default=100,
                   help="Threads read per CPU usage file and ranked (default: 100)")
    p.add_argument("--merge-policy", choices=MERGE_POLICIES, default="pairwise",
                   help="How CPU samples of one thread are averaged (default: pairwise)")
    p.add_argument("--thread-dump-pattern", default="jstack*", help="Glob for thread dump files")
    p.add_argument("--cpu-usage-pattern", default="top*", help="Glob for CPU usage files")
    p.add_argument("--json", action="store_true", help="Print the report as JSON")
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress for every file")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = AnalysisConfig(
        samples_dir=args.samples_dir,
        number_of_stack_trace_samples=args.number_of_stack_trace_samples,
        number_of_stack_trace_lines=args.number_of_stack_trace_lines,
        stack_trace=args.stack_trace,
        column_width=args.column_width,
        cpu_usage=args.cpu_usage,
        number_of_threads=args.number_of_threads,
        merge_policy=args.merge_policy,
        thread_dump_pattern=args.thread_dump_pattern,
        cpu_usage_pattern=args.cpu_usage_pattern,
    )
    try:
        config.validate()
    except ConfigurationError as e:
        parser.error(str(e))

    try:
        report = analyze(config)
    except OSError as e:
        logger.error("Cannot read snapshot: %s", e)
        return 1

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(render(report, width=config.column_width))
    return 0


if __name__ == "__main__":
    sys.exit(main())
