from collections import Counter

import pytest

from thread_sampler_mcp.aggregate import CpuMerger, StateAggregator, top_k
from thread_sampler_mcp.parser import ThreadRecord
from thread_sampler_mcp.usage import CpuSample


def record(state, *frames):
    return ThreadRecord(state, tuple(frames), "f")


class TestStateAggregator:
    def test_counts_and_histogram(self):
        aggregator = StateAggregator(collect_signatures=True)
        for r in [record("WAITING", "a"), record("RUNNABLE", "x", "y"), record("WAITING", "b"), record("WAITING", "a")]:
            aggregator.add(r)

        assert aggregator.grand_total == 4
        waiting = aggregator.aggregates["WAITING"]
        assert waiting.total_count == 3
        assert waiting.signature_histogram == Counter({"a": 2, "b": 1})
        assert aggregator.aggregates["RUNNABLE"].signature_histogram == Counter({"x\ny": 1})

    def test_histogram_not_collected_by_default(self):
        aggregator = StateAggregator()
        aggregator.add(record("BLOCKED", "a"))
        assert aggregator.aggregates["BLOCKED"].total_count == 1
        assert not aggregator.aggregates["BLOCKED"].signature_histogram

    def test_ordered_uses_canonical_state_order(self):
        aggregator = StateAggregator()
        for state in ["TERMINATED", "WAITING", "NEW", "RUNNABLE", "WAITING"]:
            aggregator.add(record(state, "a"))
        assert [a.state for a in aggregator.ordered()] == ["RUNNABLE", "WAITING", "NEW", "TERMINATED"]

    def test_histogram_counts_never_exceed_total(self):
        aggregator = StateAggregator(collect_signatures=True)
        for frames in [("a",), ("a",), ("b",), ("a", "b")]:
            aggregator.add(record("RUNNABLE", *frames))
        aggregate = aggregator.aggregates["RUNNABLE"]
        assert sum(aggregate.signature_histogram.values()) == aggregate.total_count
        assert max(aggregate.signature_histogram.values()) <= aggregate.total_count


class TestTopK:
    def test_descending_with_first_seen_ties(self):
        histogram = Counter(["b", "a", "c", "a", "c", "d"])
        assert top_k(histogram, 3) == [("a", 2), ("c", 2), ("b", 1)]

    def test_never_more_than_available(self):
        histogram = Counter(["x", "y"])
        assert len(top_k(histogram, 5)) == 2
        assert top_k(Counter(), 5) == []


class TestCpuMerger:
    def test_pairwise_recurrence_weights_recent_samples(self):
        merger = CpuMerger()
        for cpu in (10.0, 20.0, 60.0):
            merger.add(CpuSample(7, cpu, "f"))
        record = merger.records[7]
        assert record.running_average == pytest.approx(((10.0 + 20.0) / 2 + 60.0) / 2)
        assert record.running_average != pytest.approx((10.0 + 20.0 + 60.0) / 3)
        assert record.sample_count == 3

    def test_mean_policy(self):
        merger = CpuMerger(policy="mean")
        for cpu in (10.0, 20.0, 60.0):
            merger.add(CpuSample(7, cpu, "f"))
        assert merger.records[7].running_average == pytest.approx(30.0)

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            CpuMerger(policy="median")

    def test_ranked_descending_unique_and_limited(self):
        merger = CpuMerger()
        for tid, cpu in [(1, 10.0), (2, 50.0), (3, 30.0), (1, 90.0), (4, 30.0)]:
            merger.add(CpuSample(tid, cpu, "f"))

        ranked = merger.ranked(10)
        assert [r.thread_id for r in ranked] == [1, 2, 3, 4]
        assert len({r.thread_id for r in ranked}) == len(ranked)
        assert [r.thread_id for r in merger.ranked(2)] == [1, 2]

    def test_ties_keep_first_seen_order(self):
        merger = CpuMerger()
        for tid in (5, 3, 9):
            merger.add(CpuSample(tid, 25.0, "f"))
        assert [r.thread_id for r in merger.ranked(3)] == [5, 3, 9]
