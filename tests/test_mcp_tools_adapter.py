from pathlib import Path
import json

from thread_sampler_mcp.tools_adapter import (
    cpu_tool_call,
    state_tool_call,
)

BASE_DIR = Path(__file__).parent / "samples"


def test_state_adapter_happy_path():
    result = state_tool_call(str(BASE_DIR))
    assert result.ok, f"expected ok result, got error {result.error_code}: {result.error_message}"

    payload = json.loads(result.text or "{}")
    counts = {row["state"]: row["count"] for row in payload["rows"]}
    assert counts == {"RUNNABLE": 2, "WAITING": 2}
    assert payload["total"] == 4
    assert payload["deadlock_files"] == ["jstack_20240101_000010.txt"]
    assert "RUNNABLE: 2 (50.00%)" in payload["report"]
    assert "WAITING: 2 (50.00%)" in payload["report"]


def test_state_adapter_with_stack_trace():
    result = state_tool_call(str(BASE_DIR), stack_trace=True, number_of_stack_trace_samples=1)
    assert result.ok, f"stack mode failed: {result.error_code} {result.error_message}"
    payload = json.loads(result.text or "{}")
    assert all(len(row["samples"]) == 1 for row in payload["rows"])


def test_cpu_adapter_happy_path():
    result = cpu_tool_call(str(BASE_DIR), stack_trace=True)
    assert result.ok, f"cpu mode failed: {result.error_code} {result.error_message}"

    payload = json.loads(result.text or "{}")
    assert [row["name"] for row in payload["rows"]] == ["main", "worker-1", ""]
    assert payload["merge_policy"] == "pairwise"
    assert payload["rows"][0]["samples"][0]["state"] == "RUNNABLE"
    assert "nid=0x123" in payload["report"]


def test_state_adapter_missing_dir_error():
    result = state_tool_call("/path/that/does/not/exist")
    assert not result.ok
    assert result.error_code == "INVALID_PARAMS"


def test_cpu_adapter_invalid_params():
    bad_policy = cpu_tool_call(str(BASE_DIR), merge_policy="median")
    assert not bad_policy.ok and bad_policy.error_code == "INVALID_PARAMS"

    bad_threads = cpu_tool_call(str(BASE_DIR), number_of_threads=0)
    assert not bad_threads.ok and bad_threads.error_code == "INVALID_PARAMS"

    bad_flag = cpu_tool_call(str(BASE_DIR), stack_trace="yes")
    assert not bad_flag.ok and bad_flag.error_code == "INVALID_PARAMS"


def test_unreadable_snapshot_is_internal_error(monkeypatch):
    def failing_open(path):
        raise OSError(f"cannot read {path.name}")

    monkeypatch.setattr("thread_sampler_mcp.analysis._open", failing_open)

    result = state_tool_call(str(BASE_DIR))
    assert not result.ok
    assert result.error_code == "INTERNAL_ERROR"
    assert "cannot read jstack_20240101_000000.txt" in (result.error_message or "")
