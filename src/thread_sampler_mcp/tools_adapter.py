import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .analysis import AnalysisConfig, ConfigurationError, analyze_thread_states, rank_thread_cpu
from .report import render_cpu_report, render_state_report


@dataclass
class Result:
    ok: bool
    text: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    @staticmethod
    def ok_text(payload: Dict) -> "Result":
        return Result(ok=True, text=json.dumps(payload))

    @staticmethod
    def err(code: str, message: str) -> "Result":
        return Result(ok=False, error_code=code, error_message=message)


def _check_flag(name: str, value: Any) -> Optional[Result]:
    if not isinstance(value, bool):
        return Result.err("INVALID_PARAMS", f"'{name}' must be a boolean")
    return None


# Backs the analyze_thread_states MCP tool; usable without the MCP runtime

def state_tool_call(
    samples_dir: str,
    stack_trace: bool = False,
    number_of_stack_trace_samples: int = 5,
    number_of_stack_trace_lines: int = 100,
    column_width: int = 100,
    thread_dump_pattern: str = "jstack*",
) -> Result:
    bad_flag = _check_flag("stack_trace", stack_trace)
    if bad_flag:
        return bad_flag

    config = AnalysisConfig(
        samples_dir=samples_dir,
        stack_trace=stack_trace,
        number_of_stack_trace_samples=number_of_stack_trace_samples,
        number_of_stack_trace_lines=number_of_stack_trace_lines,
        column_width=column_width,
        thread_dump_pattern=thread_dump_pattern,
    )
    try:
        config.validate()
    except ConfigurationError as e:
        return Result.err("INVALID_PARAMS", str(e))

    try:
        report = analyze_thread_states(config)
        payload: Dict[str, Any] = report.to_dict()
        payload["report"] = render_state_report(report, width=config.column_width)
        return Result.ok_text(payload)
    except Exception as e:
        return Result.err("INTERNAL_ERROR", f"Exception: {e}")


# Backs the rank_thread_cpu MCP tool; usable without the MCP runtime

def cpu_tool_call(
    samples_dir: str,
    stack_trace: bool = False,
    number_of_threads: int = 100,
    number_of_stack_trace_samples: int = 5,
    number_of_stack_trace_lines: int = 100,
    column_width: int = 100,
    merge_policy: str = "pairwise",
    thread_dump_pattern: str = "jstack*",
    cpu_usage_pattern: str = "top*",
) -> Result:
    bad_flag = _check_flag("stack_trace", stack_trace)
    if bad_flag:
        return bad_flag

    config = AnalysisConfig(
        samples_dir=samples_dir,
        cpu_usage=True,
        stack_trace=stack_trace,
        number_of_threads=number_of_threads,
        number_of_stack_trace_samples=number_of_stack_trace_samples,
        number_of_stack_trace_lines=number_of_stack_trace_lines,
        column_width=column_width,
        merge_policy=merge_policy,
        thread_dump_pattern=thread_dump_pattern,
        cpu_usage_pattern=cpu_usage_pattern,
    )
    try:
        config.validate()
    except ConfigurationError as e:
        return Result.err("INVALID_PARAMS", str(e))

    try:
        report = rank_thread_cpu(config)
        payload: Dict[str, Any] = report.to_dict()
        payload["report"] = render_cpu_report(report, width=config.column_width)
        return Result.ok_text(payload)
    except Exception as e:
        return Result.err("INTERNAL_ERROR", f"Exception: {e}")
