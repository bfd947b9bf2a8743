import textwrap
from typing import List, Union

from .models import CpuReport, StateReport
from .parser import FRAME_SEPARATOR

FRAME_INDENT = " " * 8


def wrap_signature(signature: str, width: int = 100) -> List[str]:
    """Indent every frame and wrap it at ``width`` columns."""
    lines: List[str] = []
    for frame in signature.split(FRAME_SEPARATOR):
        lines.extend(
            textwrap.wrap(
                frame,
                width=width,
                initial_indent=FRAME_INDENT,
                subsequent_indent=FRAME_INDENT + "    ",
                break_long_words=True,
                break_on_hyphens=False,
            ) or [FRAME_INDENT]
        )
    return lines


def render_state_report(report: StateReport, width: int = 100) -> str:
    lines = [f"Thread states: {report.total} samples from {len(report.files)} thread dump file(s)"]
    for row in report.rows:
        lines.append(f"{row.state}: {row.count} ({row.percent:.2f}%)")
        for sample in row.samples:
            lines.append(f"    {sample.count} ({sample.percent:.2f}%)")
            lines.extend(wrap_signature(sample.signature, width))
    if report.deadlock_warning:
        lines.append("")
        lines.append(f"WARNING: {report.deadlock_warning}")
    return "\n".join(lines)


def render_cpu_report(report: CpuReport, width: int = 100) -> str:
    lines = [
        f"Top {len(report.rows)} threads by CPU usage "
        f"({report.merge_policy} average over {len(report.files)} CPU usage file(s))"
    ]
    for row in report.rows:
        name = f'"{row.name}"' if row.name else "-"
        lines.append(f"{row.rank:>4}. {row.average:6.2f}%  nid={row.nid}  {name}")
        for sample in row.samples:
            lines.append(f"    {sample.count} ({sample.percent:.2f}%) {sample.state}")
            lines.extend(wrap_signature(sample.signature, width))
    if report.deadlock_warning:
        lines.append("")
        lines.append(f"WARNING: {report.deadlock_warning}")
    return "\n".join(lines)


def render(report: Union[StateReport, CpuReport], width: int = 100) -> str:
    if isinstance(report, CpuReport):
        return render_cpu_report(report, width)
    return render_state_report(report, width)
