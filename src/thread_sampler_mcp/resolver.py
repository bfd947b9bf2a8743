import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .parser import join_frames, match_frame, match_state

nid_re = re.compile(r'\bnid=0x(?P<nid>[0-9a-fA-F]+)\b')
quoted_name_re = re.compile(r'"(?P<name>.*)"')


def thread_id_to_nid(thread_id: int) -> str:
    """291 -> '123': the hex form jstack prints after ``nid=0x``."""
    return format(thread_id, "x")


def find_identity(line: str) -> Optional[Tuple[str, str]]:
    """Return ``(nid, name)`` for a thread header line, or None."""
    m_nid = nid_re.search(line)
    if not m_nid:
        return None
    m_name = quoted_name_re.search(line, 0, m_nid.start())
    name = m_name.group('name') if m_name else ""
    return m_nid.group('nid').lower(), name


@dataclass
class _Window:
    nid: str
    state: Optional[str] = None
    frames: List[str] = field(default_factory=list)
    frame_count: int = 0


class IdentityIndex:
    """
    Name and stack occurrences for a fixed set of thread ids.

    Built in one pass over every dump file instead of re-reading the dumps once
    per ranked thread. The first header seen for a thread (in processing order)
    gives its name. With ``collect_stacks`` every header occurrence also opens a
    window holding the state line and up to ``max_frames`` frames; the window
    closes at a blank line, at the frame limit, at the next header or at end of
    file. Windows that never saw a state line are not kept.
    """

    def __init__(
        self,
        thread_ids: Iterable[int],
        max_frames: int = 100,
        collect_stacks: bool = False,
    ) -> None:
        self.max_frames = max_frames
        self.collect_stacks = collect_stacks
        self._nids: Dict[str, int] = {thread_id_to_nid(t): t for t in thread_ids}
        self.names: Dict[int, str] = {}
        self.occurrences: Dict[int, List[Tuple[str, str]]] = {t: [] for t in self._nids.values()}

    def _close(self, window: Optional[_Window]) -> None:
        if window is None or window.state is None:
            return
        thread_id = self._nids[window.nid]
        self.occurrences[thread_id].append((window.state, join_frames(window.frames)))

    def scan(self, lines: Iterable[str]) -> None:
        window: Optional[_Window] = None
        for line in lines:
            identity = find_identity(line)
            if identity is not None:
                self._close(window)
                window = None
                nid, name = identity
                if nid in self._nids:
                    self.names.setdefault(self._nids[nid], name)
                    if self.collect_stacks:
                        window = _Window(nid)
                continue

            if window is None:
                continue
            if not line.strip():
                self._close(window)
                window = None
            elif window.state is None:
                window.state = match_state(line)
            else:
                frame = match_frame(line)
                if frame is not None:
                    window.frames.append(frame)
                    if len(window.frames) >= self.max_frames:
                        self._close(window)
                        window = None
        self._close(window)

    def name_of(self, thread_id: int) -> str:
        return self.names.get(thread_id, "")

    def stack_histogram(self, thread_id: int) -> "Counter[Tuple[str, str]]":
        return Counter(self.occurrences.get(thread_id, []))
