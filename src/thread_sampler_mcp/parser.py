import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple, Union

# This module intentionally has no external dependencies so it can be used in tests
# without requiring the MCP runtime libraries.

THREAD_STATES: Tuple[str, ...] = (
    "RUNNABLE", "BLOCKED", "WAITING", "TIMED_WAITING", "NEW", "TERMINATED"
)

FRAME_PREFIX = "at "
FRAME_SEPARATOR = "\n"

state_re = re.compile(r'^\s*java\.lang\.Thread\.State:\s*(?P<state>[A-Z_]+)')
deadlock_re = re.compile(r'^\s*found (one|\d+) (java-level )?deadlocks?', re.IGNORECASE)


class ParserState(Enum):
    SEEKING_STATE = "seeking_state"
    COLLECTING_FRAMES = "collecting_frames"


@dataclass(frozen=True)
class ThreadRecord:
    state: str
    frames: Tuple[str, ...]
    source_file: str

    @property
    def signature(self) -> str:
        return join_frames(self.frames)


@dataclass(frozen=True)
class DeadlockEvent:
    source_file: str


def join_frames(frames: Iterable[str]) -> str:
    return FRAME_SEPARATOR.join(frames)


def match_state(line: str) -> Optional[str]:
    """Return the lifecycle state declared on ``line``, if it is one of the six."""
    m_state = state_re.match(line)
    if m_state and m_state.group('state') in THREAD_STATES:
        return m_state.group('state')
    return None


def match_frame(line: str) -> Optional[str]:
    stripped = line.strip()
    if stripped.startswith(FRAME_PREFIX):
        return stripped[len(FRAME_PREFIX):]
    return None


def is_deadlock_marker(line: str) -> bool:
    return deadlock_re.match(line) is not None


class DumpParser:
    """
    Streaming parser for one thread dump.

    Blocks are separated by blank lines. A block yields a ThreadRecord only when
    it declared a state and had at least one frame; frames past ``max_frames``
    are counted and dropped. A block still open at end of input is discarded.
    """

    def __init__(self, source_file: str, max_frames: int = 100) -> None:
        self.source_file = source_file
        self.max_frames = max_frames
        self._reset()

    def _reset(self) -> None:
        self.state = ParserState.SEEKING_STATE
        self._thread_state: Optional[str] = None
        self._frames: List[str] = []
        self._frame_count = 0

    def feed(self, line: str) -> Iterator[Union[ThreadRecord, DeadlockEvent]]:
        if is_deadlock_marker(line):
            yield DeadlockEvent(self.source_file)
            return

        if not line.strip():
            if self._thread_state is not None and self._frame_count > 0:
                yield ThreadRecord(self._thread_state, tuple(self._frames), self.source_file)
            self._reset()
            return

        if self.state is ParserState.SEEKING_STATE:
            thread_state = match_state(line)
            if thread_state is not None:
                self._thread_state = thread_state
                self.state = ParserState.COLLECTING_FRAMES
        elif self.state is ParserState.COLLECTING_FRAMES:
            frame = match_frame(line)
            if frame is not None:
                self._frame_count += 1
                if self._frame_count <= self.max_frames:
                    self._frames.append(frame)

    def parse(self, lines: Iterable[str]) -> Iterator[Union[ThreadRecord, DeadlockEvent]]:
        self._reset()
        for line in lines:
            yield from self.feed(line)
        # no flush: an unterminated trailing block is not a complete record
        self._reset()


def parse_thread_dump(
    lines: Iterable[str], source_file: str = "", max_frames: int = 100
) -> Tuple[List[ThreadRecord], List[DeadlockEvent]]:
    records: List[ThreadRecord] = []
    deadlocks: List[DeadlockEvent] = []
    for item in DumpParser(source_file, max_frames=max_frames).parse(lines):
        if isinstance(item, DeadlockEvent):
            deadlocks.append(item)
        else:
            records.append(item)
    return records, deadlocks
