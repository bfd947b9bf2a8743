from typing import List, Optional

from .parser import DeadlockEvent


class DeadlockDetector:
    """Remembers which dump files reported a deadlock, in processing order."""

    def __init__(self) -> None:
        self.files: List[str] = []

    def record(self, event: DeadlockEvent) -> None:
        if event.source_file not in self.files:
            self.files.append(event.source_file)

    @property
    def detected(self) -> bool:
        return bool(self.files)

    @property
    def last_file(self) -> Optional[str]:
        return self.files[-1] if self.files else None

    def warning(self) -> Optional[str]:
        if not self.files:
            return None
        return (
            f"Deadlock found in {len(self.files)} thread dump file(s), "
            f"last one: {self.last_file}"
        )
