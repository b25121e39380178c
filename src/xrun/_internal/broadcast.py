"""Write-through fan-out over several text streams."""

from typing import List, Optional, TextIO


class BroadcastWriter:
    """File-like writer that copies every write to each of its sinks, in order.

    ``None`` sinks are dropped at construction, so callers can pass an
    optional log stream without branching.
    """

    def __init__(self, *sinks: Optional[TextIO]):
        self.sinks: List[TextIO] = [s for s in sinks if s is not None]

    def write(self, text: str) -> int:
        for sink in self.sinks:
            sink.write(text)
        return len(text)

    def writeline(self, text: str) -> None:
        self.write(text + "\n")
        self.flush()

    def flush(self) -> None:
        for sink in self.sinks:
            sink.flush()
