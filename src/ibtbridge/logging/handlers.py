"""Log handlers for the IBT bridge."""

import sys
from collections import deque
from typing import Any, Dict, List, Optional, TextIO

from .core import LogEntry, LogHandler


class ConsoleHandler(LogHandler):
    """Writes formatted entries to a stream, stderr by default.

    With no explicit stream, ``sys.stderr`` is looked up on every write so
    that redirection (and test capture) installed later is honoured.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        super().__init__()
        self.stream = stream
        self.closed = False

    def emit(self, entry: LogEntry) -> None:
        if self.closed:
            return
        if self.formatter is not None:
            line = self.formatter.format(entry)
        else:
            line = f"[{entry.level.value.upper()}] {entry.logger_name}: {entry.message}"
        stream = self.stream or sys.stderr
        stream.write(line + "\n")
        stream.flush()

    def close(self) -> None:
        with self._lock:
            if self.stream is not None and self.stream not in (sys.stdout, sys.stderr):
                self.stream.close()
            self.closed = True


class MemoryHandler(LogHandler):
    """Keeps the newest ``max_size`` entries as dictionaries."""

    def __init__(self, max_size: int = 1000):
        super().__init__()
        self.max_size = max_size
        self.buffer: deque = deque(maxlen=max_size)

    def emit(self, entry: LogEntry) -> None:
        record = entry.to_dict()
        if self.formatter is not None:
            record["formatted"] = self.formatter.format(entry)
        self.buffer.append(record)

    def get_logs(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self.buffer)

    def messages(self) -> List[str]:
        with self._lock:
            return [record["message"] for record in self.buffer]

    def clear_logs(self) -> None:
        with self._lock:
            self.buffer.clear()

    def close(self) -> None:
        self.clear_logs()
