"""Log formatters for the IBT bridge."""

import json
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .core import LogEntry, LogFormatter


def _utc(timestamp: float) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


class JSONFormatter(LogFormatter):
    """One JSON object per line, for log shippers.

    Empty context fields are omitted. Exceptions become an object with their
    type, message and formatted traceback.
    """

    def __init__(self, include_traceback: bool = True, indent: Optional[int] = None):
        self.include_traceback = include_traceback
        self.indent = indent

    def format(self, entry: LogEntry) -> str:
        data: Dict[str, Any] = {
            "timestamp": _utc(entry.timestamp)
            .isoformat(timespec="microseconds")
            .replace("+00:00", "Z"),
            "level": entry.level.value,
            "logger": entry.logger_name,
            "message": entry.message,
        }

        context = {key: value for key, value in entry.context.to_dict().items() if value}
        if context:
            data["context"] = context
        if entry.extra:
            data["extra"] = entry.extra
        if entry.exception is not None:
            data["exception"] = self._exception(entry.exception)

        return json.dumps(data, indent=self.indent, ensure_ascii=False, default=str)

    def _exception(self, error: BaseException) -> Dict[str, Any]:
        rendered = {"type": type(error).__name__, "message": str(error)}
        if self.include_traceback and error.__traceback__ is not None:
            rendered["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return rendered


class TextFormatter(LogFormatter):
    """Human-readable lines: ``time LEVEL [component/operation] message key=value``."""

    def __init__(self, time_format: str = "%H:%M:%S"):
        self.time_format = time_format

    def format(self, entry: LogEntry) -> str:
        line = f"{_utc(entry.timestamp).strftime(self.time_format)} {entry.level.value.upper():<8}"

        source = "/".join(
            part for part in (entry.context.component, entry.context.operation) if part
        )
        if source:
            line += f" [{source}]"
        line += f" {entry.message}"

        if entry.context.correlation_id:
            line += f" transfer={entry.context.correlation_id}"
        for key, value in entry.extra.items():
            line += f" {key}={value}"
        if entry.exception is not None:
            line += f" error={type(entry.exception).__name__}: {entry.exception}"
        return line


FORMATTERS = {"json": JSONFormatter, "text": TextFormatter}


def formatter_for(format_type: str) -> LogFormatter:
    """Formatter for a ``LogConfig.format_type``; unknown names get JSON."""
    return FORMATTERS.get(format_type, JSONFormatter)()
