"""Structured logging for the IBT bridge.

Every entry carries a :class:`LogContext` (component, operation, chain and the
transfer id as ``correlation_id``) plus free-form ``extra`` fields, so a
transfer can be followed across both chains by filtering on one id.

Entries flow ``BridgeLogger -> LogManager -> LogHandler -> LogFormatter``.
There is one process-wide manager; :func:`setup_logging` swaps it without
invalidating loggers that modules created at import time.
"""

import os
import sys
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from functools import partialmethod
from typing import Any, Dict, Mapping, Optional


class LogLevel(Enum):
    """Log levels, least to most severe."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __ge__(self, other: "LogLevel") -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {level: rank for rank, level in enumerate(LogLevel)}


@dataclass
class LogContext:
    """Where an entry comes from and which transfer it belongs to."""

    component: Optional[str] = None
    operation: Optional[str] = None
    chain: Optional[str] = None
    correlation_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def merged_with(self, other: Optional["LogContext"]) -> "LogContext":
        """Overlay ``other`` on this context; fields set on ``other`` win."""
        if other is None:
            return self
        overlay = {
            key: value
            for key, value in asdict(other).items()
            if value and key != "metadata"
        }
        merged = {**asdict(self), **overlay}
        merged["metadata"] = {**self.metadata, **other.metadata}
        return LogContext(**merged)


@dataclass
class LogEntry:
    """One structured log record."""

    timestamp: float
    level: LogLevel
    message: str
    logger_name: str
    context: LogContext
    exception: Optional[BaseException] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "logger_name": self.logger_name,
            "context": self.context.to_dict(),
            "exception": repr(self.exception) if self.exception else None,
            "extra": dict(self.extra),
        }


class LogConfig:
    """Log level and output format for the bridge process."""

    LEVEL_VAR = "IBT_BRIDGE_LOG_LEVEL"
    FORMAT_VAR = "IBT_BRIDGE_LOG_FORMAT"

    def __init__(
        self,
        name: str = "ibtbridge",
        level: LogLevel = LogLevel.INFO,
        format_type: str = "json",
    ):
        self.name = name
        self.level = level
        self.format_type = format_type

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LogConfig":
        """Read ``IBT_BRIDGE_LOG_LEVEL`` and ``IBT_BRIDGE_LOG_FORMAT``.

        Unknown level names fall back to ``info`` rather than failing startup.
        """
        environ = os.environ if environ is None else environ
        try:
            level = LogLevel(environ.get(cls.LEVEL_VAR, "info").strip().lower())
        except ValueError:
            level = LogLevel.INFO
        return cls(level=level, format_type=environ.get(cls.FORMAT_VAR, "json").strip().lower())


class LogFormatter(ABC):
    """Turns an entry into one line of output."""

    @abstractmethod
    def format(self, entry: LogEntry) -> str:
        ...


class LogHandler(ABC):
    """Destination for entries at or above ``level``."""

    def __init__(self, level: LogLevel = LogLevel.TRACE):
        self.level = level
        self.formatter: Optional[LogFormatter] = None
        self._lock = threading.RLock()

    def set_formatter(self, formatter: LogFormatter) -> None:
        self.formatter = formatter

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def handle(self, entry: LogEntry) -> None:
        if entry.level >= self.level:
            with self._lock:
                self.emit(entry)

    @abstractmethod
    def emit(self, entry: LogEntry) -> None:
        """Write ``entry``. Called with the handler lock held."""

    def close(self) -> None:
        pass


class LogManager:
    """Routes entries from every bridge logger to the registered handlers."""

    def __init__(self, config: Optional[LogConfig] = None):
        from .formatters import formatter_for
        from .handlers import ConsoleHandler

        self.config = config or LogConfig()
        self.loggers: Dict[str, "BridgeLogger"] = {}
        self.handlers: Dict[str, LogHandler] = {}
        self.context = LogContext()
        self._lock = threading.RLock()

        console = ConsoleHandler()
        console.set_formatter(formatter_for(self.config.format_type))
        self.add_handler("console", console)

    def get_logger(self, name: str) -> "BridgeLogger":
        with self._lock:
            logger = self.loggers.get(name)
            if logger is None:
                logger = self.loggers[name] = BridgeLogger(name, self)
            return logger

    def add_handler(self, name: str, handler: LogHandler) -> None:
        with self._lock:
            self.handlers[name] = handler

    def remove_handler(self, name: str) -> Optional[LogHandler]:
        with self._lock:
            return self.handlers.pop(name, None)

    def set_context(self, context: LogContext) -> None:
        """Context merged under every entry, e.g. the CLI command being run."""
        self.context = context

    def dispatch(self, entry: LogEntry) -> None:
        with self._lock:
            handlers = list(self.handlers.values())
        for handler in handlers:
            handler.handle(entry)

    def shutdown(self) -> None:
        with self._lock:
            for handler in self.handlers.values():
                handler.close()
            self.handlers.clear()


class BridgeLogger:
    """Named logger; the level is the manager's unless set explicitly."""

    def __init__(self, name: str, manager: LogManager):
        self.name = name
        self.manager = manager
        self.level: Optional[LogLevel] = None

    def set_level(self, level: Optional[LogLevel]) -> None:
        self.level = level

    @property
    def effective_level(self) -> LogLevel:
        return self.level or self.manager.config.level

    def log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        exception: Optional[BaseException] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not level >= self.effective_level:
            return
        self.manager.dispatch(
            LogEntry(
                timestamp=time.time(),
                level=level,
                message=message,
                logger_name=self.name,
                context=self.manager.context.merged_with(context),
                exception=exception,
                extra=extra or {},
            )
        )

    trace = partialmethod(log, LogLevel.TRACE)
    debug = partialmethod(log, LogLevel.DEBUG)
    info = partialmethod(log, LogLevel.INFO)
    warning = partialmethod(log, LogLevel.WARNING)
    error = partialmethod(log, LogLevel.ERROR)
    critical = partialmethod(log, LogLevel.CRITICAL)

    def exception(self, message: str, **kwargs) -> None:
        """Log at error level, attaching the exception being handled."""
        kwargs.setdefault("exception", sys.exc_info()[1])
        self.log(LogLevel.ERROR, message, **kwargs)


_global_manager: Optional[LogManager] = None
_global_lock = threading.Lock()


def get_log_manager() -> LogManager:
    """The process-wide manager, created with default settings on first use."""
    global _global_manager
    with _global_lock:
        if _global_manager is None:
            _global_manager = LogManager()
        return _global_manager


def get_logger(name: str = "ibtbridge") -> BridgeLogger:
    return get_log_manager().get_logger(name)


def setup_logging(config: LogConfig) -> LogManager:
    """Install a new manager built from ``config``.

    Loggers handed out before this call keep working: they are re-pointed at
    the new manager and follow its level.
    """
    global _global_manager
    manager = LogManager(config)
    with _global_lock:
        previous, _global_manager = _global_manager, manager
    if previous is not None:
        for name, logger in previous.loggers.items():
            logger.manager = manager
            logger.set_level(None)
            manager.loggers[name] = logger
    return manager


def shutdown_logging() -> None:
    """Close all handlers. Entries are dropped until the next setup_logging."""
    with _global_lock:
        manager = _global_manager
    if manager is not None:
        manager.shutdown()
