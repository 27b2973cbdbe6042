"""
Colored console logging for discovery runs.

Every line starts with a dim timestamp and a colored tag. Levels below the
logger's minimum are dropped; loggers created without an explicit minimum
follow the process-wide level set with set_log_level().
"""

import sys
from datetime import datetime
from enum import Enum
from typing import Optional, TextIO

from colorama import Fore, Style, init

init(autoreset=True)


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
}

_global_min_level = LogLevel.INFO


class Logger:
    """
    Console logger with level filtering and run-progress helpers.

    Errors go to stderr, everything else to stdout.
    """

    LEVEL_TAGS = {
        LogLevel.DEBUG: (Fore.CYAN, "🔍 DEBUG  "),
        LogLevel.INFO: (Fore.GREEN, "ℹ️ INFO   "),
        LogLevel.WARNING: (Fore.YELLOW, "⚠️ WARNING"),
        LogLevel.ERROR: (Fore.RED, "❌ ERROR  "),
    }

    def __init__(self, name: str = "PeerDiscovery", min_level: Optional[LogLevel] = None):
        """
        Args:
            name: Logger name
            min_level: Fixed minimum level; None follows set_log_level()
        """
        self.name = name
        self._min_level = min_level
        self._progress_active = False

    @property
    def min_level(self) -> LogLevel:
        return self._min_level or _global_min_level

    @min_level.setter
    def min_level(self, level: LogLevel) -> None:
        self._min_level = level

    def _should_log(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.min_level]

    def _emit(self, tag: str, message: str, details: dict, stream: TextIO = None) -> None:
        line = f"{Style.DIM}[{datetime.now():%H:%M:%S}]{Style.RESET_ALL} {tag}{Style.RESET_ALL} {message}"
        if details:
            rendered = " | ".join(f"{key}={value}" for key, value in details.items())
            line += f" {Style.DIM}({rendered}){Style.RESET_ALL}"
        print(line, file=stream or sys.stdout, flush=True)

    def _log(self, level: LogLevel, message: str, details: dict) -> None:
        if not self._should_log(level):
            return
        color, label = self.LEVEL_TAGS[level]
        stream = sys.stderr if level == LogLevel.ERROR else sys.stdout
        self._emit(f"{color}{label}", message, details, stream)

    def debug(self, message: str, **kwargs) -> None:
        self._log(LogLevel.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log(LogLevel.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(LogLevel.WARNING, message, kwargs)

    def error(self, message: str, exception: Optional[Exception] = None, **kwargs) -> None:
        """
        Log an error, optionally naming the exception that caused it.

        Args:
            message: Error message
            exception: Exception rendered as "Type: text" in the details
            **kwargs: Additional key=value details
        """
        if exception is not None:
            kwargs["exception"] = f"{type(exception).__name__}: {exception}"
        self._log(LogLevel.ERROR, message, kwargs)

    def success(self, message: str, **kwargs) -> None:
        """Highlighted INFO line for a finished run."""
        if self._should_log(LogLevel.INFO):
            self._emit(f"{Fore.GREEN}✅ SUCCESS", f"{Style.BRIGHT}{message}{Style.RESET_ALL}", kwargs)

    def section(self, title: str) -> None:
        if not self._should_log(LogLevel.INFO):
            return
        separator = "=" * 60
        print(f"\n{Fore.BLUE}{Style.BRIGHT}{separator}\n  {title.upper()}\n{separator}{Style.RESET_ALL}\n")

    def progress_start(self, message: str) -> None:
        """Open a progress block; progress_update lines only show while it is open."""
        self._progress_active = True
        self._progress_line(message)

    def progress_update(self, message: str) -> None:
        if self._progress_active:
            self._progress_line(message)

    def progress_end(self, final_message: Optional[str] = None) -> None:
        if not self._progress_active:
            return
        self._progress_active = False
        if final_message:
            self.success(final_message)

    def _progress_line(self, message: str) -> None:
        if self._should_log(LogLevel.INFO):
            self._emit(f"{Fore.BLUE}⏳ PROGRESS", f"{message}...", {})

    def subnet_info(self, subnet: str, interface: str, candidates: int) -> None:
        """
        Print a banner for a subnet about to be probed.

        Args:
            subnet: Subnet in CIDR notation
            interface: Interface the subnet is attached to
            candidates: Number of addresses that will be probed
        """
        if not self._should_log(LogLevel.INFO):
            return
        print(f"\n{Fore.CYAN}{Style.BRIGHT}🌐 SUBNET{Style.RESET_ALL}")
        for label, value in (("Network", subnet), ("Interface", interface), ("Candidates", candidates)):
            print(f"  {label + ':':<12}{Style.BRIGHT}{value}{Style.RESET_ALL}")
        print()


def set_log_level(level: LogLevel) -> None:
    """Set the minimum level for every logger without an explicit one."""
    global _global_min_level
    _global_min_level = level


def get_logger(name: str = "PeerDiscovery") -> Logger:
    return Logger(name)
