"""Observability utilities for the noteshelf service.

Logging setup plus per-operation timing counters for the service layer.
"""
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

# Root of the package logger hierarchy
ROOT_LOGGER_NAME = "noteshelf"


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB per file
    backup_count: int = 5,
    console: bool = True,
) -> Optional[Path]:
    """Configure logging for the noteshelf logger hierarchy.

    Console logging is on by default. When log_dir is given, a rotating
    file handler is added as well, rotated at max_bytes and keeping
    backup_count old files.

    Args:
        level: Logging level (default: INFO)
        log_dir: Directory for log files. No file logging when None.
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of rotated files to keep (default: 5)
        console: Also log to console (default: True)

    Returns:
        Path to the log file, or None when only console logging is set up
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_file = None
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        log_file = log_path / "noteshelf.log"
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if console and not any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, RotatingFileHandler)
        for h in root_logger.handlers
    ):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if log_file:
        root_logger.info(
            f"Logging configured: {log_file} (max {max_bytes} bytes, {backup_count} backups)"
        )

    return log_file


@dataclass
class OperationStats:
    """Running timing and outcome counters for one operation name."""
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0
    fastest_ms: Optional[float] = None
    slowest_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def add(self, duration_ms: float, error: Optional[str] = None) -> None:
        self.calls += 1
        self.total_ms += duration_ms
        if self.fastest_ms is None or duration_ms < self.fastest_ms:
            self.fastest_ms = duration_ms
        self.slowest_ms = max(self.slowest_ms, duration_ms)
        if error is not None:
            self.failures += 1
            self.last_error = error
            self.last_error_at = datetime.now(timezone.utc)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "calls": self.calls,
            "failures": self.failures,
            "avg_ms": round(self.total_ms / self.calls, 2) if self.calls else 0.0,
            "fastest_ms": round(self.fastest_ms or 0.0, 2),
            "slowest_ms": round(self.slowest_ms, 2),
            "last_error": self.last_error,
            "last_error_at": self.last_error_at.isoformat() if self.last_error_at else None,
        }


class MetricsCollector:
    """In-memory, lock-guarded counters for service operations.

    Every NoteService call is recorded under its operation name; the
    ns_status tool reports the totals.
    """

    def __init__(self):
        self._stats: Dict[str, OperationStats] = defaultdict(OperationStats)
        self._lock = Lock()
        self._started = datetime.now(timezone.utc)

    def record_operation(
        self, operation: str, duration_ms: float, error: Optional[str] = None
    ) -> None:
        """Record one call of ``operation``; a non-None error marks it failed."""
        with self._lock:
            self._stats[operation].add(duration_ms, error)

    def operations(self) -> Dict[str, Dict[str, Any]]:
        """Per-operation counters, keyed and ordered by operation name."""
        with self._lock:
            return {name: self._stats[name].as_dict() for name in sorted(self._stats)}

    def summary(self) -> Dict[str, Any]:
        """Totals across every operation since the collector was created."""
        with self._lock:
            calls = sum(s.calls for s in self._stats.values())
            failures = sum(s.failures for s in self._stats.values())
            uptime = datetime.now(timezone.utc) - self._started
            return {
                "uptime_seconds": round(uptime.total_seconds(), 1),
                "calls": calls,
                "failures": failures,
                "success_rate": (calls - failures) / calls if calls else 1.0,
            }


# Process-wide collector fed by timed_operation
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time a service call, record it in ``metrics`` and log it at DEBUG.

    Yields a dict the caller may fill with result details such as
    ``result_count``; they are appended to the closing log line.

        with timed_operation("list_notes", user_id=0) as op:
            op["result_count"] = len(persister.user_notes(user))
    """
    ref = uuid.uuid4().hex[:8]
    details: Dict[str, Any] = {}
    args = ", ".join(f"{k}={v}" for k, v in context.items())
    logger.debug(f"[{ref}] {operation}({args}) started")

    error = None
    started = time.perf_counter()
    try:
        yield details
    except Exception as e:
        error = str(e)
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(operation, elapsed_ms, error)
        outcome = "ok" if error is None else f"failed: {error}"
        extra = " ".join(f"{k}={v}" for k, v in details.items())
        logger.debug(f"[{ref}] {operation} {outcome} in {elapsed_ms:.2f}ms {extra}".rstrip())
