"""
Error Handling

Exception types and a small centralized error handler.

Error classes follow how the system reacts to them:
  - fatal protocol errors (an input code outside every known range) abort
  - device read failures silently detach the device
  - persistence failures are logged, the edit stays in memory
  - the end of the event stream terminates the interpreter loop
"""

import time
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, Dict, Optional

log = logging.getLogger(__name__)


class KmSynthError(Exception):
    """Base class for all kmsynth errors"""


class InvalidInputCodeError(KmSynthError):
    """Raised when the controller reports a code outside every known range"""

    def __init__(self, code: int):
        super().__init__(f"{code} is not a valid input")
        self.code = code


class StreamClosedError(KmSynthError):
    """Raised when every producer of the event stream is gone"""


class SettingsError(KmSynthError):
    """Raised when the settings document cannot be written"""


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


_SEVERITY_LEVELS = {
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorRecord:
    """One handled error"""
    error: Exception
    context: str
    severity: ErrorSeverity
    timestamp: float


class ErrorHandler:
    """Logs handled errors and keeps statistics about them.

    Nothing is retried here. Persistence is retried by the next edit and
    devices by the next discovery pass.
    """

    def __init__(self, max_history: int = 100):
        self.error_counts: Dict[str, int] = {}
        self.severity_counts: Dict[ErrorSeverity, int] = {s: 0 for s in ErrorSeverity}
        self.error_history: Deque[ErrorRecord] = deque(maxlen=max_history)

    def handle_error(self, error: Exception, context: str,
                     severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                     details: Optional[Dict[str, Any]] = None) -> ErrorRecord:
        """
        Record and log an error

        Args:
            error: The exception that occurred
            context: Where the error occurred (e.g. 'device_read')
            severity: Error severity level
            details: Extra key/value pairs for the log line

        Returns:
            The stored error record
        """
        self.error_counts[context] = self.error_counts.get(context, 0) + 1
        self.severity_counts[severity] += 1

        record = ErrorRecord(error, context, severity, time.time())
        self.error_history.append(record)

        suffix = ""
        if details:
            suffix = " (" + ", ".join(f"{k}={v}" for k, v in details.items()) + ")"
        log.log(_SEVERITY_LEVELS[severity], f"[{context}] {type(error).__name__}: {error}{suffix}")
        return record

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get error statistics for monitoring"""
        return {
            'total_errors': sum(self.error_counts.values()),
            'error_counts': dict(self.error_counts),
            'low_severity': self.severity_counts[ErrorSeverity.LOW],
            'medium_severity': self.severity_counts[ErrorSeverity.MEDIUM],
            'high_severity': self.severity_counts[ErrorSeverity.HIGH],
            'critical_errors': self.severity_counts[ErrorSeverity.CRITICAL],
            'recent_errors': len([r for r in self.error_history
                                  if r.timestamp > (time.time() - 3600)]),
        }

    def reset_statistics(self):
        """Reset error statistics"""
        self.error_counts.clear()
        self.severity_counts = {s: 0 for s in ErrorSeverity}
        self.error_history.clear()
